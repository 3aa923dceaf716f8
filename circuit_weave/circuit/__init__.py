# flake8: noqa

from .circuit import Circuit, OperationsView  # noqa: F401
from .circuit_dag import CircuitDag  # noqa: F401
