# flake8: noqa

from .measurement import PauliZProduct, PauliZProductInput  # noqa: F401
from .quantum_program import QuantumProgram  # noqa: F401
