# flake8: noqa

from .bosonic_operation import BosonicOperationType, SpinBosonOperationType  # noqa: F401
from .catalog import (  # noqa: F401
    CATALOG,
    CIRCUIT_TAG,
    PROGRAM_TAG,
    OPERATION_FAMILIES,
    available_gates_hqslang,
    is_builtin_tag,
    operation_type_for_tag,
)
from .definition_operation import DefinitionType  # noqa: F401
from .fields import Field, FieldKind, RegisterAccess  # noqa: F401
from .measurement_operation import MeasurementType  # noqa: F401
from .multi_qubit_operation import (  # noqa: F401
    FourQubitGateType,
    MultiQubitGateType,
    ThreeQubitGateType,
)
from .operation import Operation  # noqa: F401
from .pragma_operation import PragmaType  # noqa: F401
from .registry import DynamicRegistry, OperationVTable, RegisteredOperation  # noqa: F401
from .single_qubit_operation import SingleQubitGateType  # noqa: F401
from .two_qubit_operation import TwoQubitGateType  # noqa: F401
