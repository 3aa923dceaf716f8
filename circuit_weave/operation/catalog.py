"""
Lookup of the built-in variants by their tag
"""

from typing import Dict, List, Tuple, Type

from circuit_weave.exceptions import UnknownVariantError
from circuit_weave.operation.bosonic_operation import (
    BosonicOperationType,
    SpinBosonOperationType,
)
from circuit_weave.operation.definition_operation import DefinitionType
from circuit_weave.operation.measurement_operation import MeasurementType
from circuit_weave.operation.multi_qubit_operation import (
    FourQubitGateType,
    MultiQubitGateType,
    ThreeQubitGateType,
)
from circuit_weave.operation.operation_type import OperationTypeBase
from circuit_weave.operation.pragma_operation import PragmaType
from circuit_weave.operation.single_qubit_operation import SingleQubitGateType
from circuit_weave.operation.two_qubit_operation import TwoQubitGateType

OPERATION_FAMILIES: Tuple[Type[OperationTypeBase], ...] = (
    SingleQubitGateType,
    TwoQubitGateType,
    ThreeQubitGateType,
    FourQubitGateType,
    MultiQubitGateType,
    DefinitionType,
    MeasurementType,
    PragmaType,
    BosonicOperationType,
    SpinBosonOperationType,
)


def _build_catalog() -> Dict[str, OperationTypeBase]:
    catalog: Dict[str, OperationTypeBase] = {}
    for family in OPERATION_FAMILIES:
        for operation_type in family:
            if operation_type.tag in catalog:
                raise RuntimeError(
                    f"Tag '{operation_type.tag}' is used by "
                    f"{type(catalog[operation_type.tag]).__name__} and {family.__name__}"
                )
            catalog[operation_type.tag] = operation_type
    return catalog


CATALOG: Dict[str, OperationTypeBase] = _build_catalog()

# Wire tags of serialized circuits and programs, reserved next to the
# operation tags
CIRCUIT_TAG = "Circuit"
PROGRAM_TAG = "QuantumProgram"


def is_builtin_tag(tag: str) -> bool:
    return tag in CATALOG or tag in (CIRCUIT_TAG, PROGRAM_TAG)


def operation_type_for_tag(tag: str) -> OperationTypeBase:
    """
    Returns the built-in operation type with the given tag

    Raises
    ------
    UnknownVariantError
        If no built-in variant has the tag
    """
    try:
        return CATALOG[tag]
    except KeyError:
        raise UnknownVariantError(tag) from None


def available_gates_hqslang() -> List[str]:
    """
    Returns the tags of all built-in gates with a unitary matrix
    """
    return [
        tag
        for tag, operation_type in CATALOG.items()
        if operation_type.is_gate and operation_type is not MultiQubitGateType.CallDefinedGate
    ]
