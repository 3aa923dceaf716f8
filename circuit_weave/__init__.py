"""Top-level circuit_weave helpers."""

from circuit_weave import _math, extra
from circuit_weave.circuit import Circuit, CircuitDag
from circuit_weave.circuit_weave import CURRENT_SCHEMA_VERSION, Config, Session
from circuit_weave.exceptions import (
    CircuitWeaveError,
    ConstructionError,
    ParameterParseError,
    RegistryCollisionError,
    SchemaVersionError,
    UnevaluatedParameterError,
    UnknownVariantError,
    UnstableOperationError,
    WireFormatError,
)
from circuit_weave.operation import (
    DynamicRegistry,
    Operation,
    OperationVTable,
    RegisterAccess,
    RegisteredOperation,
    available_gates_hqslang,
)
from circuit_weave.parameter import NumericParameter
from circuit_weave.program import PauliZProduct, PauliZProductInput, QuantumProgram
from circuit_weave.serialization import (
    deserialize,
    from_json,
    json_schema,
    serialize,
    to_json,
    validate_wire,
)

__all__ = [
    "_math",
    "extra",
    "CURRENT_SCHEMA_VERSION",
    "Config",
    "Session",
    "Circuit",
    "CircuitDag",
    "CircuitWeaveError",
    "ConstructionError",
    "ParameterParseError",
    "RegistryCollisionError",
    "SchemaVersionError",
    "UnevaluatedParameterError",
    "UnknownVariantError",
    "UnstableOperationError",
    "WireFormatError",
    "DynamicRegistry",
    "NumericParameter",
    "PauliZProduct",
    "PauliZProductInput",
    "QuantumProgram",
    "Operation",
    "OperationVTable",
    "RegisterAccess",
    "RegisteredOperation",
    "available_gates_hqslang",
    "deserialize",
    "from_json",
    "json_schema",
    "serialize",
    "to_json",
    "validate_wire",
]
