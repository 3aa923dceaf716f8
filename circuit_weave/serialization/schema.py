"""
Structural validation of wire data with pydantic

One pydantic model is generated per variant and schema version. The models
check the shape of the payloads only, `deserialize` performs the semantic
checks. `json_schema` exports the model of a variant for external tooling.
"""

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from circuit_weave.circuit_weave import CURRENT_SCHEMA_VERSION
from circuit_weave.exceptions import (
    SchemaVersionError,
    UnknownVariantError,
    WireFormatError,
)
from circuit_weave.operation.catalog import CATALOG, CIRCUIT_TAG, PROGRAM_TAG
from circuit_weave.operation.fields import FieldKind
from circuit_weave.operation.operation_type import OperationTypeBase
from circuit_weave.operation.registry import DynamicRegistry
from circuit_weave.program.measurement import MEASUREMENT_TAG

Index = Annotated[int, Field(ge=0, strict=True)]
Number = Union[Annotated[float, Field(strict=True)], Annotated[int, Field(strict=True)]]
Parameter = Union[Number, Annotated[str, Field(strict=True, min_length=1)]]
Bool = Annotated[bool, Field(strict=True)]
String = Annotated[str, Field(strict=True)]
ComplexPair = Tuple[Number, Number]
IndexPair = Tuple[Index, Index]


class StrictBaseModel(BaseModel):
    """Root model with extra='forbid'"""

    model_config = ConfigDict(extra="forbid")


class EntryModel(StrictBaseModel):
    """Nested operation or circuit, its payload is validated separately"""

    variant_tag: String
    payload: Any
    dynamic: Bool = False


class EnvelopeModel(EntryModel):
    """Top level wire entry"""

    schema_version: Annotated[int, Field(ge=1, strict=True)]


class CircuitPayloadModel(StrictBaseModel):
    number_qubits: Optional[Index] = None
    number_modes: Optional[Index] = None
    operations: List[EntryModel]


class PauliZProductInputModel(StrictBaseModel):
    number_qubits: Index
    use_flipped_measurement: Bool = False
    pauli_product_qubit_indices: Dict[String, List[Tuple[Index, List[Index]]]]
    measured_exp_vals: Dict[String, List[Tuple[Index, Number]]]


class PauliZProductPayloadModel(StrictBaseModel):
    input: PauliZProductInputModel
    circuits: List[EntryModel]
    constant_circuit: Optional[EntryModel] = None


class MeasurementEntryModel(StrictBaseModel):
    variant_tag: Literal["PauliZProduct"]
    payload: PauliZProductPayloadModel


class QuantumProgramPayloadModel(StrictBaseModel):
    measurement: MeasurementEntryModel
    input_parameter_names: List[String]


_ANNOTATIONS: Dict[FieldKind, Any] = {
    FieldKind.QUBIT: Index,
    FieldKind.QUBITS: List[Index],
    FieldKind.MODE: Index,
    FieldKind.INT: Index,
    FieldKind.INTS: List[Index],
    FieldKind.PARAMETER: Parameter,
    FieldKind.PARAMETERS: List[Parameter],
    FieldKind.FLOAT: Number,
    FieldKind.BOOL: Bool,
    FieldKind.STRING: String,
    FieldKind.REGISTER: String,
    FieldKind.STRINGS: List[String],
    FieldKind.CIRCUIT: EntryModel,
    FieldKind.OPTIONAL_CIRCUIT: Optional[EntryModel],
    FieldKind.OPERATION: EntryModel,
    FieldKind.COMPLEX_VECTOR: List[ComplexPair],
    FieldKind.COMPLEX_MATRIX: List[List[ComplexPair]],
    FieldKind.FLOAT_MATRIX: List[List[Number]],
    FieldKind.INT_MAP: List[IndexPair],
    FieldKind.OPTIONAL_INT_MAP: Optional[List[IndexPair]],
}


@lru_cache(maxsize=None)
def payload_model(
    operation_type: OperationTypeBase, schema_version: int = CURRENT_SCHEMA_VERSION
) -> Type[BaseModel]:
    """
    Pydantic model of the payload of a variant as written by
    `schema_version`, fields introduced later are optional
    """
    definitions = {}
    for field in operation_type.fields:
        annotation = _ANNOTATIONS[field.kind]
        if field.since > schema_version:
            definitions[field.name] = (Optional[annotation], None)
        else:
            definitions[field.name] = (annotation, ...)
    return create_model(
        f"{operation_type.tag}Payload", __base__=StrictBaseModel, **definitions
    )


_CIRCUIT_FIELDS = frozenset(CircuitPayloadModel.model_fields)
_PROGRAM_FIELDS = frozenset(QuantumProgramPayloadModel.model_fields)
_MEASUREMENT_FIELDS = frozenset(PauliZProductPayloadModel.model_fields)
_INPUT_FIELDS = frozenset(PauliZProductInputModel.model_fields)


def _check_newer_fields(tag: str, payload: Any, known: Any, version: int) -> None:
    """
    Unknown fields in data of a newer schema version are a version
    problem, not a format problem
    """
    if version <= CURRENT_SCHEMA_VERSION or not isinstance(payload, dict):
        return
    unknown = set(payload) - set(known)
    if unknown:
        raise SchemaVersionError(
            f"{tag} data of schema version {version} uses unknown fields: "
            + ", ".join(sorted(unknown))
        )


def _check(model: Type[BaseModel], data: Any, where: str) -> BaseModel:
    try:
        return model.model_validate(data)
    except ValidationError as err:
        raise WireFormatError(f"Invalid {where}: {err}") from err


def _validate_entry(
    entry: Any, version: int, registry: Optional[DynamicRegistry], where: str
) -> None:
    parsed = _check(EntryModel, entry, where)
    tag = parsed.variant_tag
    if parsed.dynamic or (tag not in CATALOG and tag not in (CIRCUIT_TAG, PROGRAM_TAG)):
        if registry is None or tag not in registry:
            raise UnknownVariantError(tag)
        return
    if tag == PROGRAM_TAG:
        _validate_program(parsed.payload, version, registry, where)
        return
    if tag == CIRCUIT_TAG:
        _check_newer_fields(tag, parsed.payload, _CIRCUIT_FIELDS, version)
        _check(CircuitPayloadModel, parsed.payload, f"{where} (Circuit)")
        for position, op in enumerate(parsed.payload["operations"]):
            _validate_entry(op, version, registry, f"{where}.operations[{position}]")
        return
    operation_type = CATALOG[tag]
    _check_newer_fields(
        tag, parsed.payload, {f.name for f in operation_type.fields}, version
    )
    model = payload_model(operation_type, min(version, CURRENT_SCHEMA_VERSION))
    _check(model, parsed.payload, f"{where} ({tag})")
    for field in operation_type.fields:
        if field.kind not in (
            FieldKind.CIRCUIT,
            FieldKind.OPTIONAL_CIRCUIT,
            FieldKind.OPERATION,
        ):
            continue
        nested = parsed.payload.get(field.name)
        if nested is not None:
            _validate_entry(nested, version, registry, f"{where}.{field.name}")


def _validate_program(
    payload: Any, version: int, registry: Optional[DynamicRegistry], where: str
) -> None:
    _check_newer_fields(PROGRAM_TAG, payload, _PROGRAM_FIELDS, version)
    measurement = payload.get("measurement") if isinstance(payload, dict) else None
    if isinstance(measurement, dict):
        tag = measurement.get("variant_tag", MEASUREMENT_TAG)
        if tag != MEASUREMENT_TAG or measurement.get("dynamic"):
            raise UnknownVariantError(tag)
        inner = measurement.get("payload")
        _check_newer_fields(tag, inner, _MEASUREMENT_FIELDS, version)
        if isinstance(inner, dict):
            _check_newer_fields(f"{tag}.input", inner.get("input"), _INPUT_FIELDS, version)
    program = _check(QuantumProgramPayloadModel, payload, f"{where} ({PROGRAM_TAG})")
    measured = program.measurement.payload
    circuits = list(measured.circuits)
    if measured.constant_circuit is not None:
        circuits.append(measured.constant_circuit)
    for position, circuit in enumerate(circuits):
        if circuit.variant_tag != CIRCUIT_TAG or circuit.dynamic:
            raise WireFormatError(f"{where}.measurement expects circuits")
        _validate_entry(
            circuit.model_dump(), version, registry, f"{where}.measurement[{position}]"
        )


def validate_wire(wire: Any, registry: Optional[DynamicRegistry] = None) -> None:
    """
    Checks the structure of wire data without building any object

    Parameters
    ----------
    wire: Any
        Wire representation to check
    registry: Optional[DynamicRegistry]
        Registry whose tags are accepted, their payloads are opaque

    Raises
    ------
    WireFormatError
        If the structure does not match the schema of a variant
    UnknownVariantError
        If a tag is neither built-in nor registered
    SchemaVersionError
        If newer data uses fields this version does not know
    """
    envelope = _check(EnvelopeModel, wire, "wire envelope")
    entry = envelope.model_dump(exclude={"schema_version"})
    _validate_entry(entry, envelope.schema_version, registry, envelope.variant_tag)


def json_schema(tag: str) -> Dict[str, Any]:
    """
    Returns the JSON schema of the top level wire entry of a variant

    Raises
    ------
    UnknownVariantError
        If the tag is not a built-in variant, "Circuit" or "QuantumProgram"
    """
    if tag == CIRCUIT_TAG:
        payload = CircuitPayloadModel
    elif tag == PROGRAM_TAG:
        payload = QuantumProgramPayloadModel
    elif tag in CATALOG:
        payload = payload_model(CATALOG[tag])
    else:
        raise UnknownVariantError(tag)
    model = create_model(
        f"{tag}Wire",
        __base__=StrictBaseModel,
        schema_version=(Annotated[int, Field(ge=1, le=CURRENT_SCHEMA_VERSION)], ...),
        variant_tag=(Literal[tag], ...),
        payload=(payload, ...),
    )
    return model.model_json_schema()
