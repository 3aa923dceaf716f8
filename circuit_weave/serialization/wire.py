"""
Versioned wire representation of operations and circuits

A top level wire entry is a dict

    {"schema_version": int, "variant_tag": str, "payload": ...}

Nested operations and circuits drop the schema version. The payload of a
built-in operation maps field names to JSON values, the payload of a circuit
is {"number_qubits", "number_modes", "operations"}. Operations of a
registered type carry "dynamic": true and the payload produced by their
vtable. A quantum program is written as

    {"measurement": {"variant_tag": "PauliZProduct", "payload": ...},
     "input_parameter_names": [...]}

with the circuits of the measurement as nested circuit entries.
"""

import json
import logging
import numbers
from typing import Any, Dict, List, Optional, Union

import numpy as np

from circuit_weave.circuit.circuit import Circuit
from circuit_weave.circuit_weave import CURRENT_SCHEMA_VERSION, Config
from circuit_weave.exceptions import (
    ConstructionError,
    SchemaVersionError,
    UnknownVariantError,
    WireFormatError,
)
from circuit_weave.operation.catalog import CATALOG, CIRCUIT_TAG, PROGRAM_TAG
from circuit_weave.operation.fields import Field, FieldKind
from circuit_weave.operation.operation import Operation
from circuit_weave.operation.registry import DynamicRegistry, RegisteredOperation
from circuit_weave.parameter import NumericParameter
from circuit_weave.program.measurement import (
    MEASUREMENT_TAG,
    PauliZProduct,
    PauliZProductInput,
)
from circuit_weave.program.quantum_program import QuantumProgram

logger = logging.getLogger(__name__)

Serializable = Union[Circuit, Operation, RegisteredOperation, QuantumProgram]


def _writer_version(schema_version: Optional[int]) -> int:
    if schema_version is None:
        return Config().schema_version
    if isinstance(schema_version, bool) or not isinstance(schema_version, int):
        raise TypeError("schema_version must be an integer")
    if schema_version < 1 or schema_version > CURRENT_SCHEMA_VERSION:
        raise SchemaVersionError(
            f"Can not write schema version {schema_version}, supported versions "
            f"are 1 to {CURRENT_SCHEMA_VERSION}"
        )
    return schema_version


def serialize(
    obj: Serializable, schema_version: Optional[int] = None, minimal: bool = False
) -> Dict[str, Any]:
    """
    Converts a circuit, an operation or a quantum program into its wire
    representation

    Parameters
    ----------
    obj: Circuit | Operation | RegisteredOperation | QuantumProgram
        Object to serialize
    schema_version: Optional[int]
        Version to write, defaults to `Config().schema_version`
    minimal: bool
        Without an explicit `schema_version`, write the oldest version
        able to represent the object instead of the configured one

    Returns
    -------
    Dict[str, Any]
        JSON compatible wire representation

    Raises
    ------
    SchemaVersionError
        If the object uses a variant or a non-default field value that
        the requested version can not represent
    """
    if minimal and schema_version is None:
        schema_version = obj.min_supported_version()
    version = _writer_version(schema_version)
    wire = {"schema_version": version}
    wire.update(encode_entry(obj, version))
    return wire


def encode_entry(obj: Serializable, version: int) -> Dict[str, Any]:
    if isinstance(obj, QuantumProgram):
        return {
            "variant_tag": PROGRAM_TAG,
            "payload": {
                "measurement": _encode_measurement(obj.measurement, version),
                "input_parameter_names": list(obj.input_parameter_names),
            },
        }
    if isinstance(obj, Circuit):
        return {
            "variant_tag": CIRCUIT_TAG,
            "payload": {
                "number_qubits": obj.number_qubits,
                "number_modes": obj.number_modes,
                "operations": [encode_entry(op, version) for op in obj.operations()],
            },
        }
    if isinstance(obj, RegisteredOperation):
        return {
            "variant_tag": obj.tag,
            "dynamic": True,
            "payload": obj.encoded_payload(),
        }
    if isinstance(obj, Operation):
        operation_type = obj.operation_type
        if operation_type.since > version:
            raise SchemaVersionError(
                f"{obj.tag} was introduced in schema version {operation_type.since} "
                f"and can not be written as version {version}"
            )
        values = obj.fields
        payload = {}
        for field in operation_type.fields:
            value = values[field.name]
            if field.since > version:
                if not _is_default(field, value):
                    raise SchemaVersionError(
                        f"Field '{field.name}' of {obj.tag} was introduced in schema "
                        f"version {field.since}, its value can not be written as "
                        f"version {version}"
                    )
                continue
            payload[field.name] = _encode_value(field, value, version)
        return {"variant_tag": obj.tag, "payload": payload}
    raise TypeError(f"Can not serialize {type(obj).__name__}")


def _encode_measurement(measurement: PauliZProduct, version: int) -> Dict[str, Any]:
    measured_input = measurement.input
    constant = measurement.constant_circuit
    return {
        "variant_tag": MEASUREMENT_TAG,
        "payload": {
            "input": {
                "number_qubits": measured_input.number_qubits,
                "use_flipped_measurement": measured_input.use_flipped_measurement,
                "pauli_product_qubit_indices": {
                    readout: [[index, list(mask)] for index, mask in sorted(masks.items())]
                    for readout, masks in measured_input.pauli_product_qubit_indices.items()
                },
                "measured_exp_vals": {
                    name: [[index, weight] for index, weight in sorted(linear.items())]
                    for name, linear in measured_input.measured_exp_vals.items()
                },
            },
            "circuits": [encode_entry(circuit, version) for circuit in measurement.circuits],
            "constant_circuit": None if constant is None else encode_entry(constant, version),
        },
    }


def _is_default(field: Field, value: Any) -> bool:
    return field.is_default(field.normalize(value))


def _encode_parameter(parameter: NumericParameter) -> Union[float, str]:
    return parameter.value


def _encode_value(field: Field, value: Any, version: int) -> Any:
    if value is None:
        return None
    match field.kind:
        case FieldKind.QUBIT | FieldKind.MODE | FieldKind.INT:
            return int(value)
        case FieldKind.QUBITS | FieldKind.INTS:
            return [int(v) for v in value]
        case FieldKind.PARAMETER:
            return _encode_parameter(value)
        case FieldKind.PARAMETERS:
            return [_encode_parameter(v) for v in value]
        case FieldKind.FLOAT:
            return float(value)
        case FieldKind.BOOL:
            return bool(value)
        case FieldKind.STRING | FieldKind.REGISTER:
            return value
        case FieldKind.STRINGS:
            return list(value)
        case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT | FieldKind.OPERATION:
            return encode_entry(value, version)
        case FieldKind.COMPLEX_VECTOR:
            return [[float(v.real), float(v.imag)] for v in value]
        case FieldKind.COMPLEX_MATRIX:
            return [[[float(v.real), float(v.imag)] for v in row] for row in value]
        case FieldKind.FLOAT_MATRIX:
            return [[float(v) for v in row] for row in value]
        case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
            return [[int(k), int(v)] for k, v in sorted(value.items())]
    raise TypeError(f"Can not encode field kind {field.kind}")


def _reader_version(wire: Any) -> int:
    if not isinstance(wire, dict):
        raise WireFormatError(f"Wire data must be an object, got {type(wire).__name__}")
    if "schema_version" not in wire:
        raise WireFormatError("Wire data has no 'schema_version'")
    version = wire["schema_version"]
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise WireFormatError(f"Invalid schema version {version!r}")
    return version


def deserialize(
    wire: Dict[str, Any],
    registry: Optional[DynamicRegistry] = None,
    validate: Optional[bool] = None,
) -> Serializable:
    """
    Rebuilds a circuit or an operation from its wire representation

    Data written with an older schema version is read with the defaults
    of the fields introduced since. Data claiming a newer version is read
    as long as every tag and field is known.

    Parameters
    ----------
    wire: Dict[str, Any]
        Wire representation as produced by `serialize`
    registry: Optional[DynamicRegistry]
        Registry consulted for tags outside the built-in catalog
    validate: Optional[bool]
        Run `validate_wire` first, defaults to `Config().validate_on_load`

    Raises
    ------
    WireFormatError
        If the data is malformed or a required field is missing
    UnknownVariantError
        If a tag is neither built-in nor registered
    SchemaVersionError
        If newer data contains fields this reader does not know
    """
    if validate is None:
        validate = Config().validate_on_load
    if validate:
        from circuit_weave.serialization.schema import validate_wire

        validate_wire(wire, registry=registry)
    version = _reader_version(wire)
    if version < CURRENT_SCHEMA_VERSION:
        logger.debug(
            "Reading data written with schema version %d",
            version,
            extra={"schema_version": version},
        )
    elif version > CURRENT_SCHEMA_VERSION:
        logger.debug(
            "Reading data of schema version %d with a version %d reader",
            version,
            CURRENT_SCHEMA_VERSION,
            extra={"schema_version": version},
        )
    return decode_entry(wire, version, registry)


def _entry_parts(entry: Any) -> tuple:
    if not isinstance(entry, dict):
        raise WireFormatError(f"Wire entry must be an object, got {type(entry).__name__}")
    if "variant_tag" not in entry:
        raise WireFormatError("Wire entry has no 'variant_tag'")
    if "payload" not in entry:
        raise WireFormatError(f"Wire entry '{entry['variant_tag']}' has no 'payload'")
    tag = entry["variant_tag"]
    if not isinstance(tag, str):
        raise WireFormatError(f"Invalid variant tag {tag!r}")
    return tag, entry["payload"], bool(entry.get("dynamic", False))


def decode_entry(
    entry: Dict[str, Any], version: int, registry: Optional[DynamicRegistry]
) -> Serializable:
    tag, payload, dynamic = _entry_parts(entry)
    if tag == CIRCUIT_TAG and not dynamic:
        return _decode_circuit(payload, version, registry)
    if tag == PROGRAM_TAG and not dynamic:
        return _decode_program(payload, version, registry)
    if dynamic or tag not in CATALOG:
        if registry is None or tag not in registry:
            raise UnknownVariantError(tag)
        logger.debug(
            "Decoding registered operation '%s'", tag, extra={"variant_tag": tag}
        )
        return registry.decode(tag, payload)
    return _decode_operation(tag, payload, version, registry)


def _decode_circuit(
    payload: Any, version: int, registry: Optional[DynamicRegistry]
) -> Circuit:
    if not isinstance(payload, dict):
        raise WireFormatError("Circuit payload must be an object")
    unknown = set(payload) - {"number_qubits", "number_modes", "operations"}
    if unknown:
        _unknown_fields(CIRCUIT_TAG, unknown, version)
    if "operations" not in payload:
        raise WireFormatError("Circuit payload has no 'operations'")
    if not isinstance(payload["operations"], list):
        raise WireFormatError("Circuit 'operations' must be a list")
    try:
        circuit = Circuit(payload.get("number_qubits"), payload.get("number_modes"))
    except ValueError as err:
        raise WireFormatError(str(err)) from err
    operations = [decode_entry(op, version, registry) for op in payload["operations"]]
    for op in operations:
        if isinstance(op, (Circuit, QuantumProgram)):
            raise WireFormatError("Circuit 'operations' must hold operations only")
    try:
        circuit.extend(operations)
    except ConstructionError as err:
        raise WireFormatError(f"Invalid circuit: {err}") from err
    return circuit


def _unknown_fields(tag: str, unknown: set, version: int) -> None:
    names = ", ".join(sorted(unknown))
    if version > CURRENT_SCHEMA_VERSION:
        raise SchemaVersionError(
            f"{tag} data of schema version {version} uses unknown fields: {names}"
        )
    raise WireFormatError(f"{tag} payload has unknown fields: {names}")


_PROGRAM_FIELDS = frozenset({"measurement", "input_parameter_names"})
_MEASUREMENT_FIELDS = frozenset({"input", "circuits", "constant_circuit"})
_INPUT_FIELDS = frozenset(
    {
        "number_qubits",
        "use_flipped_measurement",
        "pauli_product_qubit_indices",
        "measured_exp_vals",
    }
)


def _object(payload: Any, tag: str, known: frozenset, version: int) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise WireFormatError(f"{tag} payload must be an object")
    unknown = set(payload) - known
    if unknown:
        _unknown_fields(tag, unknown, version)
    return payload


def _decode_program(
    payload: Any, version: int, registry: Optional[DynamicRegistry]
) -> QuantumProgram:
    payload = _object(payload, PROGRAM_TAG, _PROGRAM_FIELDS, version)
    for name in ("measurement", "input_parameter_names"):
        if name not in payload:
            raise WireFormatError(f"{PROGRAM_TAG} payload is missing the field '{name}'")
    measurement = _decode_measurement(payload["measurement"], version, registry)
    names = _decode_list(payload["input_parameter_names"], PROGRAM_TAG, "input_parameter_names")
    try:
        return QuantumProgram(measurement, names)
    except (TypeError, ValueError) as err:
        raise WireFormatError(f"Invalid {PROGRAM_TAG} payload: {err}") from err


def _decode_measurement(
    entry: Any, version: int, registry: Optional[DynamicRegistry]
) -> PauliZProduct:
    tag, payload, dynamic = _entry_parts(entry)
    if dynamic or tag != MEASUREMENT_TAG:
        raise UnknownVariantError(tag)
    payload = _object(payload, tag, _MEASUREMENT_FIELDS, version)
    for name in ("input", "circuits"):
        if name not in payload:
            raise WireFormatError(f"{tag} payload is missing the field '{name}'")
    measured_input = _decode_pauliz_input(payload["input"], version)
    circuits = [
        _decode_nested_circuit(circuit, version, registry, "circuits")
        for circuit in _decode_list(payload["circuits"], tag, "circuits")
    ]
    constant = payload.get("constant_circuit")
    if constant is not None:
        constant = _decode_nested_circuit(constant, version, registry, "constant_circuit")
    return PauliZProduct(measured_input, circuits, constant)


def _decode_nested_circuit(
    entry: Any, version: int, registry: Optional[DynamicRegistry], name: str
) -> Circuit:
    circuit = decode_entry(entry, version, registry)
    if not isinstance(circuit, Circuit):
        raise WireFormatError(f"{MEASUREMENT_TAG}.{name} expects circuits")
    return circuit


def _decode_pauliz_input(payload: Any, version: int) -> PauliZProductInput:
    tag = f"{MEASUREMENT_TAG}.input"
    payload = _object(payload, tag, _INPUT_FIELDS, version)
    for name in ("number_qubits", "pauli_product_qubit_indices", "measured_exp_vals"):
        if name not in payload:
            raise WireFormatError(f"{tag} is missing the field '{name}'")
    flipped = payload.get("use_flipped_measurement", False)
    if not isinstance(flipped, bool):
        raise WireFormatError(f"{tag}.use_flipped_measurement expects a boolean")
    products = payload["pauli_product_qubit_indices"]
    exp_vals = payload["measured_exp_vals"]
    if not isinstance(products, dict) or not isinstance(exp_vals, dict):
        raise WireFormatError(f"{tag} products and expectation values must be objects")
    masks = {}
    for readout, entries in products.items():
        for pair in _decode_list(entries, tag, readout):
            pair = _decode_list(pair, tag, readout)
            if len(pair) != 2:
                raise WireFormatError(f"{tag}.{readout} expects [index, qubits] pairs")
            index = _decode_int(pair[0], tag, readout)
            if index in masks:
                raise WireFormatError(f"{tag} defines the product {index} twice")
            qubits = [_decode_int(q, tag, readout) for q in _decode_list(pair[1], tag, readout)]
            masks[index] = (readout, qubits)
    if sorted(masks) != list(range(len(masks))):
        raise WireFormatError(f"{tag} product indices must run from 0 without gaps")
    try:
        measured_input = PauliZProductInput(
            _decode_int(payload["number_qubits"], tag, "number_qubits"), flipped
        )
        for index in range(len(masks)):
            readout, qubits = masks[index]
            measured_input.add_pauliz_product(readout, qubits)
        for name, entries in exp_vals.items():
            linear = {}
            for pair in _decode_list(entries, tag, name):
                pair = _decode_list(pair, tag, name)
                if len(pair) != 2:
                    raise WireFormatError(f"{tag}.{name} expects [index, coefficient] pairs")
                linear[_decode_int(pair[0], tag, name)] = _decode_number(pair[1], tag, name)
            measured_input.add_linear_exp_val(name, linear)
    except WireFormatError:
        raise
    except ValueError as err:
        raise WireFormatError(f"Invalid {tag}: {err}") from err
    return measured_input


def _decode_operation(
    tag: str, payload: Any, version: int, registry: Optional[DynamicRegistry]
) -> Operation:
    operation_type = CATALOG[tag]
    if not isinstance(payload, dict):
        raise WireFormatError(f"{tag} payload must be an object")
    unknown = set(payload) - {field.name for field in operation_type.fields}
    if unknown:
        _unknown_fields(tag, unknown, version)
    kwargs = {}
    for field in operation_type.fields:
        if field.name in payload:
            kwargs[field.name] = _decode_value(
                field, payload[field.name], version, registry, tag
            )
        elif field.since > version and not field.required:
            kwargs[field.name] = field.default
        else:
            raise WireFormatError(f"{tag} payload is missing the field '{field.name}'")
    try:
        return Operation(operation_type, **kwargs)
    except (TypeError, ValueError, KeyError) as err:
        raise WireFormatError(f"Invalid {tag} payload: {err}") from err


def _decode_number(value: Any, tag: str, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise WireFormatError(f"{tag}.{name} expects a number, got {value!r}")
    return float(value)


def _decode_int(value: Any, tag: str, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise WireFormatError(f"{tag}.{name} expects an integer, got {value!r}")
    return value


def _decode_list(value: Any, tag: str, name: str) -> List[Any]:
    if not isinstance(value, list):
        raise WireFormatError(f"{tag}.{name} expects a list, got {value!r}")
    return value


def _decode_parameter(value: Any, tag: str, name: str) -> Union[float, str]:
    if isinstance(value, str):
        return value
    return _decode_number(value, tag, name)


def _decode_complex(value: Any, tag: str, name: str) -> complex:
    pair = _decode_list(value, tag, name)
    if len(pair) != 2:
        raise WireFormatError(f"{tag}.{name} expects [real, imag] pairs")
    return complex(_decode_number(pair[0], tag, name), _decode_number(pair[1], tag, name))


def _decode_value(
    field: Field,
    value: Any,
    version: int,
    registry: Optional[DynamicRegistry],
    tag: str,
) -> Any:
    name = field.name
    if value is None and field.kind in (
        FieldKind.OPTIONAL_CIRCUIT,
        FieldKind.OPTIONAL_INT_MAP,
    ):
        return None
    match field.kind:
        case FieldKind.QUBIT | FieldKind.MODE | FieldKind.INT:
            return _decode_int(value, tag, name)
        case FieldKind.QUBITS | FieldKind.INTS:
            return [_decode_int(v, tag, name) for v in _decode_list(value, tag, name)]
        case FieldKind.PARAMETER:
            return _decode_parameter(value, tag, name)
        case FieldKind.PARAMETERS:
            return [_decode_parameter(v, tag, name) for v in _decode_list(value, tag, name)]
        case FieldKind.FLOAT:
            return _decode_number(value, tag, name)
        case FieldKind.BOOL:
            if not isinstance(value, bool):
                raise WireFormatError(f"{tag}.{name} expects a boolean, got {value!r}")
            return value
        case FieldKind.STRING | FieldKind.REGISTER:
            if not isinstance(value, str):
                raise WireFormatError(f"{tag}.{name} expects a string, got {value!r}")
            return value
        case FieldKind.STRINGS:
            names = _decode_list(value, tag, name)
            if not all(isinstance(v, str) for v in names):
                raise WireFormatError(f"{tag}.{name} expects a list of strings")
            return names
        case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
            circuit = decode_entry(value, version, registry)
            if not isinstance(circuit, Circuit):
                raise WireFormatError(f"{tag}.{name} expects a Circuit")
            return circuit
        case FieldKind.OPERATION:
            op = decode_entry(value, version, registry)
            if isinstance(op, Circuit):
                raise WireFormatError(f"{tag}.{name} expects an operation")
            return op
        case FieldKind.COMPLEX_VECTOR:
            return np.array(
                [_decode_complex(v, tag, name) for v in _decode_list(value, tag, name)],
                dtype=np.complex128,
            )
        case FieldKind.COMPLEX_MATRIX:
            return np.array(
                [
                    [_decode_complex(v, tag, name) for v in _decode_list(row, tag, name)]
                    for row in _decode_list(value, tag, name)
                ],
                dtype=np.complex128,
            )
        case FieldKind.FLOAT_MATRIX:
            return np.array(
                [
                    [_decode_number(v, tag, name) for v in _decode_list(row, tag, name)]
                    for row in _decode_list(value, tag, name)
                ],
                dtype=np.float64,
            )
        case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
            mapping = {}
            for pair in _decode_list(value, tag, name):
                pair = _decode_list(pair, tag, name)
                if len(pair) != 2:
                    raise WireFormatError(f"{tag}.{name} expects [key, value] pairs")
                mapping[_decode_int(pair[0], tag, name)] = _decode_int(pair[1], tag, name)
            return mapping
    raise WireFormatError(f"{tag}.{name} has an unsupported field kind")


def to_json(
    obj: Serializable,
    schema_version: Optional[int] = None,
    minimal: bool = False,
    **kwargs: Any,
) -> str:
    """
    Serializes to a JSON string, keyword arguments go to `json.dumps`
    """
    return json.dumps(
        serialize(obj, schema_version=schema_version, minimal=minimal), **kwargs
    )


def from_json(
    data: Union[str, bytes],
    registry: Optional[DynamicRegistry] = None,
    validate: Optional[bool] = None,
) -> Serializable:
    try:
        wire = json.loads(data)
    except json.JSONDecodeError as err:
        raise WireFormatError(f"Invalid JSON: {err}") from err
    return deserialize(wire, registry=registry, validate=validate)
