import sys
from pathlib import Path

import pytest

# Ensure local package is imported before any installed version
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from circuit_weave.circuit import Circuit  # noqa: E402
from circuit_weave.circuit_weave import Config  # noqa: E402
from circuit_weave.operation import (  # noqa: E402
    FieldKind,
    Operation,
    OperationVTable,
    RegisterAccess,
    SingleQubitGateType,
)


def _body() -> Circuit:
    circuit = Circuit()
    circuit += Operation(SingleQubitGateType.PauliX, qubit=0)
    return circuit


def build_kwargs(operation_type) -> dict:
    """
    Concrete constructor arguments for any catalog variant, gates get
    distinct qubits and numeric parameters
    """
    qubit = iter(range(100))
    mode = iter(range(100))
    kwargs = {}
    for field in operation_type.fields:
        match field.kind:
            case FieldKind.QUBIT:
                value = next(qubit)
            case FieldKind.QUBITS:
                value = [next(qubit), next(qubit)]
            case FieldKind.MODE:
                value = next(mode)
            case FieldKind.PARAMETER:
                value = 0.3
            case FieldKind.PARAMETERS:
                value = [0.1, 0.2]
            case FieldKind.FLOAT:
                value = 0.5
            case FieldKind.INT:
                value = 1
            case FieldKind.INTS:
                value = [0, 1]
            case FieldKind.BOOL:
                value = True
            case FieldKind.STRING:
                value = "label"
            case FieldKind.STRINGS:
                value = ["theta"]
            case FieldKind.REGISTER:
                value = "ro"
            case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
                value = _body()
            case FieldKind.OPERATION:
                value = Operation(SingleQubitGateType.PauliZ, qubit=0)
            case FieldKind.COMPLEX_VECTOR:
                value = [1.0, 0.0]
            case FieldKind.COMPLEX_MATRIX:
                value = [[1.0, 0.0], [0.0, 0.0]]
            case FieldKind.FLOAT_MATRIX:
                value = [[0.1, 0.0, 0.0], [0.0, 0.2, 0.0], [0.0, 0.0, 0.3]]
            case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
                value = {0: 1}
        kwargs[field.name] = value
    if operation_type is SingleQubitGateType.SingleQubitGate:
        kwargs.update(alpha_r=1.0, alpha_i=0.0, beta_r=0.0, beta_i=0.0)
    return kwargs


@pytest.fixture
def operation_kwargs():
    return build_kwargs


@pytest.fixture(autouse=True)
def restore_config():
    """
    Keeps Config changes of a test from leaking into the next one
    """
    cfg = Config()
    previous = (
        cfg.schema_version,
        cfg.validate_on_load,
        cfg.unstable_operations,
        cfg.matrix_atol,
    )
    yield cfg
    cfg.set_schema_version(previous[0])
    cfg.set_validate_on_load(previous[1])
    cfg.set_unstable_operations(previous[2])
    cfg.set_matrix_atol(previous[3])


def _encode_rotation(payload):
    return {"qubits": list(payload["qubits"]), "angle": payload["angle"]}


def _decode_rotation(encoded):
    return {"qubits": tuple(encoded["qubits"]), "angle": encoded["angle"]}


@pytest.fixture
def rotation_vtable() -> OperationVTable:
    """
    Vtable of a small registered gate acting on a list of qubits
    and writing into a readout register
    """
    return OperationVTable(
        involved_qubits=lambda payload: payload["qubits"],
        encode=_encode_rotation,
        decode=_decode_rotation,
        involved_registers=lambda payload: {"ro": RegisterAccess.WRITE},
        remap_qubits=lambda payload, mapping: {
            "qubits": tuple(mapping.get(q, q) for q in payload["qubits"]),
            "angle": payload["angle"],
        },
        is_parametrized=lambda payload: isinstance(payload["angle"], str),
        substitute=lambda payload, mapping: {
            "qubits": payload["qubits"],
            "angle": mapping.get(payload["angle"], payload["angle"])
            if isinstance(payload["angle"], str)
            else payload["angle"],
        },
        tags=("GateOperation",),
    )
