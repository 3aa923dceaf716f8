import jax.numpy as jnp
import numpy as np
import pytest
from jax.scipy.linalg import expm

from circuit_weave.circuit_weave import Session
from circuit_weave.exceptions import UnknownVariantError, UnstableOperationError
from circuit_weave.operation import (
    CATALOG,
    OPERATION_FAMILIES,
    MultiQubitGateType,
    Operation,
    available_gates_hqslang,
    is_builtin_tag,
    operation_type_for_tag,
)
from circuit_weave.operation import constructors

ALL_TAGS = sorted(CATALOG)
GATE_TAGS = sorted(available_gates_hqslang())


def _build(tag, operation_kwargs):
    operation_type = CATALOG[tag]
    with Session(unstable_operations=True):
        return Operation(operation_type, **operation_kwargs(operation_type))


def test_catalog_contains_every_family_member():
    members = [member for family in OPERATION_FAMILIES for member in family]
    assert len(CATALOG) == len(members)
    for member in members:
        assert CATALOG[member.tag] is member


def test_lookup_by_tag():
    assert operation_type_for_tag("RotateZ").name == "RotateZ"
    assert is_builtin_tag("CNOT")
    assert not is_builtin_tag("MyGate")
    with pytest.raises(UnknownVariantError):
        operation_type_for_tag("MyGate")


def test_unknown_variant_error_is_a_key_error():
    with pytest.raises(KeyError):
        operation_type_for_tag("NotAGate")


def test_available_gates():
    assert "RotateZ" in GATE_TAGS
    assert "CNOT" in GATE_TAGS
    assert "Toffoli" in GATE_TAGS
    assert "CallDefinedGate" not in GATE_TAGS
    assert "MeasureQubit" not in GATE_TAGS
    assert "PragmaDamping" not in GATE_TAGS


@pytest.mark.parametrize("tag", ALL_TAGS)
def test_every_variant_constructs(tag, operation_kwargs):
    op = _build(tag, operation_kwargs)
    assert op.tag == tag
    assert op.hqslang == tag
    assert op.tags[0] == "Operation"
    assert op.tags[-1] == tag
    assert not op.is_parametrized


@pytest.mark.parametrize("tag", ALL_TAGS)
def test_equal_payloads_are_equal(tag, operation_kwargs):
    first = _build(tag, operation_kwargs)
    second = _build(tag, operation_kwargs)
    assert first == second
    assert hash(first) == hash(second)


@pytest.mark.parametrize("tag", GATE_TAGS)
def test_gate_matrices_are_unitary(tag, operation_kwargs):
    op = _build(tag, operation_kwargs)
    matrix = op.matrix()
    dim = 2 ** len(op.involved_qubits())
    assert matrix.shape == (dim, dim)
    assert op.is_unitary()
    assert "GateOperation" in op.tags


def test_molmer_sorensen_matches_its_generator():
    x = np.array([[0, 1], [1, 0]], dtype=np.complex128)
    expected = expm(-1j * np.pi / 4 * jnp.kron(x, x))
    fixed = constructors.MolmerSorensenXX(0, 1).matrix()
    variable = constructors.VariableMSXX(0, 1, np.pi / 2).matrix()
    assert jnp.allclose(fixed, expected, atol=1e-12)
    assert jnp.allclose(fixed, variable, atol=1e-12)
    assert jnp.isclose(fixed[0, 3], -1j / np.sqrt(2))


@pytest.mark.parametrize(
    "tag", [tag for tag in ALL_TAGS if not CATALOG[tag].is_gate]
)
def test_non_gates_have_no_matrix(tag, operation_kwargs):
    op = _build(tag, operation_kwargs)
    assert op.matrix() is None
    assert not op.is_unitary()


def test_call_defined_gate_has_no_matrix(operation_kwargs):
    op = _build("CallDefinedGate", operation_kwargs)
    assert op.matrix() is None


@pytest.mark.parametrize(
    "operation_type", [member for member in CATALOG.values() if member.unstable]
)
def test_unstable_variants_need_opt_in(operation_type, operation_kwargs):
    kwargs = operation_kwargs(operation_type)
    with pytest.raises(UnstableOperationError):
        Operation(operation_type, **kwargs)
    with Session(unstable_operations=True):
        Operation(operation_type, **kwargs)


def test_unstable_members():
    unstable = {member.tag for member in CATALOG.values() if member.unstable}
    assert unstable == {"CallDefinedGate", "GateDefinition"}
    assert MultiQubitGateType.CallDefinedGate.since == 3


@pytest.mark.parametrize("tag", ALL_TAGS)
def test_constructor_functions(tag, operation_kwargs):
    operation_type = CATALOG[tag]
    kwargs = operation_kwargs(operation_type)
    function = getattr(constructors, tag)
    with Session(unstable_operations=True):
        positional = function(*[kwargs[field.name] for field in operation_type.fields])
        keyword = function(**kwargs)
    assert positional == keyword
    assert positional.operation_type is operation_type


def test_constructor_signature():
    import inspect

    signature = inspect.signature(constructors.CNOT)
    assert list(signature.parameters) == ["control", "target"]
    repeated = inspect.signature(constructors.PragmaRepeatedMeasurement)
    assert repeated.parameters["qubit_mapping"].default is None


def test_constructor_rejects_extra_positional_arguments():
    with pytest.raises(TypeError):
        constructors.PauliX(0, 1)


def test_constructor_rejects_duplicated_arguments():
    with pytest.raises(TypeError):
        constructors.RotateZ(0, 0.5, qubit=1)


def test_complex_fields_are_read_only(operation_kwargs):
    op = _build("PragmaSetStateVector", operation_kwargs)
    assert isinstance(op.statevector, np.ndarray)
    with pytest.raises(ValueError):
        op.statevector[0] = 2.0
