import copy
import math
import pickle
import unittest

import jax.numpy as jnp
import numpy as np
import pytest

from circuit_weave.circuit import Circuit
from circuit_weave.circuit_weave import Session
from circuit_weave.exceptions import UnevaluatedParameterError
from circuit_weave.operation import (
    BosonicOperationType,
    DefinitionType,
    MeasurementType,
    Operation,
    PragmaType,
    RegisterAccess,
    SingleQubitGateType,
    SpinBosonOperationType,
    TwoQubitGateType,
)
from circuit_weave.operation.constructors import (
    CNOT,
    DefinitionBit,
    GateDefinition,
    MeasureQubit,
    PauliX,
    PragmaConditional,
    PragmaDamping,
    PragmaGeneralNoise,
    PragmaGetPauliProduct,
    PragmaGetStateVector,
    PragmaRandomNoise,
    PragmaRepeatedMeasurement,
    PragmaSetNumberOfMeasurements,
    PragmaSetStateVector,
    PragmaStartDecompositionBlock,
    RotateX,
    RotateZ,
)


class TestOperationConstruction(unittest.TestCase):

    def test_fields_are_attributes(self) -> None:
        op = Operation(SingleQubitGateType.RotateZ, qubit=0, theta=0.5)
        self.assertEqual(op.qubit, 0)
        self.assertEqual(op.theta.value, 0.5)
        self.assertEqual(set(op.fields), {"qubit", "theta"})

    def test_missing_argument(self) -> None:
        with self.assertRaises(KeyError) as ctx:
            Operation(SingleQubitGateType.RotateZ, qubit=0)
        self.assertIn("theta", str(ctx.exception))

    def test_unexpected_argument(self) -> None:
        with self.assertRaises(TypeError):
            Operation(SingleQubitGateType.PauliX, qubit=0, theta=0.1)

    def test_negative_qubit(self) -> None:
        with self.assertRaises(ValueError):
            Operation(SingleQubitGateType.PauliX, qubit=-1)

    def test_bool_qubit(self) -> None:
        with self.assertRaises(TypeError):
            Operation(SingleQubitGateType.PauliX, qubit=True)

    def test_gate_on_duplicated_qubits(self) -> None:
        with self.assertRaises(ValueError):
            Operation(TwoQubitGateType.CNOT, control=1, target=1)

    def test_beam_splitter_on_duplicated_modes(self) -> None:
        with self.assertRaises(ValueError):
            Operation(
                BosonicOperationType.BeamSplitter, mode_0=0, mode_1=0, theta=0.1, phi=0.0
            )

    def test_state_vector_length(self) -> None:
        with self.assertRaises(ValueError):
            Operation(PragmaType.PragmaSetStateVector, statevector=[1.0, 0.0, 0.0])

    def test_general_noise_rates_shape(self) -> None:
        with self.assertRaises(ValueError):
            PragmaGeneralNoise(0, 1.0, [[0.1, 0.0], [0.0, 0.1]])

    def test_optional_field_default(self) -> None:
        op = PragmaRepeatedMeasurement("ro", 10)
        self.assertIsNone(op.qubit_mapping)

    def test_operations_are_immutable(self) -> None:
        op = PauliX(0)
        with self.assertRaises(AttributeError):
            op.qubit = 1
        with self.assertRaises(AttributeError):
            del op.qubit

    def test_int_map_is_copied_on_access(self) -> None:
        op = PragmaRepeatedMeasurement("ro", 10, {0: 1})
        mapping = op.qubit_mapping
        mapping[1] = 0
        self.assertEqual(op.qubit_mapping, {0: 1})

    def test_nested_circuit_is_copied(self) -> None:
        body = Circuit()
        body += PauliX(1)
        op = PragmaConditional("ro", 0, body)
        body += PauliX(2)
        self.assertEqual(len(op.circuit), 1)
        op.circuit.append(PauliX(3))
        self.assertEqual(len(op.circuit), 1)

    def test_repr(self) -> None:
        self.assertEqual(repr(RotateZ(0, "theta")), "RotateZ(qubit=0, theta='theta')")
        self.assertEqual(repr(CNOT(0, 1)), "CNOT(control=0, target=1)")

    def test_str_contains_matrix(self) -> None:
        text = str(PauliX(0))
        self.assertTrue(text.startswith("PauliX(qubit=0)"))
        self.assertIn("⎡", text)
        self.assertIn("⎦", text)


class TestOperationEquality(unittest.TestCase):

    def test_structural_equality(self) -> None:
        self.assertEqual(RotateZ(0, 0.5), RotateZ(0, 0.5))
        self.assertNotEqual(RotateZ(0, 0.5), RotateZ(1, 0.5))
        self.assertNotEqual(RotateZ(0, 0.5), RotateX(0, 0.5))
        self.assertNotEqual(RotateZ(0, 0.5), "RotateZ")

    def test_hash_is_stable(self) -> None:
        ops = {RotateZ(0, "theta"), RotateZ(0, "theta"), CNOT(0, 1)}
        self.assertEqual(len(ops), 2)

    def test_signed_zeros_hash_equal(self) -> None:
        plain = PragmaSetStateVector([1, 0])
        for vector in (
            np.conj(np.array([1, 0], dtype=np.complex128)),
            np.array([1.0, -0.0]),
            [complex(1, -0.0), complex(-0.0, -0.0)],
        ):
            signed = PragmaSetStateVector(vector)
            self.assertEqual(signed, plain)
            self.assertEqual(hash(signed), hash(plain))
        noise = PragmaGeneralNoise(0, 1.0, -0.0 * np.eye(3))
        self.assertEqual(hash(noise), hash(PragmaGeneralNoise(0, 1.0, np.zeros((3, 3)))))
        self.assertEqual(len({plain, PragmaSetStateVector(np.array([1.0, -0.0]))}), 1)

    def test_copy_returns_same_object(self) -> None:
        op = CNOT(0, 1)
        self.assertIs(copy.copy(op), op)
        self.assertIs(copy.deepcopy(op), op)

    def test_pickle(self) -> None:
        body = Circuit()
        body += RotateZ(0, "theta")
        for op in (
            CNOT(0, 1),
            RotateZ(0, "2*theta"),
            PragmaConditional("ro", 1, body),
            PragmaRepeatedMeasurement("ro", 10, {0: 1}),
            PragmaGeneralNoise(0, 1.0, np.eye(3)),
        ):
            restored = pickle.loads(pickle.dumps(op))
            self.assertEqual(restored, op)
            self.assertEqual(hash(restored), hash(op))


class TestOperationResources(unittest.TestCase):

    def test_involved_qubits_in_field_order(self) -> None:
        self.assertEqual(CNOT(3, 1).involved_qubits(), (3, 1))

    def test_measurement_registers(self) -> None:
        op = MeasureQubit(0, "ro", 1)
        self.assertEqual(op.involved_registers(), {"ro": RegisterAccess.WRITE})
        self.assertEqual(op.register_references(), [("ro", 1, RegisterAccess.WRITE)])
        self.assertIsNone(op.register_declaration())

    def test_read_access(self) -> None:
        op = PragmaSetNumberOfMeasurements(10, "ro")
        self.assertEqual(op.involved_registers(), {"ro": RegisterAccess.READ})

    def test_definition_declares_register(self) -> None:
        op = DefinitionBit("ro", 2, True)
        self.assertEqual(op.register_declaration(), ("ro", 2))
        self.assertEqual(op.involved_registers(), {"ro": RegisterAccess.WRITE})
        self.assertEqual(op.register_references(), [])
        self.assertIn("Definition", op.tags)

    def test_nested_circuit_resources(self) -> None:
        body = Circuit()
        body += PauliX(2)
        body += MeasureQubit(2, "ro", 0)
        op = PragmaConditional("flag", 0, body)
        self.assertEqual(op.involved_qubits(), (2,))
        self.assertEqual(
            op.involved_registers(),
            {"flag": RegisterAccess.READ, "ro": RegisterAccess.WRITE},
        )
        self.assertFalse(op.acts_on_all_qubits)

    def test_read_and_write_are_merged(self) -> None:
        body = Circuit()
        body += MeasureQubit(0, "ro", 0)
        op = PragmaConditional("ro", 0, body)
        self.assertEqual(op.involved_registers(), {"ro": RegisterAccess.READ_WRITE})

    def test_all_qubit_operations(self) -> None:
        self.assertTrue(PragmaGetStateVector("ro").acts_on_all_qubits)
        self.assertEqual(PragmaGetStateVector("ro").involved_qubits(), ())
        self.assertFalse(CNOT(0, 1).acts_on_all_qubits)

    def test_nested_all_qubit_operation(self) -> None:
        body = Circuit()
        body += PragmaGetStateVector("ro")
        self.assertTrue(PragmaConditional("flag", 0, body).acts_on_all_qubits)

    def test_modes(self) -> None:
        op = Operation(SpinBosonOperationType.JaynesCummings, qubit=1, mode=2, theta=0.1)
        self.assertEqual(op.involved_qubits(), (1,))
        self.assertEqual(op.involved_modes(), (2,))

    def test_gate_definition_body_is_not_involved(self) -> None:
        body = Circuit()
        body += RotateZ(0, "theta")
        with Session(unstable_operations=True):
            op = GateDefinition(body, "rz", [0], ["theta"])
        self.assertEqual(op.involved_qubits(), ())
        self.assertFalse(op.is_parametrized)
        self.assertIs(op.substitute({"theta": 1.0}), op)
        self.assertEqual(op.remap_qubits({0: 5}).circuit, body)


class TestOperationParameters(unittest.TestCase):

    def test_symbolic_matrix_raises(self) -> None:
        op = RotateZ(0, "theta")
        self.assertTrue(op.is_parametrized)
        self.assertEqual(op.free_variables(), frozenset({"theta"}))
        with self.assertRaises(UnevaluatedParameterError):
            op.matrix()

    def test_substitute(self) -> None:
        op = RotateZ(0, "theta")
        bound = op.substitute({"theta": math.pi})
        self.assertFalse(bound.is_parametrized)
        self.assertTrue(op.is_parametrized)
        expected = jnp.array([[-1j, 0], [0, 1j]])
        self.assertTrue(jnp.allclose(bound.matrix(), expected, atol=1e-12))

    def test_substitute_is_idempotent(self) -> None:
        op = RotateZ(0, "theta")
        once = op.substitute({"theta": 0.5})
        self.assertEqual(once.substitute({"theta": 0.5}), once)

    def test_concrete_substitute_returns_self(self) -> None:
        op = RotateZ(0, 0.5)
        self.assertIs(op.substitute({"theta": 1.0}), op)

    def test_nested_substitution(self) -> None:
        body = Circuit()
        body += RotateZ(0, "theta")
        op = PragmaConditional("ro", 0, body)
        self.assertEqual(op.free_variables(), frozenset({"theta"}))
        bound = op.substitute({"theta": 0.5})
        self.assertFalse(bound.is_parametrized)
        self.assertEqual(bound.circuit[0], RotateZ(0, 0.5))

    def test_remap_qubits(self) -> None:
        self.assertEqual(CNOT(0, 1).remap_qubits({0: 1, 1: 0}), CNOT(1, 0))
        self.assertEqual(CNOT(0, 1).remap_qubits({0: 2}), CNOT(2, 1))

    def test_remap_qubit_mapping_keys(self) -> None:
        op = PragmaRepeatedMeasurement("ro", 10, {0: 1})
        self.assertEqual(op.remap_qubits({0: 3}).qubit_mapping, {3: 1})

    def test_remap_reordering_dictionary_values(self) -> None:
        op = PragmaStartDecompositionBlock([0, 1], {0: 1, 1: 0})
        remapped = op.remap_qubits({0: 2, 1: 3})
        self.assertEqual(remapped.reordering_dictionary, {2: 3, 3: 2})
        self.assertEqual(remapped.qubits, (2, 3))

    def test_mapped_qubits(self) -> None:
        self.assertEqual(
            PragmaRepeatedMeasurement("ro", 10, {4: 0, 2: 1}).mapped_qubits(), (4, 2)
        )
        self.assertEqual(PragmaRepeatedMeasurement("ro", 10).mapped_qubits(), ())
        self.assertEqual(
            PragmaStartDecompositionBlock([0, 1], {0: 5}).mapped_qubits(), (0, 5)
        )
        self.assertEqual(
            PragmaGetPauliProduct({3: 1, 1: 3}, "ro", Circuit()).mapped_qubits(),
            (3, 1),
        )
        self.assertEqual(CNOT(0, 1).mapped_qubits(), ())

    def test_qubit_mapping_indexes_the_readout(self) -> None:
        op = PragmaRepeatedMeasurement("ro", 10, {0: 1, 1: 0})
        self.assertEqual(
            op.register_references(),
            [("ro", 1, RegisterAccess.WRITE), ("ro", 0, RegisterAccess.WRITE)],
        )
        self.assertEqual(op.involved_registers(), {"ro": RegisterAccess.WRITE})

    def test_is_unitary_uses_config_tolerance(self) -> None:
        op = Operation(
            SingleQubitGateType.SingleQubitGate,
            qubit=0,
            alpha_r=1.0001,
            alpha_i=0.0,
            beta_r=0.0,
            beta_i=0.0,
            global_phase=0.0,
        )
        self.assertFalse(op.is_unitary())
        with Session(matrix_atol=1e-2):
            self.assertTrue(op.is_unitary())


class TestNoisePragmas(unittest.TestCase):

    def test_damping_probability(self) -> None:
        op = PragmaDamping(0, 0.5, 0.2)
        self.assertAlmostEqual(op.probability(), 1 - math.exp(-0.1))

    def test_depolarising_probability(self) -> None:
        op = Operation(PragmaType.PragmaDepolarising, qubit=0, gate_time=0.5, rate=0.2)
        self.assertAlmostEqual(op.probability(), 0.75 * (1 - math.exp(-0.1)))

    def test_dephasing_probability(self) -> None:
        op = Operation(PragmaType.PragmaDephasing, qubit=0, gate_time=0.5, rate=0.2)
        self.assertAlmostEqual(op.probability(), 0.5 * (1 - math.exp(-0.2)))

    def test_random_noise_probability(self) -> None:
        op = PragmaRandomNoise(0, 1.0, 0.1, 0.2)
        expected = 0.75 * (1 - math.exp(-0.1)) + 0.5 * (1 - math.exp(-0.4))
        self.assertAlmostEqual(op.probability(), expected)

    def test_general_noise_has_no_probability(self) -> None:
        op = PragmaGeneralNoise(0, 1.0, np.eye(3))
        with self.assertRaises(TypeError):
            op.probability()
        self.assertEqual(op.powercf(2).gate_time.value, 2.0)

    def test_probability_of_non_noise(self) -> None:
        with self.assertRaises(TypeError):
            CNOT(0, 1).probability()

    def test_powercf(self) -> None:
        op = PragmaDamping(0, 0.5, 0.2)
        doubled = op.powercf(2)
        self.assertEqual(doubled.gate_time.value, 1.0)
        self.assertAlmostEqual(doubled.probability(), 1 - math.exp(-0.2))

    def test_symbolic_powercf(self) -> None:
        op = PragmaDamping(0, 0.5, 0.2).powercf("n")
        self.assertTrue(op.is_parametrized)
        self.assertAlmostEqual(
            op.substitute({"n": 4}).probability(), 1 - math.exp(-0.4)
        )

    def test_powercf_of_non_noise(self) -> None:
        with self.assertRaises(TypeError):
            CNOT(0, 1).powercf(2)


@pytest.mark.parametrize(
    "operation_type,shape",
    [
        (BosonicOperationType.Squeezing, (4, 4)),
        (BosonicOperationType.PhaseShift, (4, 4)),
        (BosonicOperationType.PhaseDisplacement, (4, 4)),
        (BosonicOperationType.BeamSplitter, (16, 16)),
        (SpinBosonOperationType.QuantumRabi, (8, 8)),
        (SpinBosonOperationType.LongitudinalCoupling, (8, 8)),
        (SpinBosonOperationType.JaynesCummings, (8, 8)),
    ],
)
def test_mode_operators(operation_type, shape, operation_kwargs):
    op = Operation(operation_type, **operation_kwargs(operation_type))
    operator = op.operator(4)
    assert operator.shape == shape
    identity = jnp.identity(shape[0])
    assert jnp.allclose(operator @ jnp.conjugate(operator).T, identity, atol=1e-8)
    assert op.matrix() is None


def test_operator_without_realisation(operation_kwargs):
    operation_type = SpinBosonOperationType.SingleExcitationLoad
    op = Operation(operation_type, **operation_kwargs(operation_type))
    assert op.operator(3) is None


def test_operator_cutoff_must_be_positive(operation_kwargs):
    operation_type = BosonicOperationType.PhaseShift
    op = Operation(operation_type, **operation_kwargs(operation_type))
    with pytest.raises(ValueError):
        op.operator(0)


def test_register_declaration_of_every_definition(operation_kwargs):
    for operation_type in (
        DefinitionType.DefinitionBit,
        DefinitionType.DefinitionFloat,
        DefinitionType.DefinitionComplex,
        DefinitionType.DefinitionUsize,
    ):
        op = Operation(operation_type, **operation_kwargs(operation_type))
        assert op.register_declaration() == ("ro", 1)


def test_pauli_product_touches_mapped_qubits(operation_kwargs):
    operation_type = MeasurementType.PragmaGetPauliProduct
    op = Operation(operation_type, **operation_kwargs(operation_type))
    assert op.acts_on_all_qubits
    assert op.remap_qubits({0: 4}).qubit_paulis == {4: 1}
