import copy
import unittest

import pytest

from circuit_weave.circuit import Circuit, OperationsView
from circuit_weave.exceptions import ConstructionError, UnevaluatedParameterError
from circuit_weave.operation import DynamicRegistry, OperationVTable, RegisterAccess
from circuit_weave.operation.constructors import (
    CNOT,
    BeamSplitter,
    DefinitionBit,
    DefinitionFloat,
    Hadamard,
    InputBit,
    MeasureQubit,
    PauliX,
    PragmaConditional,
    PragmaDamping,
    PragmaGetPauliProduct,
    PragmaGetStateVector,
    PragmaLoop,
    PragmaRepeatedMeasurement,
    PragmaStartDecompositionBlock,
    RotateX,
    RotateZ,
)


class TestCircuitConstruction(unittest.TestCase):

    def test_empty_circuit(self) -> None:
        circuit = Circuit()
        self.assertEqual(len(circuit), 0)
        self.assertIsNone(circuit.number_qubits)
        self.assertEqual(circuit.number_of_qubits(), 0)
        self.assertEqual(list(circuit.operations()), [])

    def test_append_keeps_program_order(self) -> None:
        circuit = Circuit()
        circuit.append(Hadamard(0))
        circuit.add(CNOT(0, 1))
        circuit += RotateZ(1, 0.5)
        self.assertEqual(
            list(circuit), [Hadamard(0), CNOT(0, 1), RotateZ(1, 0.5)]
        )
        self.assertEqual(circuit[1], CNOT(0, 1))
        self.assertEqual(circuit[-1], RotateZ(1, 0.5))
        self.assertEqual(circuit[:2], [Hadamard(0), CNOT(0, 1)])

    def test_invalid_bounds(self) -> None:
        with self.assertRaises(ValueError):
            Circuit(-1)
        with self.assertRaises(ValueError):
            Circuit(True)

    def test_rejects_non_operations(self) -> None:
        with self.assertRaises(TypeError):
            Circuit().append("CNOT")

    def test_qubit_out_of_bounds(self) -> None:
        circuit = Circuit(2)
        circuit += CNOT(0, 1)
        with self.assertRaises(ConstructionError):
            circuit.append(CNOT(1, 2))
        self.assertEqual(list(circuit), [CNOT(0, 1)])

    def test_construction_error_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            Circuit(1).append(PauliX(1))

    def test_mode_out_of_bounds(self) -> None:
        circuit = Circuit(number_modes=2)
        circuit += BeamSplitter(0, 1, 0.1, 0.2)
        with self.assertRaises(ConstructionError):
            circuit += BeamSplitter(1, 2, 0.1, 0.2)
        self.assertEqual(len(circuit), 1)

    def test_nested_qubits_are_checked(self) -> None:
        body = Circuit()
        body += PauliX(3)
        with self.assertRaises(ConstructionError):
            Circuit(2).append(PragmaLoop(2, body))

    def test_mapped_qubits_are_checked(self) -> None:
        circuit = Circuit(2)
        circuit += DefinitionBit("ro", 2, True)
        with self.assertRaises(ConstructionError):
            circuit += PragmaGetPauliProduct({7: 1}, "ro", Circuit())
        with self.assertRaises(ConstructionError):
            circuit += PragmaRepeatedMeasurement("ro", 10, {9: 0})
        with self.assertRaises(ConstructionError):
            circuit += PragmaStartDecompositionBlock([0, 1], {0: 4, 1: 0})
        self.assertEqual(len(circuit), 1)
        circuit += PragmaGetPauliProduct({1: 3}, "ro", Circuit())
        circuit += PragmaStartDecompositionBlock([0, 1], {0: 1, 1: 0})
        self.assertEqual(len(circuit), 3)

    def test_remap_checks_mapped_qubits(self) -> None:
        circuit = Circuit(2)
        circuit += PragmaRepeatedMeasurement("ro", 10, {1: 0})
        with self.assertRaises(ConstructionError):
            circuit.remap_qubits({1: 2})

    def test_extend_is_atomic(self) -> None:
        circuit = Circuit(2)
        with self.assertRaises(ConstructionError):
            circuit.extend([PauliX(0), PauliX(1), PauliX(2)])
        self.assertEqual(len(circuit), 0)

    def test_operations_view_is_read_only_and_restartable(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        circuit += PauliX(1)
        view = circuit.operations()
        self.assertIsInstance(view, OperationsView)
        self.assertEqual(list(view), list(view))
        self.assertEqual(len(view), 2)
        with self.assertRaises(TypeError):
            view[0] = PauliX(2)


class TestCircuitRegisters(unittest.TestCase):

    def test_measurement_into_defined_register(self) -> None:
        circuit = Circuit()
        circuit += DefinitionBit("ro", 2, True)
        circuit += MeasureQubit(0, "ro", 1)
        self.assertEqual(circuit.involved_registers(), {"ro": RegisterAccess.WRITE})
        self.assertEqual(circuit.definitions(), [DefinitionBit("ro", 2, True)])

    def test_index_outside_register(self) -> None:
        circuit = Circuit()
        circuit += DefinitionBit("ro", 2, True)
        with self.assertRaises(ConstructionError):
            circuit += MeasureQubit(0, "ro", 2)
        with self.assertRaises(ConstructionError):
            circuit += InputBit("ro", 5, True)
        self.assertEqual(len(circuit), 1)

    def test_qubit_mapping_inside_readout(self) -> None:
        circuit = Circuit(2)
        circuit += DefinitionBit("ro", 2, True)
        with self.assertRaises(ConstructionError):
            circuit += PragmaRepeatedMeasurement("ro", 10, {0: 5})
        circuit += PragmaRepeatedMeasurement("ro", 10, {0: 1, 1: 0})
        self.assertEqual(len(circuit), 2)

    def test_register_defined_twice(self) -> None:
        circuit = Circuit()
        circuit += DefinitionBit("ro", 2, True)
        with self.assertRaises(ConstructionError):
            circuit += DefinitionFloat("ro", 1, False)

    def test_definition_after_use(self) -> None:
        circuit = Circuit()
        circuit += MeasureQubit(0, "ro", 0)
        with self.assertRaises(ConstructionError):
            circuit += DefinitionBit("ro", 1, True)

    def test_conditional_reads_register(self) -> None:
        body = Circuit()
        body += PauliX(1)
        circuit = Circuit()
        circuit += DefinitionBit("ro", 1, True)
        circuit += MeasureQubit(0, "ro", 0)
        circuit += PragmaConditional("ro", 0, body)
        self.assertEqual(
            circuit.involved_registers(), {"ro": RegisterAccess.READ_WRITE}
        )
        with self.assertRaises(ConstructionError):
            circuit += PragmaConditional("ro", 1, body)

    def test_remove_definition_in_use(self) -> None:
        circuit = Circuit()
        circuit += DefinitionBit("ro", 1, True)
        circuit += MeasureQubit(0, "ro", 0)
        circuit += DefinitionBit("other", 1, True)
        # removing "ro" turns the measurement into a free reference, fine,
        # but moving a definition behind its use is not
        circuit.remove(0)
        self.assertEqual(len(circuit), 2)
        with self.assertRaises(ConstructionError):
            circuit.insert(2, DefinitionBit("ro", 1, True))
        self.assertEqual(len(circuit), 2)


class TestCircuitEditing(unittest.TestCase):

    def test_insert(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        circuit += PauliX(2)
        circuit.insert(1, PauliX(1))
        self.assertEqual(list(circuit), [PauliX(0), PauliX(1), PauliX(2)])

    def test_insert_out_of_bounds(self) -> None:
        circuit = Circuit(2)
        circuit += PauliX(0)
        with self.assertRaises(ConstructionError):
            circuit.insert(0, PauliX(5))
        self.assertEqual(list(circuit), [PauliX(0)])

    def test_insert_index_out_of_range(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        with self.assertRaises(IndexError):
            circuit.insert(2, PauliX(1))
        with self.assertRaises(IndexError):
            circuit.insert(-2, PauliX(1))
        circuit.insert(1, PauliX(1))
        circuit.insert(-2, PauliX(2))
        self.assertEqual(list(circuit), [PauliX(2), PauliX(0), PauliX(1)])

    def test_remove(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        circuit += PauliX(1)
        self.assertEqual(circuit.remove(0), PauliX(0))
        self.assertEqual(list(circuit), [PauliX(1)])
        with self.assertRaises(IndexError):
            circuit.remove(5)

    def test_add_circuits(self) -> None:
        first = Circuit()
        first += PauliX(0)
        second = Circuit()
        second += PauliX(1)
        combined = first + second
        self.assertEqual(list(combined), [PauliX(0), PauliX(1)])
        self.assertEqual(len(first), 1)
        first += [PauliX(2), PauliX(3)]
        self.assertEqual(len(first), 3)

    def test_copy_is_independent(self) -> None:
        circuit = Circuit(3)
        circuit += PauliX(0)
        for duplicate in (circuit.copy(), copy.copy(circuit), copy.deepcopy(circuit)):
            duplicate += PauliX(1)
            self.assertEqual(len(circuit), 1)
            self.assertEqual(duplicate.number_qubits, 3)

    def test_equality(self) -> None:
        first = Circuit(2)
        first += CNOT(0, 1)
        second = Circuit(2)
        second += CNOT(0, 1)
        self.assertEqual(first, second)
        self.assertNotEqual(first, Circuit(3) + CNOT(0, 1))
        with self.assertRaises(TypeError):
            hash(first)


class TestCircuitParameters(unittest.TestCase):

    def _circuit(self) -> Circuit:
        circuit = Circuit()
        circuit += RotateZ(0, "theta")
        circuit += RotateX(1, "2*phi")
        circuit += CNOT(0, 1)
        return circuit

    def test_free_variables(self) -> None:
        circuit = self._circuit()
        self.assertTrue(circuit.is_parametrized())
        self.assertEqual(circuit.free_variables(), frozenset({"theta", "phi"}))

    def test_substitute_parameters(self) -> None:
        circuit = self._circuit()
        bound = circuit.substitute_parameters({"theta": 1.0, "phi": 0.25})
        self.assertFalse(bound.is_parametrized())
        self.assertEqual(bound[1], RotateX(1, 0.5))
        self.assertTrue(circuit.is_parametrized())

    def test_substitution_is_idempotent(self) -> None:
        mapping = {"theta": 1.0, "phi": 0.25}
        once = self._circuit().substitute_parameters(mapping)
        self.assertEqual(once.substitute_parameters(mapping), once)

    def test_missing_variable(self) -> None:
        circuit = self._circuit()
        with self.assertRaises(UnevaluatedParameterError) as ctx:
            circuit.substitute_parameters({"theta": 1.0})
        self.assertEqual(ctx.exception.free_variables, frozenset({"phi"}))
        self.assertEqual(circuit.free_variables(), frozenset({"theta", "phi"}))

    def test_partial_substitution(self) -> None:
        partial = self._circuit().substitute_parameters({"theta": 1.0}, strict=False)
        self.assertEqual(partial.free_variables(), frozenset({"phi"}))

    def test_remap_qubits(self) -> None:
        circuit = Circuit()
        circuit += CNOT(0, 1)
        circuit += MeasureQubit(1, "ro", 0)
        remapped = circuit.remap_qubits({0: 1, 1: 0})
        self.assertEqual(list(remapped), [CNOT(1, 0), MeasureQubit(0, "ro", 0)])

    def test_remap_respects_bounds(self) -> None:
        circuit = Circuit(2)
        circuit += PauliX(0)
        with self.assertRaises(ConstructionError):
            circuit.remap_qubits({0: 4})


class TestCircuitQueries(unittest.TestCase):

    def test_involved_resources(self) -> None:
        circuit = Circuit()
        circuit += CNOT(2, 0)
        circuit += BeamSplitter(1, 0, 0.1, 0.0)
        self.assertEqual(circuit.involved_qubits(), (2, 0))
        self.assertEqual(circuit.involved_modes(), (1, 0))
        self.assertEqual(circuit.number_of_qubits(), 3)

    def test_declared_number_of_qubits(self) -> None:
        circuit = Circuit(5)
        circuit += PauliX(0)
        self.assertEqual(circuit.number_of_qubits(), 5)

    def test_all_qubit_operation(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        self.assertFalse(circuit.acts_on_all_qubits)
        circuit += PragmaGetStateVector("ro")
        self.assertTrue(circuit.acts_on_all_qubits)

    def test_filter_and_count(self) -> None:
        circuit = Circuit()
        circuit += RotateZ(0, 0.1)
        circuit += PauliX(0)
        circuit += PragmaDamping(0, 1.0, 0.1)
        circuit += CNOT(0, 1)
        self.assertEqual(circuit.filter_by_tag("Rotation"), [RotateZ(0, 0.1)])
        self.assertEqual(len(circuit.filter_by_tag("GateOperation")), 3)
        self.assertEqual(
            circuit.count_occurences(["SingleQubitGateOperation", "PragmaOperation"]), 3
        )
        self.assertEqual(
            circuit.get_operation_types(), {"RotateZ", "PauliX", "PragmaDamping", "CNOT"}
        )

    def test_str(self) -> None:
        circuit = Circuit()
        circuit += PauliX(0)
        self.assertIn("0: PauliX(qubit=0)", str(circuit))


def test_registered_operations_in_circuit():
    registry = DynamicRegistry()
    registry.register(
        "Barrier",
        OperationVTable(
            involved_qubits=lambda payload: payload,
            encode=list,
            decode=tuple,
        ),
    )
    circuit = Circuit(3)
    circuit += registry.create("Barrier", (0, 2))
    assert circuit.involved_qubits() == (0, 2)
    with pytest.raises(ConstructionError):
        circuit += registry.create("Barrier", (3,))
