import unittest

import pytest
from pydantic import BaseModel, ValidationError

from circuit_weave.circuit import Circuit
from circuit_weave.circuit_weave import CURRENT_SCHEMA_VERSION
from circuit_weave.exceptions import SchemaVersionError, UnknownVariantError, WireFormatError
from circuit_weave.operation import CATALOG, DynamicRegistry, MeasurementType, OperationVTable
from circuit_weave.operation.constructors import CNOT, PauliX, PragmaLoop, RotateZ
from circuit_weave.serialization import (
    deserialize,
    json_schema,
    payload_model,
    serialize,
    validate_wire,
)


class TestValidateWire(unittest.TestCase):

    def test_valid_data(self) -> None:
        body = Circuit()
        body += RotateZ(0, "theta")
        circuit = Circuit()
        circuit += CNOT(0, 1)
        circuit += PragmaLoop("n", body)
        validate_wire(serialize(circuit))

    def test_extra_envelope_entry(self) -> None:
        wire = serialize(CNOT(0, 1))
        wire["comment"] = "extra"
        with self.assertRaises(WireFormatError):
            validate_wire(wire)

    def test_non_strict_types(self) -> None:
        for payload in (
            {"control": "0", "target": 1},
            {"control": 0.0, "target": 1},
            {"control": -1, "target": 1},
            {"control": 0},
        ):
            wire = {"schema_version": 1, "variant_tag": "CNOT", "payload": payload}
            with self.assertRaises(WireFormatError):
                validate_wire(wire)

    def test_nested_entries_are_validated(self) -> None:
        body = Circuit()
        body += PauliX(0)
        wire = serialize(PragmaLoop(2, body))
        wire["payload"]["circuit"]["payload"]["operations"][0]["payload"]["qubit"] = "x"
        with self.assertRaises(WireFormatError):
            validate_wire(wire)

    def test_invalid_schema_version(self) -> None:
        wire = serialize(CNOT(0, 1))
        wire["schema_version"] = 0
        with self.assertRaises(WireFormatError):
            validate_wire(wire)

    def test_newer_circuit_with_unknown_field(self) -> None:
        circuit = Circuit()
        circuit += CNOT(0, 1)
        wire = serialize(circuit)
        wire["schema_version"] = CURRENT_SCHEMA_VERSION + 1
        wire["payload"]["layout"] = "linear"
        with self.assertRaises(SchemaVersionError):
            validate_wire(wire)
        with self.assertRaises(SchemaVersionError):
            deserialize(wire)
        wire["schema_version"] = CURRENT_SCHEMA_VERSION
        with self.assertRaises(WireFormatError):
            validate_wire(wire)

    def test_registered_payloads_are_opaque(self) -> None:
        registry = DynamicRegistry()
        registry.register(
            "Barrier",
            OperationVTable(involved_qubits=list, encode=list, decode=tuple),
        )
        wire = serialize(registry.create("Barrier", (0, 1)))
        validate_wire(wire, registry=registry)
        with self.assertRaises(UnknownVariantError):
            validate_wire(wire)


class TestPayloadModels(unittest.TestCase):

    def test_model_per_version(self) -> None:
        repeated = MeasurementType.PragmaRepeatedMeasurement
        old = payload_model(repeated, 1)
        current = payload_model(repeated)
        self.assertTrue(issubclass(old, BaseModel))
        self.assertIsNone(old(readout="ro", number_measurements=1).qubit_mapping)
        with self.assertRaises(ValidationError):
            current(readout="ro", number_measurements=1)
        self.assertIs(payload_model(repeated, 1), old)

    def test_model_forbids_extra_fields(self) -> None:
        model = payload_model(CATALOG["PauliX"])
        with self.assertRaises(ValidationError):
            model(qubit=0, theta=0.1)


@pytest.mark.parametrize("tag", sorted(CATALOG) + ["Circuit"])
def test_json_schema_for_every_variant(tag):
    schema = json_schema(tag)
    assert schema["title"] == f"{tag}Wire"
    assert set(schema["required"]) == {"schema_version", "variant_tag", "payload"}
    assert schema["additionalProperties"] is False


def test_json_schema_lists_payload_fields():
    schema = json_schema("RotateZ")
    payload = schema["$defs"]["RotateZPayload"]
    assert set(payload["properties"]) == {"qubit", "theta"}
    assert set(payload["required"]) == {"qubit", "theta"}


def test_json_schema_of_unknown_tag():
    with pytest.raises(UnknownVariantError):
        json_schema("MyGate")
