"""
Measurements writing their results into readout registers
"""

from typing import Tuple

from circuit_weave.operation.fields import MODE, QUBIT, Field, FieldKind, RegisterAccess
from circuit_weave.operation.operation_type import ALL_QUBITS, OperationTypeBase

_READOUT = Field("readout", FieldKind.REGISTER, access=RegisterAccess.WRITE)
_READOUT_INDEX = Field("readout_index", FieldKind.INT, index_of="readout")
_BASIS_CIRCUIT = Field("circuit", FieldKind.OPTIONAL_CIRCUIT, default=None)
_PRAGMA = ("PragmaOperation",)


class MeasurementType(OperationTypeBase):
    """
    MeasurementType

    The Pragma measurements are only available on simulators and act on
    the whole qubit register
    """

    MeasureQubit = ((QUBIT, _READOUT, _READOUT_INDEX), (), 1, 1)
    PragmaGetStateVector = ((_READOUT, _BASIS_CIRCUIT), _PRAGMA, 1, 2, ALL_QUBITS)
    PragmaGetDensityMatrix = ((_READOUT, _BASIS_CIRCUIT), _PRAGMA, 1, 3, ALL_QUBITS)
    PragmaGetOccupationProbability = (
        (_READOUT, _BASIS_CIRCUIT),
        _PRAGMA,
        1,
        4,
        ALL_QUBITS,
    )
    PragmaGetPauliProduct = (
        (
            Field("qubit_paulis", FieldKind.INT_MAP),
            _READOUT,
            Field("circuit", FieldKind.CIRCUIT),
        ),
        _PRAGMA,
        1,
        5,
        ALL_QUBITS,
    )
    PragmaRepeatedMeasurement = (
        (
            _READOUT,
            Field("number_measurements", FieldKind.INT),
            Field(
                "qubit_mapping",
                FieldKind.OPTIONAL_INT_MAP,
                default=None,
                since=2,
                index_of="readout",
            ),
        ),
        _PRAGMA,
        1,
        6,
        ALL_QUBITS,
    )
    PhotonDetection = ((MODE, _READOUT, _READOUT_INDEX), (), 2, 7)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "Measurement")
