"""
Pragma operations

Pragmas are instructions for simulators or backends. They carry no
unitary matrix, noise pragmas additionally expose their error probability.
"""

import math
from typing import Any, Optional, Tuple

from circuit_weave.operation.fields import (
    QUBIT,
    QUBITS,
    Field,
    FieldKind,
    RegisterAccess,
)
from circuit_weave.operation.operation_type import ALL_QUBITS, OperationTypeBase

_GATE_TIME = Field("gate_time", FieldKind.PARAMETER)
_RATE = Field("rate", FieldKind.PARAMETER)
_NOISE = ("PragmaNoiseOperation",)
_NOISE_PROBA = ("PragmaNoiseOperation", "PragmaNoiseProbaOperation")
_BODY = Field("circuit", FieldKind.CIRCUIT)


class PragmaType(OperationTypeBase):
    """
    PragmaType

    Noise pragmas describe decoherence during `gate_time` with the given
    rates, `probability` and `powercf` are defined for them
    """

    PragmaSetNumberOfMeasurements = (
        (
            Field("number_measurements", FieldKind.INT),
            Field("readout", FieldKind.REGISTER, access=RegisterAccess.READ),
        ),
        (),
        1,
        1,
    )
    PragmaSetStateVector = (
        (Field("statevector", FieldKind.COMPLEX_VECTOR),),
        (),
        1,
        2,
        ALL_QUBITS,
    )
    PragmaSetDensityMatrix = (
        (Field("density_matrix", FieldKind.COMPLEX_MATRIX),),
        (),
        1,
        3,
        ALL_QUBITS,
    )
    PragmaRepeatGate = (
        (Field("repetition_coefficient", FieldKind.INT),),
        (),
        1,
        4,
        ALL_QUBITS,
    )
    PragmaOverrotation = (
        (
            Field("gate_hqslang", FieldKind.STRING),
            QUBITS,
            Field("amplitude", FieldKind.FLOAT),
            Field("variance", FieldKind.FLOAT),
        ),
        (),
        1,
        5,
    )
    PragmaBoostNoise = (
        (Field("noise_coefficient", FieldKind.PARAMETER),),
        (),
        1,
        6,
        ALL_QUBITS,
    )
    PragmaStopParallelBlock = (
        (QUBITS, Field("execution_time", FieldKind.PARAMETER)),
        (),
        1,
        7,
    )
    PragmaGlobalPhase = (
        (Field("phase", FieldKind.PARAMETER),),
        (),
        1,
        8,
        ALL_QUBITS,
    )
    PragmaSleep = ((QUBITS, Field("sleep_time", FieldKind.PARAMETER)), (), 1, 9)
    PragmaActiveReset = ((QUBIT,), (), 1, 10)
    PragmaStartDecompositionBlock = (
        (QUBITS, Field("reordering_dictionary", FieldKind.INT_MAP, qubit_values=True)),
        (),
        1,
        11,
    )
    PragmaStopDecompositionBlock = ((QUBITS,), (), 1, 12)
    PragmaDamping = ((QUBIT, _GATE_TIME, _RATE), _NOISE_PROBA, 1, 13)
    PragmaDepolarising = ((QUBIT, _GATE_TIME, _RATE), _NOISE_PROBA, 1, 14)
    PragmaDephasing = ((QUBIT, _GATE_TIME, _RATE), _NOISE_PROBA, 1, 15)
    PragmaRandomNoise = (
        (
            QUBIT,
            _GATE_TIME,
            Field("depolarising_rate", FieldKind.PARAMETER),
            Field("dephasing_rate", FieldKind.PARAMETER),
        ),
        _NOISE_PROBA,
        1,
        16,
    )
    PragmaGeneralNoise = (
        (QUBIT, _GATE_TIME, Field("rates", FieldKind.FLOAT_MATRIX)),
        _NOISE,
        1,
        17,
    )
    PragmaConditional = (
        (
            Field("condition_register", FieldKind.REGISTER, access=RegisterAccess.READ),
            Field("condition_index", FieldKind.INT, index_of="condition_register"),
            _BODY,
        ),
        (),
        1,
        18,
    )
    PragmaControlledCircuit = (
        (Field("controlling_qubit", FieldKind.QUBIT), _BODY),
        (),
        2,
        19,
    )
    PragmaLoop = ((Field("repetitions", FieldKind.PARAMETER), _BODY), (), 2, 20)
    PragmaAnnotatedOp = (
        (
            Field("operation", FieldKind.OPERATION),
            Field("annotation", FieldKind.STRING),
        ),
        (),
        2,
        21,
    )
    PragmaSimulationRepetitions = (
        (Field("repetitions", FieldKind.INT),),
        (),
        3,
        22,
    )

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "PragmaOperation")

    @property
    def is_noise(self) -> bool:
        return "PragmaNoiseOperation" in self.extra_tags

    def compute_probability(self, **kwargs: Any) -> Optional[float]:
        """
        Probability of the noise process to occur during `gate_time`

        Parameters
        ----------
        **kwargs: Any
            Evaluated field values of the operation

        Returns
        -------
        Optional[float]
            The probability, None for pragmas without one
        """
        match self:
            case PragmaType.PragmaDamping:
                return 1.0 - math.exp(-kwargs["gate_time"] * kwargs["rate"])
            case PragmaType.PragmaDepolarising:
                return 0.75 * (1.0 - math.exp(-kwargs["gate_time"] * kwargs["rate"]))
            case PragmaType.PragmaDephasing:
                return 0.5 * (1.0 - math.exp(-2.0 * kwargs["gate_time"] * kwargs["rate"]))
            case PragmaType.PragmaRandomNoise:
                depolarising = 0.75 * (
                    1.0 - math.exp(-kwargs["gate_time"] * kwargs["depolarising_rate"])
                )
                dephasing = 0.5 * (
                    1.0 - math.exp(-2.0 * kwargs["gate_time"] * kwargs["dephasing_rate"])
                )
                return depolarising + dephasing
        return None
