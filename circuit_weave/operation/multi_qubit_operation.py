"""
Gates acting on three, four or an arbitrary number of qubits
"""

from typing import Any, Optional, Tuple

import jax.numpy as jnp
import numpy as np

from circuit_weave._math.ops import (
    controlled_operator,
    multi_qubit_ms_operator,
    multi_qubit_zz_operator,
    phase_shift_state1_operator,
    phase_shifted_controlled_phase_operator,
    qft_operator,
    swap_operator,
    x_operator,
    z_operator,
)
from circuit_weave.operation.fields import PHI, QUBITS, THETA, Field, FieldKind
from circuit_weave.operation.operation_type import UNSTABLE, OperationTypeBase

_CONTROLS_2 = (
    Field("control_0", FieldKind.QUBIT),
    Field("control_1", FieldKind.QUBIT),
    Field("target", FieldKind.QUBIT),
)
_CONTROLS_3 = (
    Field("control_0", FieldKind.QUBIT),
    Field("control_1", FieldKind.QUBIT),
    Field("control_2", FieldKind.QUBIT),
    Field("target", FieldKind.QUBIT),
)
_CSWAP = (
    Field("control", FieldKind.QUBIT),
    Field("target_0", FieldKind.QUBIT),
    Field("target_1", FieldKind.QUBIT),
)


class ThreeQubitGateType(OperationTypeBase):
    """
    ThreeQubitGateType

    Controlled gates with two controls (and ControlledSWAP with one
    control and two targets), the matrix is 8x8
    """

    ControlledControlledPauliZ = (_CONTROLS_2, (), 2, 1)
    ControlledControlledPhaseShift = (_CONTROLS_2 + (THETA,), ("Rotation",), 2, 2)
    Toffoli = (_CONTROLS_2, (), 2, 3)
    ControlledSWAP = (_CSWAP, (), 3, 4)
    PhaseShiftedControlledControlledZ = (_CONTROLS_2 + (PHI,), (), 3, 5)
    PhaseShiftedControlledControlledPhase = (_CONTROLS_2 + (THETA, PHI), (), 3, 6)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "GateOperation", "ThreeQubitGateOperation")

    def compute_matrix(self, **kwargs: Any) -> jnp.ndarray:
        match self:
            case ThreeQubitGateType.ControlledControlledPauliZ:
                return controlled_operator(z_operator(), 2)
            case ThreeQubitGateType.ControlledControlledPhaseShift:
                return controlled_operator(
                    phase_shift_state1_operator(kwargs["theta"]), 2
                )
            case ThreeQubitGateType.Toffoli:
                return controlled_operator(x_operator(), 2)
            case ThreeQubitGateType.ControlledSWAP:
                return controlled_operator(swap_operator(), 1)
            case ThreeQubitGateType.PhaseShiftedControlledControlledZ:
                return phase_shifted_controlled_phase_operator(np.pi, kwargs["phi"], 3)
            case ThreeQubitGateType.PhaseShiftedControlledControlledPhase:
                return phase_shifted_controlled_phase_operator(
                    kwargs["theta"], kwargs["phi"], 3
                )


class FourQubitGateType(OperationTypeBase):
    """
    FourQubitGateType

    Gates with three controls and one target, the matrix is 16x16
    """

    TripleControlledPauliX = (_CONTROLS_3, (), 3, 1)
    TripleControlledPauliZ = (_CONTROLS_3, (), 3, 2)
    TripleControlledPhaseShift = (_CONTROLS_3 + (THETA,), ("Rotation",), 3, 3)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "GateOperation", "FourQubitGateOperation")

    def compute_matrix(self, **kwargs: Any) -> jnp.ndarray:
        match self:
            case FourQubitGateType.TripleControlledPauliX:
                return controlled_operator(x_operator(), 3)
            case FourQubitGateType.TripleControlledPauliZ:
                return controlled_operator(z_operator(), 3)
            case FourQubitGateType.TripleControlledPhaseShift:
                return controlled_operator(
                    phase_shift_state1_operator(kwargs["theta"]), 3
                )


class MultiQubitGateType(OperationTypeBase):
    """
    MultiQubitGateType

    Gates acting on the ordered `qubits` field, the matrix is
    2**len(qubits) wide. CallDefinedGate calls a GateDefinition by name
    and has no matrix of its own.
    """

    MultiQubitMS = ((QUBITS, THETA), ("Rotation",), 1, 1)
    MultiQubitZZ = ((QUBITS, THETA), ("Rotation",), 1, 2)
    MultiQubitCNOT = ((QUBITS,), (), 3, 3)
    QFT = (
        (
            QUBITS,
            Field("swaps", FieldKind.BOOL),
            Field("inverse", FieldKind.BOOL),
        ),
        (),
        3,
        4,
    )
    CallDefinedGate = (
        (
            Field("gate_name", FieldKind.STRING),
            QUBITS,
            Field("free_parameters", FieldKind.PARAMETERS),
        ),
        (),
        3,
        5,
        UNSTABLE,
    )

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "GateOperation", "MultiQubitGateOperation")

    def compute_matrix(self, **kwargs: Any) -> Optional[jnp.ndarray]:
        match self:
            case MultiQubitGateType.MultiQubitMS:
                return multi_qubit_ms_operator(len(kwargs["qubits"]), kwargs["theta"])
            case MultiQubitGateType.MultiQubitZZ:
                return multi_qubit_zz_operator(len(kwargs["qubits"]), kwargs["theta"])
            case MultiQubitGateType.MultiQubitCNOT:
                return controlled_operator(x_operator(), len(kwargs["qubits"]) - 1)
            case MultiQubitGateType.QFT:
                return qft_operator(
                    len(kwargs["qubits"]), kwargs["swaps"], kwargs["inverse"]
                )
            case MultiQubitGateType.CallDefinedGate:
                return None
