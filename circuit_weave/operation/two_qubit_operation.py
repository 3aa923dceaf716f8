"""
Gates acting on two qubits, the `control` qubit is the most significant
factor of the matrix
"""

from typing import Any, Tuple

import jax.numpy as jnp
import numpy as np

from circuit_weave._math.ops import (
    bogoliubov_operator,
    complex_pm_interaction_operator,
    controlled_operator,
    echo_cross_resonance_operator,
    fswap_operator,
    givens_rotation_little_endian_operator,
    givens_rotation_operator,
    inv_sqrt_iswap_operator,
    iswap_operator,
    molmer_sorensen_xx_operator,
    phase_shift_state1_operator,
    phase_shifted_controlled_phase_operator,
    pm_interaction_operator,
    rx_operator,
    rxy_operator,
    spin_interaction_operator,
    sqrt_iswap_operator,
    swap_operator,
    variable_msxx_operator,
    x_operator,
    xy_operator,
    y_operator,
    z_operator,
)
from circuit_weave.operation.fields import CONTROL, PHI, TARGET, THETA, Field, FieldKind
from circuit_weave.operation.operation_type import OperationTypeBase

_PAIR = (CONTROL, TARGET)


def _params(*names: str) -> Tuple[Field, ...]:
    return tuple(Field(name, FieldKind.PARAMETER) for name in names)


class TwoQubitGateType(OperationTypeBase):
    """
    TwoQubitGateType

    Every member acts on the `control` and `target` fields, the
    matrix is 4x4
    """

    CNOT = (_PAIR, (), 1, 1)
    SWAP = (_PAIR, (), 1, 2)
    FSwap = (_PAIR, (), 1, 3)
    ISwap = (_PAIR, (), 1, 4)
    SqrtISwap = (_PAIR, (), 1, 5)
    InvSqrtISwap = (_PAIR, (), 1, 6)
    XY = (_PAIR + (THETA,), ("Rotation",), 1, 7)
    ControlledPhaseShift = (_PAIR + (THETA,), ("Rotation",), 1, 8)
    ControlledPauliY = (_PAIR, (), 1, 9)
    ControlledPauliZ = (_PAIR, (), 1, 10)
    MolmerSorensenXX = (_PAIR, (), 1, 11)
    VariableMSXX = (_PAIR + (THETA,), ("Rotation",), 1, 12)
    GivensRotation = (_PAIR + (THETA, PHI), ("Rotation",), 1, 13)
    GivensRotationLittleEndian = (_PAIR + (THETA, PHI), ("Rotation",), 1, 14)
    SpinInteraction = (_PAIR + _params("x", "y", "z"), (), 1, 15)
    Bogoliubov = (_PAIR + _params("delta_real", "delta_imag"), (), 1, 16)
    PMInteraction = (_PAIR + _params("t"), (), 1, 17)
    ComplexPMInteraction = (_PAIR + _params("t_real", "t_imag"), (), 1, 18)
    PhaseShiftedControlledZ = (_PAIR + (PHI,), (), 1, 19)
    PhaseShiftedControlledPhase = (_PAIR + (THETA, PHI), (), 2, 20)
    ControlledRotateX = (_PAIR + (THETA,), ("Rotation",), 2, 21)
    ControlledRotateXY = (_PAIR + (THETA, PHI), ("Rotation",), 2, 22)
    EchoCrossResonance = (_PAIR, (), 2, 23)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "GateOperation", "TwoQubitGateOperation")

    def compute_matrix(self, **kwargs: Any) -> jnp.ndarray:
        match self:
            case TwoQubitGateType.CNOT:
                return controlled_operator(x_operator())
            case TwoQubitGateType.SWAP:
                return swap_operator()
            case TwoQubitGateType.FSwap:
                return fswap_operator()
            case TwoQubitGateType.ISwap:
                return iswap_operator()
            case TwoQubitGateType.SqrtISwap:
                return sqrt_iswap_operator()
            case TwoQubitGateType.InvSqrtISwap:
                return inv_sqrt_iswap_operator()
            case TwoQubitGateType.XY:
                return xy_operator(kwargs["theta"])
            case TwoQubitGateType.ControlledPhaseShift:
                return controlled_operator(phase_shift_state1_operator(kwargs["theta"]))
            case TwoQubitGateType.ControlledPauliY:
                return controlled_operator(y_operator())
            case TwoQubitGateType.ControlledPauliZ:
                return controlled_operator(z_operator())
            case TwoQubitGateType.MolmerSorensenXX:
                return molmer_sorensen_xx_operator()
            case TwoQubitGateType.VariableMSXX:
                return variable_msxx_operator(kwargs["theta"])
            case TwoQubitGateType.GivensRotation:
                return givens_rotation_operator(kwargs["theta"], kwargs["phi"])
            case TwoQubitGateType.GivensRotationLittleEndian:
                return givens_rotation_little_endian_operator(
                    kwargs["theta"], kwargs["phi"]
                )
            case TwoQubitGateType.SpinInteraction:
                return spin_interaction_operator(kwargs["x"], kwargs["y"], kwargs["z"])
            case TwoQubitGateType.Bogoliubov:
                return bogoliubov_operator(kwargs["delta_real"], kwargs["delta_imag"])
            case TwoQubitGateType.PMInteraction:
                return pm_interaction_operator(kwargs["t"])
            case TwoQubitGateType.ComplexPMInteraction:
                return complex_pm_interaction_operator(
                    kwargs["t_real"], kwargs["t_imag"]
                )
            case TwoQubitGateType.PhaseShiftedControlledZ:
                return phase_shifted_controlled_phase_operator(np.pi, kwargs["phi"])
            case TwoQubitGateType.PhaseShiftedControlledPhase:
                return phase_shifted_controlled_phase_operator(
                    kwargs["theta"], kwargs["phi"]
                )
            case TwoQubitGateType.ControlledRotateX:
                return controlled_operator(rx_operator(kwargs["theta"]))
            case TwoQubitGateType.ControlledRotateXY:
                return controlled_operator(rxy_operator(kwargs["theta"], kwargs["phi"]))
            case TwoQubitGateType.EchoCrossResonance:
                return echo_cross_resonance_operator()
