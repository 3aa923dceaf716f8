"""
Gates acting on a single qubit
"""

from typing import Any, Tuple

import jax.numpy as jnp
import numpy as np

from circuit_weave._math.ops import (
    gpi2_operator,
    gpi_operator,
    hadamard_operator,
    identity_operator,
    inv_s_operator,
    inv_sx_operator,
    inv_t_operator,
    phase_shift_state0_operator,
    phase_shift_state1_operator,
    rx_operator,
    rxy_operator,
    ry_operator,
    rz_operator,
    s_operator,
    single_qubit_gate_operator,
    spherical_rotation_operator,
    sx_operator,
    t_operator,
    x_operator,
    y_operator,
    z_operator,
)
from circuit_weave.operation.fields import PHI, QUBIT, THETA, Field, FieldKind
from circuit_weave.operation.operation_type import OperationTypeBase

_ROTATION = ("Rotation",)


def _params(*names: str) -> Tuple[Field, ...]:
    return tuple(Field(name, FieldKind.PARAMETER) for name in names)


class SingleQubitGateType(OperationTypeBase):
    """
    SingleQubitGateType

    Every member acts on the `qubit` field, the matrix is 2x2
    """

    SingleQubitGate = (
        (QUBIT,) + _params("alpha_r", "alpha_i", "beta_r", "beta_i", "global_phase"),
        (),
        1,
        1,
    )
    RotateZ = ((QUBIT, THETA), _ROTATION, 1, 2)
    RotateX = ((QUBIT, THETA), _ROTATION, 1, 3)
    RotateY = ((QUBIT, THETA), _ROTATION, 1, 4)
    RotateXY = ((QUBIT, THETA, PHI), _ROTATION, 1, 5)
    RotateAroundSphericalAxis = (
        (QUBIT, THETA) + _params("spherical_theta", "spherical_phi"),
        _ROTATION,
        1,
        6,
    )
    PauliX = ((QUBIT,), (), 1, 7)
    PauliY = ((QUBIT,), (), 1, 8)
    PauliZ = ((QUBIT,), (), 1, 9)
    SqrtPauliX = ((QUBIT,), (), 1, 10)
    InvSqrtPauliX = ((QUBIT,), (), 1, 11)
    SqrtPauliY = ((QUBIT,), (), 3, 12)
    InvSqrtPauliY = ((QUBIT,), (), 3, 13)
    Hadamard = ((QUBIT,), (), 1, 14)
    SGate = ((QUBIT,), (), 1, 15)
    InvSGate = ((QUBIT,), (), 3, 16)
    TGate = ((QUBIT,), (), 1, 17)
    InvTGate = ((QUBIT,), (), 3, 18)
    SXGate = ((QUBIT,), (), 3, 19)
    InvSXGate = ((QUBIT,), (), 3, 20)
    PhaseShiftState0 = ((QUBIT, THETA), _ROTATION, 1, 21)
    PhaseShiftState1 = ((QUBIT, THETA), _ROTATION, 1, 22)
    GPi = ((QUBIT, THETA), _ROTATION, 2, 23)
    GPi2 = ((QUBIT, THETA), _ROTATION, 2, 24)
    Identity = ((QUBIT,), (), 2, 25)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "GateOperation", "SingleQubitGateOperation")

    def compute_matrix(self, **kwargs: Any) -> jnp.ndarray:
        """
        Computes the 2x2 unitary of the gate

        Parameters
        ----------
        **kwargs: Any
            Evaluated field values of the operation

        Returns
        -------
        jnp.ndarray
            Returns operator matrix
        """
        match self:
            case SingleQubitGateType.SingleQubitGate:
                return single_qubit_gate_operator(
                    kwargs["alpha_r"],
                    kwargs["alpha_i"],
                    kwargs["beta_r"],
                    kwargs["beta_i"],
                    kwargs["global_phase"],
                )
            case SingleQubitGateType.RotateZ:
                return rz_operator(kwargs["theta"])
            case SingleQubitGateType.RotateX:
                return rx_operator(kwargs["theta"])
            case SingleQubitGateType.RotateY:
                return ry_operator(kwargs["theta"])
            case SingleQubitGateType.RotateXY:
                return rxy_operator(kwargs["theta"], kwargs["phi"])
            case SingleQubitGateType.RotateAroundSphericalAxis:
                return spherical_rotation_operator(
                    kwargs["theta"], kwargs["spherical_theta"], kwargs["spherical_phi"]
                )
            case SingleQubitGateType.PauliX:
                return x_operator()
            case SingleQubitGateType.PauliY:
                return y_operator()
            case SingleQubitGateType.PauliZ:
                return z_operator()
            case SingleQubitGateType.SqrtPauliX:
                return rx_operator(np.pi / 2)
            case SingleQubitGateType.InvSqrtPauliX:
                return rx_operator(-np.pi / 2)
            case SingleQubitGateType.SqrtPauliY:
                return ry_operator(np.pi / 2)
            case SingleQubitGateType.InvSqrtPauliY:
                return ry_operator(-np.pi / 2)
            case SingleQubitGateType.Hadamard:
                return hadamard_operator()
            case SingleQubitGateType.SGate:
                return s_operator()
            case SingleQubitGateType.InvSGate:
                return inv_s_operator()
            case SingleQubitGateType.TGate:
                return t_operator()
            case SingleQubitGateType.InvTGate:
                return inv_t_operator()
            case SingleQubitGateType.SXGate:
                return sx_operator()
            case SingleQubitGateType.InvSXGate:
                return inv_sx_operator()
            case SingleQubitGateType.PhaseShiftState0:
                return phase_shift_state0_operator(kwargs["theta"])
            case SingleQubitGateType.PhaseShiftState1:
                return phase_shift_state1_operator(kwargs["theta"])
            case SingleQubitGateType.GPi:
                return gpi_operator(kwargs["theta"])
            case SingleQubitGateType.GPi2:
                return gpi2_operator(kwargs["theta"])
            case SingleQubitGateType.Identity:
                return identity_operator()
