"""
Operations on bosonic modes and on qubit-resonator pairs

These operations have no qubit matrix, the ones with a closed form
expose a Fock space operator truncated at `cutoff` instead.
"""

import cmath
from typing import Any, Optional, Tuple

import jax.numpy as jnp

from circuit_weave._math.ops import (
    beam_splitter_operator,
    displacement_operator,
    jaynes_cummings_operator,
    longitudinal_coupling_operator,
    phase_operator,
    quantum_rabi_operator,
    squeezing_operator,
)
from circuit_weave.operation.fields import MODE, PHI, QUBIT, THETA, Field, FieldKind
from circuit_weave.operation.operation_type import OperationTypeBase

_PHASE = Field("phase", FieldKind.PARAMETER)


class BosonicOperationType(OperationTypeBase):
    """
    BosonicOperationType

    Single mode operations act on `mode`, BeamSplitter acts on
    `mode_0` and `mode_1`
    """

    Squeezing = (
        (MODE, Field("squeezing", FieldKind.PARAMETER), _PHASE),
        ("SingleModeGateOperation",),
        2,
        1,
    )
    PhaseShift = ((MODE, _PHASE), ("SingleModeGateOperation",), 2, 2)
    BeamSplitter = (
        (
            Field("mode_0", FieldKind.MODE),
            Field("mode_1", FieldKind.MODE),
            THETA,
            PHI,
        ),
        ("TwoModeGateOperation",),
        2,
        3,
    )
    PhaseDisplacement = (
        (MODE, Field("displacement", FieldKind.PARAMETER), _PHASE),
        ("SingleModeGateOperation",),
        2,
        4,
    )

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "ModeGateOperation")

    def compute_operator(self, cutoff: int, **kwargs: Any) -> Optional[jnp.ndarray]:
        """
        Generates the operator for this operation, given the cutoff

        Parameters
        ----------
        cutoff: int
            Number of Fock states kept per mode
        **kwargs: Any
            Evaluated field values of the operation
        """
        match self:
            case BosonicOperationType.Squeezing:
                return squeezing_operator(
                    cutoff, kwargs["squeezing"] * cmath.exp(1j * kwargs["phase"])
                )
            case BosonicOperationType.PhaseShift:
                return phase_operator(cutoff, kwargs["phase"])
            case BosonicOperationType.BeamSplitter:
                return beam_splitter_operator(cutoff, kwargs["theta"], kwargs["phi"])
            case BosonicOperationType.PhaseDisplacement:
                return displacement_operator(
                    cutoff, kwargs["displacement"] * cmath.exp(1j * kwargs["phase"])
                )


class SpinBosonOperationType(OperationTypeBase):
    """
    SpinBosonOperationType

    Couplings between `qubit` and the resonator `mode`, the qubit is the
    most significant factor of the operator
    """

    QuantumRabi = ((QUBIT, MODE, THETA), (), 2, 1)
    LongitudinalCoupling = ((QUBIT, MODE, THETA), (), 2, 2)
    JaynesCummings = ((QUBIT, MODE, THETA), (), 2, 3)
    SingleExcitationLoad = ((QUBIT, MODE), (), 2, 4)
    SingleExcitationStore = ((QUBIT, MODE), (), 2, 5)
    CZQubitResonator = ((QUBIT, MODE), (), 2, 6)

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "ModeGateOperation", "SingleQubitSingleModeOperation")

    def compute_operator(self, cutoff: int, **kwargs: Any) -> Optional[jnp.ndarray]:
        match self:
            case SpinBosonOperationType.QuantumRabi:
                return quantum_rabi_operator(cutoff, kwargs["theta"])
            case SpinBosonOperationType.LongitudinalCoupling:
                return longitudinal_coupling_operator(cutoff, kwargs["theta"])
            case SpinBosonOperationType.JaynesCummings:
                return jaynes_cummings_operator(cutoff, kwargs["theta"])
        return None
