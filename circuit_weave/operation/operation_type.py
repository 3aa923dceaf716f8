"""
Common behaviour of the operation type enums

Every catalog family is an Enum whose members describe one variant. The
member value is a tuple of

    (fields, extra_tags, since, op_id, *flags)

where `fields` is the payload layout, `extra_tags` are the classification
tags between the family tags and the variant name, `since` is the schema
version that introduced the variant and `op_id` makes the tuple unique.
"""

from enum import Enum
from typing import Any, Optional, Tuple

import jax.numpy as jnp

from circuit_weave.operation.fields import Field

ALL_QUBITS = "all_qubits"
UNSTABLE = "unstable"


class OperationTypeBase(Enum):
    """
    Base of the operation type enums

    Notes
    -----
    Last element in the required part of the tuple is required (to be
    unique), because if two tuples are the same the enum makes the second
    member an alias of the first one
    """

    def __init__(
        self,
        fields: Tuple[Field, ...],
        extra_tags: Tuple[str, ...],
        since: int,
        op_id: int,
        *flags: str,
    ) -> None:
        self.fields = fields
        self.extra_tags = extra_tags
        self.since = since
        self.acts_on_all_qubits = ALL_QUBITS in flags
        self.unstable = UNSTABLE in flags

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation",)

    @property
    def tag(self) -> str:
        return self.name

    @property
    def tags(self) -> Tuple[str, ...]:
        return self.family_tags + self.extra_tags + (self.name,)

    @property
    def is_gate(self) -> bool:
        return "GateOperation" in self.family_tags

    def field(self, name: str) -> Field:
        for field in self.fields:
            if field.name == name:
                return field
        raise KeyError(f"{self.name} has no field '{name}'")

    def compute_matrix(self, **kwargs: Any) -> Optional[jnp.ndarray]:
        """
        Unitary matrix of the variant, None for non-unitary variants

        Parameters
        ----------
        **kwargs: Any
            Field values with every parameter already evaluated to a float
        """
        return None

    def compute_operator(self, cutoff: int, **kwargs: Any) -> Optional[jnp.ndarray]:
        """
        Truncated Fock space operator of mode acting variants
        """
        return None
