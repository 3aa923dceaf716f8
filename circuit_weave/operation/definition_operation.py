"""
Definitions of classical registers, symbolic inputs and gates
"""

from typing import Tuple

from circuit_weave.operation.fields import Field, FieldKind, RegisterAccess
from circuit_weave.operation.operation_type import UNSTABLE, OperationTypeBase

_REGISTER = (
    Field("name", FieldKind.REGISTER, access=RegisterAccess.WRITE, declares=True),
    Field("length", FieldKind.INT),
    Field("is_output", FieldKind.BOOL),
)


class DefinitionType(OperationTypeBase):
    """
    DefinitionType

    Register definitions declare a readout register `name` with `length`
    entries. GateDefinition binds a circuit to a gate name, its `qubits`
    are the formal qubits of the body and do not count as involved.
    """

    DefinitionBit = (_REGISTER, (), 1, 1)
    DefinitionFloat = (_REGISTER, (), 1, 2)
    DefinitionComplex = (_REGISTER, (), 1, 3)
    DefinitionUsize = (_REGISTER, (), 1, 4)
    InputSymbolic = (
        (Field("name", FieldKind.STRING), Field("input", FieldKind.FLOAT)),
        (),
        1,
        5,
    )
    InputBit = (
        (
            Field("name", FieldKind.REGISTER, access=RegisterAccess.WRITE),
            Field("index", FieldKind.INT, index_of="name"),
            Field("value", FieldKind.BOOL),
        ),
        (),
        2,
        6,
    )
    GateDefinition = (
        (
            Field("circuit", FieldKind.CIRCUIT, involved=False),
            Field("name", FieldKind.STRING),
            Field("qubits", FieldKind.INTS),
            Field("free_parameters", FieldKind.STRINGS),
        ),
        (),
        3,
        7,
        UNSTABLE,
    )

    @property
    def family_tags(self) -> Tuple[str, ...]:
        return ("Operation", "Definition")
