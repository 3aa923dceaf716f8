from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import jax.numpy as jnp
import numpy as np

from circuit_weave._math.ops import is_unitary as _is_unitary
from circuit_weave.circuit_weave import Config
from circuit_weave.exceptions import UnstableOperationError
from circuit_weave.operation.fields import (
    Field,
    FieldKind,
    RegisterAccess,
    hashable,
    is_symbolic_value,
    remap_value,
    substitute_value,
    values_equal,
)
from circuit_weave.operation.operation_type import OperationTypeBase
from circuit_weave.parameter import NumericParameter

RegisterReference = Tuple[str, Optional[int], RegisterAccess]


class Operation:
    """
    Immutable instance of a catalog variant

    The variant is given by a member of one of the operation type enums,
    the payload by keyword arguments named after the fields of the
    variant. Fields are readable as attributes.

    >>> op = Operation(SingleQubitGateType.RotateZ, qubit=0, theta="theta")
    >>> op.involved_qubits()
    (0,)
    >>> op.substitute({"theta": 1.57}).matrix().shape
    (2, 2)
    """

    __slots__ = ("_operation_type", "_values", "_hash")

    def __init__(self, operation_type: OperationTypeBase, **kwargs: Any) -> None:
        if operation_type.unstable and not Config().unstable_operations:
            raise UnstableOperationError(
                f"{operation_type.name} is an unstable operation, enable it with "
                "Session(unstable_operations=True)"
            )
        known = {field.name for field in operation_type.fields}
        for name in kwargs:
            if name not in known:
                raise TypeError(
                    f"{operation_type.name} got an unexpected argument '{name}'"
                )
        values: Dict[str, Any] = {}
        for field in operation_type.fields:
            if field.name in kwargs:
                values[field.name] = field.normalize(kwargs[field.name])
            elif field.required:
                raise KeyError(
                    f"The '{field.name}' argument is required for {operation_type.name}"
                )
            else:
                values[field.name] = field.normalize(field.default)
        self._init_from_values(operation_type, values)

    def _init_from_values(
        self, operation_type: OperationTypeBase, values: Dict[str, Any]
    ) -> None:
        _validate(operation_type, values)
        object.__setattr__(self, "_operation_type", operation_type)
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_hash", None)

    @classmethod
    def _from_values(
        cls, operation_type: OperationTypeBase, values: Dict[str, Any]
    ) -> "Operation":
        op = cls.__new__(cls)
        op._init_from_values(operation_type, values)
        return op

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} objects are immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} objects are immutable")

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        for field in self._operation_type.fields:
            if field.name == name:
                return field.present(self._values[name])
        raise AttributeError(
            f"{self._operation_type.name} has no field or attribute '{name}'"
        )

    @property
    def operation_type(self) -> OperationTypeBase:
        return self._operation_type

    @property
    def tag(self) -> str:
        return self._operation_type.tag

    @property
    def hqslang(self) -> str:
        return self._operation_type.tag

    @property
    def tags(self) -> Tuple[str, ...]:
        return self._operation_type.tags

    @property
    def fields(self) -> Mapping[str, Any]:
        """
        Read only mapping of field names to the field values
        """
        return MappingProxyType(
            {
                field.name: field.present(self._values[field.name])
                for field in self._operation_type.fields
            }
        )

    def _nested(self) -> List[Any]:
        """
        Nested operations and circuits that count as involved
        """
        nested = []
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if value is None or not field.involved:
                continue
            if field.kind in (FieldKind.CIRCUIT, FieldKind.OPTIONAL_CIRCUIT):
                nested.extend(value.operations())
            elif field.kind is FieldKind.OPERATION:
                nested.append(value)
        return nested

    @property
    def acts_on_all_qubits(self) -> bool:
        if self._operation_type.acts_on_all_qubits:
            return True
        return any(op.acts_on_all_qubits for op in self._nested())

    def involved_qubits(self) -> Tuple[int, ...]:
        """
        Returns the qubits the operation acts on, in field order and
        without duplicates. Operations acting on all qubits report the
        qubits they name explicitly, see `acts_on_all_qubits`.
        """
        qubits: List[int] = []
        for field in self._operation_type.fields:
            if not field.involved:
                continue
            if field.kind is FieldKind.QUBIT:
                qubits.append(self._values[field.name])
            elif field.kind is FieldKind.QUBITS:
                qubits.extend(self._values[field.name])
        for op in self._nested():
            qubits.extend(op.involved_qubits())
        return tuple(dict.fromkeys(qubits))

    def mapped_qubits(self) -> Tuple[int, ...]:
        """
        Returns the qubit indices held in mapping fields, such as the keys
        of a Pauli product. They are not part of `involved_qubits` but must
        exist in the circuit.
        """
        qubits: List[int] = []
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if value is None or field.kind not in (
                FieldKind.INT_MAP,
                FieldKind.OPTIONAL_INT_MAP,
            ):
                continue
            qubits.extend(value.keys())
            if field.qubit_values:
                qubits.extend(value.values())
        for op in self._nested():
            qubits.extend(op.mapped_qubits())
        return tuple(dict.fromkeys(qubits))

    def involved_modes(self) -> Tuple[int, ...]:
        modes: List[int] = []
        for field in self._operation_type.fields:
            if field.kind is FieldKind.MODE:
                modes.append(self._values[field.name])
        for op in self._nested():
            modes.extend(op.involved_modes())
        return tuple(dict.fromkeys(modes))

    def register_declaration(self) -> Optional[Tuple[str, int]]:
        """
        Returns (name, length) when the operation declares a register
        """
        for field in self._operation_type.fields:
            if field.declares:
                return self._values[field.name], self._values["length"]
        return None

    def register_references(self) -> List[RegisterReference]:
        """
        Returns (name, index, access) for every register the operation
        reads or writes without declaring it, including nested operations.
        The index is None when the whole register is touched.
        """
        references: List[RegisterReference] = []
        indices: Dict[str, List[int]] = {}
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if field.index_of is None or value is None:
                continue
            if field.kind in (FieldKind.INT_MAP, FieldKind.OPTIONAL_INT_MAP):
                indices.setdefault(field.index_of, []).extend(value.values())
            else:
                indices.setdefault(field.index_of, []).append(value)
        for field in self._operation_type.fields:
            if field.kind is FieldKind.REGISTER and not field.declares:
                name = self._values[field.name]
                positions = indices.get(field.name)
                if positions:
                    references.extend(
                        (name, index, field.access) for index in dict.fromkeys(positions)
                    )
                else:
                    references.append((name, None, field.access))
        for op in self._nested():
            references.extend(op.register_references())
        return references

    def involved_registers(self) -> Dict[str, RegisterAccess]:
        registers: Dict[str, RegisterAccess] = {}
        declaration = self.register_declaration()
        if declaration is not None:
            registers[declaration[0]] = RegisterAccess.WRITE
        for name, _, access in self.register_references():
            registers[name] = registers[name].merge(access) if name in registers else access
        return registers

    @property
    def is_parametrized(self) -> bool:
        return any(
            is_symbolic_value(field, self._values[field.name])
            for field in self._operation_type.fields
        )

    def free_variables(self) -> frozenset:
        variables: set = set()
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if field.kind is FieldKind.PARAMETER:
                variables |= value.free_variables
            elif field.kind is FieldKind.PARAMETERS:
                for parameter in value:
                    variables |= parameter.free_variables
        for op in self._nested():
            if hasattr(op, "free_variables"):
                variables |= op.free_variables()
        return frozenset(variables)

    def _evaluated(self) -> Dict[str, Any]:
        """
        Field values with every parameter evaluated to a float

        Raises
        ------
        UnevaluatedParameterError
            If a parameter is still symbolic
        """
        evaluated = {}
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if field.kind is FieldKind.PARAMETER:
                value = value.evaluate()
            elif field.kind is FieldKind.PARAMETERS:
                value = tuple(v.evaluate() for v in value)
            evaluated[field.name] = value
        return evaluated

    def matrix(self) -> Optional[jnp.ndarray]:
        """
        Returns the unitary matrix of a gate, None for operations
        without a unitary realisation

        Raises
        ------
        UnevaluatedParameterError
            If a parameter of the gate is still symbolic
        """
        if not self._operation_type.is_gate:
            return None
        return self._operation_type.compute_matrix(**self._evaluated())

    def operator(self, cutoff: int) -> Optional[jnp.ndarray]:
        """
        Returns the Fock space operator of a mode operation, truncated
        at `cutoff` states per mode
        """
        if cutoff < 1:
            raise ValueError(f"Cutoff must be positive, got {cutoff}")
        return self._operation_type.compute_operator(cutoff, **self._evaluated())

    def is_unitary(self, atol: Optional[float] = None) -> bool:
        matrix = self.matrix()
        if matrix is None:
            return False
        return _is_unitary(matrix, Config().matrix_atol if atol is None else atol)

    def probability(self) -> float:
        """
        Returns the probability of a noise pragma to apply its noise

        Raises
        ------
        TypeError
            If the operation is not a noise pragma with a probability
        """
        if "PragmaNoiseProbaOperation" not in self.tags:
            raise TypeError(f"{self.tag} does not define a noise probability")
        return self._operation_type.compute_probability(**self._evaluated())

    def powercf(self, power: Union[float, str, NumericParameter]) -> "Operation":
        """
        Returns the noise pragma applied `power` times, the gate time
        is multiplied by `power`
        """
        if "PragmaNoiseOperation" not in self.tags:
            raise TypeError(f"{self.tag} is not a noise operation")
        values = dict(self._values)
        values["gate_time"] = values["gate_time"] * NumericParameter(power)
        return Operation._from_values(self._operation_type, values)

    def substitute(self, mapping: Mapping[str, Any]) -> "Operation":
        """
        Returns the operation with the free variables found in `mapping`
        replaced, variables missing from the mapping stay symbolic
        """
        if not self.is_parametrized:
            return self
        values = {
            field.name: substitute_value(field, self._values[field.name], mapping)
            for field in self._operation_type.fields
        }
        return Operation._from_values(self._operation_type, values)

    def remap_qubits(self, mapping: Mapping[int, int]) -> "Operation":
        """
        Returns the operation with qubit indices replaced according to
        `mapping`, qubits missing from the mapping are kept
        """
        values = {
            field.name: remap_value(field, self._values[field.name], mapping)
            for field in self._operation_type.fields
        }
        return Operation._from_values(self._operation_type, values)

    def min_supported_version(self) -> int:
        """
        Returns the oldest schema version able to represent the operation:
        the version of the variant, of every field holding a non-default
        value and of every nested operation
        """
        version = self._operation_type.since
        for field in self._operation_type.fields:
            value = self._values[field.name]
            if field.since > version and not field.is_default(value):
                version = field.since
            if value is not None and field.kind in (
                FieldKind.CIRCUIT,
                FieldKind.OPTIONAL_CIRCUIT,
                FieldKind.OPERATION,
            ):
                version = max(version, value.min_supported_version())
        return version

    def hashable_key(self) -> Tuple[Any, ...]:
        return (
            self._operation_type,
            tuple(hashable(self._values[f.name]) for f in self._operation_type.fields),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        if self._operation_type is not other._operation_type:
            return False
        return all(
            values_equal(self._values[f.name], other._values[f.name])
            for f in self._operation_type.fields
        )

    def __hash__(self) -> int:
        if self._hash is None:
            object.__setattr__(self, "_hash", hash(self.hashable_key()))
        return self._hash

    def __copy__(self) -> "Operation":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Operation":
        return self

    def __reduce__(self):
        return (_restore, (self._operation_type, dict(self.fields)))

    def __repr__(self) -> str:
        arguments = ", ".join(
            f"{field.name}={_format_value(field, self._values[field.name])}"
            for field in self._operation_type.fields
        )
        return f"{self.tag}({arguments})"

    def __str__(self) -> str:
        if not self._operation_type.is_gate or self.is_parametrized:
            return repr(self)
        matrix = self.matrix()
        if matrix is None:
            return repr(self)
        formatted_matrix = "\n".join(
            [
                "⎢ "
                + "   ".join(
                    [
                        f"{num.real:+.2f} {'+' if num.imag >= 0 else '-'} {abs(num.imag):.2f}j"
                        for num in row
                    ]
                )
                + " ⎥"
                for row in np.asarray(matrix)
            ]
        ).split("\n")
        formatted_matrix[0] = "⎡" + formatted_matrix[0][1:-1] + "⎤"
        formatted_matrix[-1] = "⎣" + formatted_matrix[-1][1:-1] + "⎦"
        return repr(self) + "\n" + "\n".join(formatted_matrix)


def _format_value(field: Field, value: Any) -> str:
    match field.kind:
        case FieldKind.PARAMETER:
            return repr(value.value)
        case FieldKind.PARAMETERS:
            return repr([v.value for v in value])
        case FieldKind.COMPLEX_VECTOR | FieldKind.COMPLEX_MATRIX | FieldKind.FLOAT_MATRIX:
            return repr(value.tolist())
        case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
            return repr(None if value is None else dict(value))
        case FieldKind.QUBITS | FieldKind.INTS | FieldKind.STRINGS:
            return repr(list(value))
    return repr(value)


def _validate(operation_type: OperationTypeBase, values: Dict[str, Any]) -> None:
    """
    Checks the payload shape beyond the checks of the single fields

    Raises
    ------
    ValueError
        If the payload cannot describe a valid operation
    """
    name = operation_type.name
    if operation_type.is_gate:
        qubits: List[int] = []
        for field in operation_type.fields:
            if field.kind is FieldKind.QUBIT:
                qubits.append(values[field.name])
            elif field.kind is FieldKind.QUBITS:
                if len(values[field.name]) == 0:
                    raise ValueError(f"{name} needs at least one qubit")
                qubits.extend(values[field.name])
        if len(set(qubits)) != len(qubits):
            raise ValueError(f"{name} acts on duplicated qubits {qubits}")
    modes = [
        values[field.name]
        for field in operation_type.fields
        if field.kind is FieldKind.MODE
    ]
    if len(set(modes)) != len(modes):
        raise ValueError(f"{name} acts on duplicated modes {modes}")
    for field in operation_type.fields:
        value = values[field.name]
        if field.kind is FieldKind.COMPLEX_VECTOR and value.size & (value.size - 1):
            raise ValueError(f"'{field.name}' length must be a power of two")
        if field.kind is FieldKind.COMPLEX_MATRIX:
            dim = value.shape[0]
            if dim == 0 or dim & (dim - 1):
                raise ValueError(f"'{field.name}' dimension must be a power of two")
        if field.kind is FieldKind.FLOAT_MATRIX and value.shape != (3, 3):
            raise ValueError(f"'{field.name}' must be a 3x3 matrix")


def _restore(operation_type: OperationTypeBase, kwargs: Dict[str, Any]) -> Operation:
    values = {
        field.name: field.normalize(kwargs[field.name])
        for field in operation_type.fields
    }
    return Operation._from_values(operation_type, values)
