"""
Ordered container of operations
"""

from collections.abc import Sequence
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple, Union

from circuit_weave.exceptions import ConstructionError, UnevaluatedParameterError
from circuit_weave.operation.fields import RegisterAccess

OperationLike = Any


class OperationsView(Sequence):
    """
    Read only, restartable view on the operations of a circuit in
    program order
    """

    __slots__ = ("_operations",)

    def __init__(self, operations: List[OperationLike]) -> None:
        self._operations = operations

    def __getitem__(self, index):
        return self._operations[index]

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[OperationLike]:
        return iter(self._operations)

    def __repr__(self) -> str:
        return f"OperationsView({self._operations!r})"


class _RegisterState:
    """
    Register bookkeeping of a circuit: the declared registers with their
    lengths and the registers referenced without a definition in the
    circuit. The latter happen in circuits nested into pragmas, their
    references are checked by the enclosing circuit.
    """

    __slots__ = ("definitions", "free_references")

    def __init__(self) -> None:
        self.definitions: Dict[str, int] = {}
        self.free_references: Set[str] = set()

    def copy(self) -> "_RegisterState":
        state = _RegisterState()
        state.definitions = dict(self.definitions)
        state.free_references = set(self.free_references)
        return state


class Circuit:
    """
    Ordered sequence of operations with optional qubit and mode bounds

    Operations are validated when they enter the circuit: qubit and mode
    indices must lie inside the declared bounds, register references must
    fit the register definitions that precede them and a register can
    only be defined once. A failed modification raises ConstructionError
    and leaves the circuit unchanged.

    Parameters
    ----------
    number_qubits: Optional[int]
        Number of qubits, None for an unbounded circuit
    number_modes: Optional[int]
        Number of bosonic modes, None for an unbounded circuit
    """

    def __init__(
        self,
        number_qubits: Optional[int] = None,
        number_modes: Optional[int] = None,
    ) -> None:
        self._number_qubits = _bound(number_qubits, "number_qubits")
        self._number_modes = _bound(number_modes, "number_modes")
        self._operations: List[OperationLike] = []
        self._registers = _RegisterState()

    @property
    def number_qubits(self) -> Optional[int]:
        return self._number_qubits

    @property
    def number_modes(self) -> Optional[int]:
        return self._number_modes

    def _check(
        self, op: OperationLike, registers: _RegisterState, position: int
    ) -> None:
        """
        Validates `op` at `position` and records its register effects
        in `registers`

        Raises
        ------
        ConstructionError
            If the operation does not fit the circuit
        """
        if not (hasattr(op, "involved_qubits") and hasattr(op, "tag")):
            raise TypeError(f"Expected an Operation, got {type(op).__name__}")
        if self._number_qubits is not None:
            for qubit in op.involved_qubits() + op.mapped_qubits():
                if qubit >= self._number_qubits:
                    raise ConstructionError(
                        f"{op.tag} at position {position} acts on qubit {qubit}, "
                        f"the circuit has {self._number_qubits} qubits"
                    )
        if self._number_modes is not None:
            for mode in op.involved_modes():
                if mode >= self._number_modes:
                    raise ConstructionError(
                        f"{op.tag} at position {position} acts on mode {mode}, "
                        f"the circuit has {self._number_modes} modes"
                    )
        for name, index, _ in op.register_references():
            if name in registers.definitions:
                length = registers.definitions[name]
                if index is not None and index >= length:
                    raise ConstructionError(
                        f"{op.tag} at position {position} accesses index {index} "
                        f"of register '{name}' with length {length}"
                    )
            else:
                registers.free_references.add(name)
        declaration = op.register_declaration()
        if declaration is not None:
            name, length = declaration
            if name in registers.definitions:
                raise ConstructionError(
                    f"Register '{name}' is defined twice (position {position})"
                )
            if name in registers.free_references:
                raise ConstructionError(
                    f"Register '{name}' is used before its definition at position "
                    f"{position}"
                )
            registers.definitions[name] = length

    def _scan(self, operations: List[OperationLike]) -> _RegisterState:
        registers = _RegisterState()
        for position, op in enumerate(operations):
            self._check(op, registers, position)
        return registers

    def append(self, op: OperationLike) -> None:
        """
        Appends an operation at the end of the circuit

        Raises
        ------
        ConstructionError
            If the operation does not fit the circuit, the circuit is
            left unchanged
        """
        registers = self._registers.copy()
        self._check(op, registers, len(self._operations))
        self._operations.append(op)
        self._registers = registers

    add = append

    def extend(self, operations: Iterable[OperationLike]) -> None:
        """
        Appends all operations or none of them
        """
        operations = list(operations)
        registers = self._registers.copy()
        for offset, op in enumerate(operations):
            self._check(op, registers, len(self._operations) + offset)
        self._operations.extend(operations)
        self._registers = registers

    def insert(self, index: int, op: OperationLike) -> None:
        """
        Inserts an operation before position `index`

        Raises
        ------
        IndexError
            If the index lies outside the circuit, `len(circuit)` appends
        ConstructionError
            If the operation does not fit at that position
        """
        size = len(self._operations)
        if not -size <= index <= size:
            raise IndexError(
                f"Insert position {index} is out of range for {size} operations"
            )
        candidate = list(self._operations)
        candidate.insert(index, op)
        registers = self._scan(candidate)
        self._operations = candidate
        self._registers = registers

    def remove(self, index: int) -> OperationLike:
        """
        Removes and returns the operation at position `index`

        Raises
        ------
        IndexError
            If the index is out of range
        ConstructionError
            If later operations depend on the definition being removed
        """
        candidate = list(self._operations)
        op = candidate.pop(index)
        registers = self._scan(candidate)
        self._operations = candidate
        self._registers = registers
        return op

    def operations(self) -> OperationsView:
        return OperationsView(self._operations)

    def __iter__(self) -> Iterator[OperationLike]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __getitem__(
        self, index: Union[int, slice]
    ) -> Union[OperationLike, List[OperationLike]]:
        if isinstance(index, slice):
            return list(self._operations[index])
        return self._operations[index]

    def __iadd__(
        self, other: Union[OperationLike, "Circuit", Iterable[OperationLike]]
    ) -> "Circuit":
        if isinstance(other, Circuit):
            self.extend(other._operations)
        elif hasattr(other, "involved_qubits") and hasattr(other, "tag"):
            self.append(other)
        else:
            self.extend(other)
        return self

    def __add__(self, other: Union[OperationLike, "Circuit"]) -> "Circuit":
        result = self.copy()
        result += other
        return result

    def copy(self) -> "Circuit":
        """
        Returns an independent copy, operations are immutable and shared
        """
        circuit = Circuit.__new__(Circuit)
        circuit._number_qubits = self._number_qubits
        circuit._number_modes = self._number_modes
        circuit._operations = list(self._operations)
        circuit._registers = self._registers.copy()
        return circuit

    def __copy__(self) -> "Circuit":
        return self.copy()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Circuit":
        return self.copy()

    def _with_operations(self, operations: List[OperationLike]) -> "Circuit":
        circuit = Circuit(self._number_qubits, self._number_modes)
        circuit.extend(operations)
        return circuit

    def is_parametrized(self) -> bool:
        return any(op.is_parametrized for op in self._operations)

    def free_variables(self) -> frozenset:
        variables: set = set()
        for op in self._operations:
            if hasattr(op, "free_variables"):
                variables |= op.free_variables()
        return frozenset(variables)

    def substitute_parameters(
        self, mapping: Mapping[str, Any], strict: bool = True
    ) -> "Circuit":
        """
        Returns a new circuit with the free variables of every operation
        substituted

        Parameters
        ----------
        mapping: Mapping[str, float]
            Variable names mapped to their values
        strict: bool
            Require that no free variable remains after the substitution

        Raises
        ------
        UnevaluatedParameterError
            In strict mode, if a variable is missing from the mapping.
            Nothing is substituted in that case.
        """
        operations = [op.substitute(mapping) for op in self._operations]
        if strict:
            remaining = [op for op in operations if op.is_parametrized]
            if remaining:
                free: set = set()
                for op in remaining:
                    if hasattr(op, "free_variables"):
                        free |= op.free_variables()
                raise UnevaluatedParameterError(
                    "Substitution leaves free variables: "
                    + (", ".join(sorted(free)) or remaining[0].tag),
                    free,
                )
        return self._with_operations(operations)

    def remap_qubits(self, mapping: Mapping[int, int]) -> "Circuit":
        """
        Returns a new circuit with the qubits of every operation remapped
        """
        return self._with_operations([op.remap_qubits(mapping) for op in self._operations])

    def involved_qubits(self) -> Tuple[int, ...]:
        qubits: Dict[int, None] = {}
        for op in self._operations:
            qubits.update(dict.fromkeys(op.involved_qubits()))
        return tuple(qubits)

    def involved_modes(self) -> Tuple[int, ...]:
        modes: Dict[int, None] = {}
        for op in self._operations:
            modes.update(dict.fromkeys(op.involved_modes()))
        return tuple(modes)

    def involved_registers(self) -> Dict[str, RegisterAccess]:
        registers: Dict[str, RegisterAccess] = {}
        for op in self._operations:
            for name, access in op.involved_registers().items():
                registers[name] = registers[name].merge(access) if name in registers else access
        return registers

    @property
    def acts_on_all_qubits(self) -> bool:
        return any(op.acts_on_all_qubits for op in self._operations)

    def number_of_qubits(self) -> int:
        """
        Returns the declared number of qubits, or one more than the
        highest qubit index used when the circuit is unbounded
        """
        if self._number_qubits is not None:
            return self._number_qubits
        qubits = self.involved_qubits()
        return max(qubits) + 1 if qubits else 0

    def definitions(self) -> List[OperationLike]:
        return [op for op in self._operations if "Definition" in op.tags]

    def filter_by_tag(self, tag: str) -> List[OperationLike]:
        return [op for op in self._operations if tag in op.tags]

    def count_occurences(self, tags: Iterable[str]) -> int:
        """
        Counts the operations carrying at least one of the given tags
        """
        tags = set(tags)
        return sum(1 for op in self._operations if tags.intersection(op.tags))

    def get_operation_types(self) -> Set[str]:
        return {op.tag for op in self._operations}

    def min_supported_version(self) -> int:
        """
        Returns the oldest schema version able to represent every
        operation of the circuit
        """
        return max((op.min_supported_version() for op in self._operations), default=1)

    def hashable_key(self) -> Tuple[Any, ...]:
        return (
            self._number_qubits,
            self._number_modes,
            tuple(op.hashable_key() for op in self._operations),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Circuit):
            return NotImplemented
        return (
            self._number_qubits == other._number_qubits
            and self._number_modes == other._number_modes
            and self._operations == other._operations
        )

    __hash__ = None

    def to_json(self, schema_version: Optional[int] = None, minimal: bool = False) -> str:
        from circuit_weave.serialization import to_json

        return to_json(self, schema_version=schema_version, minimal=minimal)

    @staticmethod
    def from_json(data: str, registry: Any = None) -> "Circuit":
        from circuit_weave.serialization import from_json

        circuit = from_json(data, registry=registry)
        if not isinstance(circuit, Circuit):
            raise TypeError(f"Expected a serialized Circuit, got {type(circuit).__name__}")
        return circuit

    def __repr__(self) -> str:
        return (
            f"Circuit(number_qubits={self._number_qubits}, "
            f"number_modes={self._number_modes}, operations={self._operations!r})"
        )

    def __str__(self) -> str:
        lines = [
            f"Circuit with {len(self._operations)} operations on "
            f"{self.number_of_qubits()} qubits"
        ]
        lines.extend(f"  {position}: {op!r}" for position, op in enumerate(self._operations))
        return "\n".join(lines)


def _bound(value: Optional[int], name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"'{name}' must be a non-negative integer or None")
    return value
