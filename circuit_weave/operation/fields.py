"""
Payload layout of the catalog variants.

Every operation type describes its payload as an ordered tuple of `Field`s.
The kind of a field decides how values are normalised on construction, which
fields contribute to the involved qubits, modes and registers, and how the
value is written to and read from the wire format.
"""

from __future__ import annotations

import operator
import types
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Mapping, Optional

import numpy as np

from circuit_weave.parameter import NumericParameter

if TYPE_CHECKING:
    from circuit_weave.circuit.circuit import Circuit


class RegisterAccess(Enum):
    READ = auto()
    WRITE = auto()
    READ_WRITE = auto()

    def merge(self, other: "RegisterAccess") -> "RegisterAccess":
        if self is other:
            return self
        return RegisterAccess.READ_WRITE


class FieldKind(Enum):
    QUBIT = auto()
    QUBITS = auto()
    MODE = auto()
    PARAMETER = auto()
    PARAMETERS = auto()
    FLOAT = auto()
    INT = auto()
    INTS = auto()
    BOOL = auto()
    STRING = auto()
    STRINGS = auto()
    REGISTER = auto()
    CIRCUIT = auto()
    OPTIONAL_CIRCUIT = auto()
    OPERATION = auto()
    COMPLEX_VECTOR = auto()
    COMPLEX_MATRIX = auto()
    FLOAT_MATRIX = auto()
    INT_MAP = auto()  # keyed by qubit index
    OPTIONAL_INT_MAP = auto()


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = _Required()


@dataclass(frozen=True)
class Field:
    """
    One payload entry of an operation type

    Attributes
    ----------
    name: str
        Keyword used on construction and in the wire payload
    kind: FieldKind
        Shape of the value
    default: Any
        Value used when the field is omitted, REQUIRED otherwise
    since: int
        Schema version that introduced the field, readers fill in the
        default for wire data written before that version
    access: RegisterAccess | None
        How a REGISTER field touches the register
    index_of: str | None
        Name of the REGISTER field an INT field, or the values of an
        INT_MAP field, index into
    qubit_values: bool
        Whether the values of an INT_MAP field are qubits as well as its
        keys
    involved: bool
        Whether qubits/modes/registers of the field count as involved
    declares: bool
        Whether a REGISTER field declares a new register of `length` entries
    """

    name: str
    kind: FieldKind
    default: Any = REQUIRED
    since: int = 1
    access: Optional[RegisterAccess] = None
    index_of: Optional[str] = None
    qubit_values: bool = False
    involved: bool = True
    declares: bool = False

    @property
    def required(self) -> bool:
        return self.default is REQUIRED

    def is_default(self, value: Any) -> bool:
        """
        Whether a stored value equals the default of an optional field
        """
        if self.required:
            return False
        return values_equal(self.normalize(self.default), value)

    def normalize(self, value: Any) -> Any:
        """
        Converts a constructor argument into the immutable stored value

        Raises
        ------
        ValueError
            If the value has the wrong shape
        TypeError
            If the value has the wrong type
        """
        kind = self.kind
        if value is None and kind in (FieldKind.OPTIONAL_CIRCUIT, FieldKind.OPTIONAL_INT_MAP):
            return None
        match kind:
            case FieldKind.QUBIT | FieldKind.MODE | FieldKind.INT:
                return _index(value, self.name)
            case FieldKind.QUBITS | FieldKind.INTS:
                indices = tuple(_index(v, self.name) for v in value)
                if kind is not FieldKind.INTS and len(set(indices)) != len(indices):
                    raise ValueError(f"Duplicate indices in '{self.name}': {indices}")
                return indices
            case FieldKind.PARAMETER:
                return NumericParameter(value)
            case FieldKind.PARAMETERS:
                return tuple(NumericParameter(v) for v in value)
            case FieldKind.FLOAT:
                if isinstance(value, bool):
                    raise TypeError(f"'{self.name}' expects a float")
                return float(value)
            case FieldKind.BOOL:
                if not isinstance(value, (bool, np.bool_)):
                    raise TypeError(f"'{self.name}' expects a bool")
                return bool(value)
            case FieldKind.STRING | FieldKind.REGISTER:
                if not isinstance(value, str):
                    raise TypeError(f"'{self.name}' expects a string")
                return value
            case FieldKind.STRINGS:
                names = tuple(value)
                if not all(isinstance(n, str) for n in names):
                    raise TypeError(f"'{self.name}' expects a list of strings")
                return names
            case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
                from circuit_weave.circuit.circuit import Circuit

                if not isinstance(value, Circuit):
                    raise TypeError(f"'{self.name}' expects a Circuit")
                return value.copy()
            case FieldKind.OPERATION:
                if not hasattr(value, "involved_qubits") or not hasattr(value, "tag"):
                    raise TypeError(f"'{self.name}' expects an Operation")
                return value
            case FieldKind.COMPLEX_VECTOR:
                array = np.array(value, dtype=np.complex128)
                if array.ndim == 2 and 1 in array.shape:
                    array = array.reshape(-1)
                if array.ndim != 1 or array.size == 0:
                    raise ValueError(f"'{self.name}' expects a non-empty vector")
                return _readonly(array)
            case FieldKind.COMPLEX_MATRIX | FieldKind.FLOAT_MATRIX:
                dtype = np.complex128 if kind is FieldKind.COMPLEX_MATRIX else np.float64
                array = np.array(value, dtype=dtype)
                if array.ndim != 2 or array.shape[0] != array.shape[1]:
                    raise ValueError(f"'{self.name}' expects a square matrix")
                return _readonly(array)
            case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
                return types.MappingProxyType(
                    {
                        _index(k, self.name): _index(v, self.name)
                        for k, v in dict(value).items()
                    }
                )
        raise ValueError(f"Unknown field kind {kind}")

    def present(self, value: Any) -> Any:
        """
        Returns the stored value as handed out to callers, mutable
        containers are copied
        """
        if value is None:
            return None
        match self.kind:
            case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
                return value.copy()
            case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
                return dict(value)
        return value


def _index(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"'{name}' expects a non-negative integer")
    try:
        index = operator.index(value)
    except TypeError as err:
        raise TypeError(f"'{name}' expects a non-negative integer") from err
    if index < 0:
        raise ValueError(f"'{name}' expects a non-negative integer, got {index}")
    return index


def _readonly(array: np.ndarray) -> np.ndarray:
    # -0.0 and 0.0 compare equal, their bytes must hash equal too
    array = array + 0.0
    array.setflags(write=False)
    return array


def hashable(value: Any) -> Any:
    """
    Hashable stand-in of a stored field value
    """
    if isinstance(value, np.ndarray):
        return (value.shape, value.tobytes())
    if isinstance(value, Mapping):
        return tuple(sorted(value.items()))
    if hasattr(value, "hashable_key"):
        return value.hashable_key()
    return value


def values_equal(left: Any, right: Any) -> bool:
    if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
        return (
            isinstance(left, np.ndarray)
            and isinstance(right, np.ndarray)
            and left.shape == right.shape
            and bool(np.array_equal(left, right))
        )
    return left == right


def remap_index(index: int, mapping: Mapping[int, int]) -> int:
    return mapping.get(index, index)


def substitute_value(field: Field, value: Any, mapping: Mapping[str, Any]) -> Any:
    if not field.involved:
        return value
    match field.kind:
        case FieldKind.PARAMETER:
            return value.substitute(mapping)
        case FieldKind.PARAMETERS:
            return tuple(v.substitute(mapping) for v in value)
        case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
            if value is None:
                return None
            return value.substitute_parameters(mapping, strict=False)
        case FieldKind.OPERATION:
            return value.substitute(mapping)
    return value


def remap_value(field: Field, value: Any, mapping: Mapping[int, int]) -> Any:
    if not field.involved:
        return value
    match field.kind:
        case FieldKind.QUBIT:
            return remap_index(value, mapping)
        case FieldKind.QUBITS:
            return tuple(remap_index(v, mapping) for v in value)
        case FieldKind.INT_MAP | FieldKind.OPTIONAL_INT_MAP:
            if value is None:
                return None
            return types.MappingProxyType(
                {
                    remap_index(k, mapping): (
                        remap_index(v, mapping) if field.qubit_values else v
                    )
                    for k, v in value.items()
                }
            )
        case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
            return None if value is None else value.remap_qubits(mapping)
        case FieldKind.OPERATION:
            return value.remap_qubits(mapping)
    return value


def is_symbolic_value(field: Field, value: Any) -> bool:
    if not field.involved:
        return False
    match field.kind:
        case FieldKind.PARAMETER:
            return value.is_symbolic
        case FieldKind.PARAMETERS:
            return any(v.is_symbolic for v in value)
        case FieldKind.CIRCUIT | FieldKind.OPTIONAL_CIRCUIT:
            return value is not None and value.is_parametrized()
        case FieldKind.OPERATION:
            return value.is_parametrized
    return False


QUBIT = Field("qubit", FieldKind.QUBIT)
CONTROL = Field("control", FieldKind.QUBIT)
TARGET = Field("target", FieldKind.QUBIT)
QUBITS = Field("qubits", FieldKind.QUBITS)
THETA = Field("theta", FieldKind.PARAMETER)
PHI = Field("phi", FieldKind.PARAMETER)
MODE = Field("mode", FieldKind.MODE)
