"""
Run-time registration of operation types outside the built-in catalog.

A `DynamicRegistry` maps tags to an `OperationVTable`, the set of callables
that implement the operation capabilities on an opaque payload. Instances
of registered types are `RegisteredOperation`s and can be used everywhere
a built-in `Operation` is accepted: in circuits, in the DAG and in the
serialization layer.
"""

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

import jax.numpy as jnp

from circuit_weave._math.ops import is_unitary as _is_unitary
from circuit_weave.circuit_weave import Config
from circuit_weave.exceptions import (
    RegistryCollisionError,
    UnknownVariantError,
    WireFormatError,
)
from circuit_weave.operation.catalog import is_builtin_tag
from circuit_weave.operation.fields import RegisterAccess

logger = logging.getLogger(__name__)


def _no_modes(payload: Any) -> Tuple[int, ...]:
    return ()


def _no_registers(payload: Any) -> Dict[str, RegisterAccess]:
    return {}


def _no_matrix(payload: Any) -> None:
    return None


def _not_all_qubits(payload: Any) -> bool:
    return False


def _not_parametrized(payload: Any) -> bool:
    return False


def _keep(payload: Any, mapping: Mapping[Any, Any]) -> Any:
    return payload


@dataclass(frozen=True)
class OperationVTable:
    """
    Capabilities of a registered operation type

    Every callable receives the payload of the instance as first argument.

    Attributes
    ----------
    involved_qubits: Callable[[Any], Sequence[int]]
        Qubits the operation acts on
    encode: Callable[[Any], Any]
        Converts the payload into JSON compatible data
    decode: Callable[[Any], Any]
        Inverse of `encode`
    involved_modes: Callable[[Any], Sequence[int]]
        Bosonic modes the operation acts on
    involved_registers: Callable[[Any], Dict[str, RegisterAccess]]
        Registers the operation reads or writes
    acts_on_all_qubits: Callable[[Any], bool]
        Whether the operation touches the whole qubit register
    matrix: Callable[[Any], Optional[jnp.ndarray]]
        Unitary matrix, None for non-unitary operations
    substitute: Callable[[Any, Mapping[str, Any]], Any]
        Returns the payload with free variables substituted
    remap_qubits: Callable[[Any, Mapping[int, int]], Any]
        Returns the payload with qubits remapped
    is_parametrized: Callable[[Any], bool]
        Whether the payload still contains free variables
    tags: Tuple[str, ...]
        Classification tags put between ("Operation", ...) and the tag
    """

    involved_qubits: Callable[[Any], Any]
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]
    involved_modes: Callable[[Any], Any] = _no_modes
    involved_registers: Callable[[Any], Dict[str, RegisterAccess]] = _no_registers
    acts_on_all_qubits: Callable[[Any], bool] = _not_all_qubits
    matrix: Callable[[Any], Optional[jnp.ndarray]] = _no_matrix
    substitute: Callable[[Any, Mapping[str, Any]], Any] = _keep
    remap_qubits: Callable[[Any, Mapping[int, int]], Any] = _keep
    is_parametrized: Callable[[Any], bool] = _not_parametrized
    tags: Tuple[str, ...] = ()


class RegisteredOperation:
    """
    Instance of a dynamically registered operation type

    Exposes the same capability surface as the built-in `Operation`,
    each capability is routed through the vtable of the tag.
    """

    __slots__ = ("_tag", "_payload", "_vtable")

    def __init__(self, tag: str, payload: Any, vtable: OperationVTable) -> None:
        self._tag = tag
        self._payload = payload
        self._vtable = vtable

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def hqslang(self) -> str:
        return self._tag

    @property
    def tags(self) -> Tuple[str, ...]:
        return ("Operation", "DynamicOperation") + tuple(self._vtable.tags) + (self._tag,)

    @property
    def payload(self) -> Any:
        return self._payload

    @property
    def vtable(self) -> OperationVTable:
        return self._vtable

    @property
    def acts_on_all_qubits(self) -> bool:
        return bool(self._vtable.acts_on_all_qubits(self._payload))

    def involved_qubits(self) -> Tuple[int, ...]:
        return tuple(dict.fromkeys(int(q) for q in self._vtable.involved_qubits(self._payload)))

    def mapped_qubits(self) -> Tuple[int, ...]:
        return ()

    def involved_modes(self) -> Tuple[int, ...]:
        return tuple(dict.fromkeys(int(m) for m in self._vtable.involved_modes(self._payload)))

    def involved_registers(self) -> Dict[str, RegisterAccess]:
        return dict(self._vtable.involved_registers(self._payload))

    def register_declaration(self) -> None:
        return None

    def register_references(self) -> List[Tuple[str, None, RegisterAccess]]:
        return [(name, None, access) for name, access in self.involved_registers().items()]

    @property
    def is_parametrized(self) -> bool:
        return bool(self._vtable.is_parametrized(self._payload))

    def matrix(self) -> Optional[jnp.ndarray]:
        return self._vtable.matrix(self._payload)

    def operator(self, cutoff: int) -> None:
        return None

    def is_unitary(self, atol: Optional[float] = None) -> bool:
        matrix = self.matrix()
        if matrix is None:
            return False
        return _is_unitary(matrix, Config().matrix_atol if atol is None else atol)

    def substitute(self, mapping: Mapping[str, Any]) -> "RegisteredOperation":
        return RegisteredOperation(
            self._tag, self._vtable.substitute(self._payload, mapping), self._vtable
        )

    def remap_qubits(self, mapping: Mapping[int, int]) -> "RegisteredOperation":
        return RegisteredOperation(
            self._tag, self._vtable.remap_qubits(self._payload, mapping), self._vtable
        )

    def encoded_payload(self) -> Any:
        return self._vtable.encode(self._payload)

    def min_supported_version(self) -> int:
        # Registered payloads are opaque to the schema, any version holds them
        return 1

    def hashable_key(self) -> Tuple[str, str]:
        return (self._tag, json.dumps(self.encoded_payload(), sort_keys=True))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegisteredOperation):
            return NotImplemented
        return self.hashable_key() == other.hashable_key()

    def __hash__(self) -> int:
        return hash(self.hashable_key())

    def __copy__(self) -> "RegisteredOperation":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "RegisteredOperation":
        return self

    def __repr__(self) -> str:
        return f"{self._tag}(payload={self._payload!r})"


class _ReadWriteLock:
    """
    Many concurrent readers or a single writer
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._readers:
                self._condition.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


class DynamicRegistry:
    """
    Append-only mapping from tags to operation vtables

    Registries are created explicitly and handed to the deserializer.
    Built-in tags can never be registered, a registered tag can not be
    replaced or removed.
    """

    def __init__(self) -> None:
        self._vtables: Dict[str, OperationVTable] = {}
        self._lock = _ReadWriteLock()

    def register(self, tag: str, vtable: OperationVTable) -> None:
        """
        Registers a new operation type

        Parameters
        ----------
        tag: str
            Unique tag of the type, used as `variant_tag` on the wire
        vtable: OperationVTable
            Capabilities of the type

        Raises
        ------
        RegistryCollisionError
            If the tag is a built-in tag or already registered
        """
        if not isinstance(tag, str) or not tag:
            raise ValueError("Tag must be a non-empty string")
        if not isinstance(vtable, OperationVTable):
            raise TypeError("vtable must be an OperationVTable")
        if is_builtin_tag(tag):
            raise RegistryCollisionError(f"Tag '{tag}' is reserved by a built-in type")
        with self._lock.write():
            if tag in self._vtables:
                raise RegistryCollisionError(f"Tag '{tag}' is already registered")
            self._vtables[tag] = vtable
        logger.info("Registered operation type '%s'", tag, extra={"variant_tag": tag})

    def lookup(self, tag: str) -> OperationVTable:
        """
        Raises
        ------
        UnknownVariantError
            If the tag is not registered
        """
        with self._lock.read():
            try:
                return self._vtables[tag]
            except KeyError:
                raise UnknownVariantError(tag) from None

    def __contains__(self, tag: object) -> bool:
        with self._lock.read():
            return tag in self._vtables

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._vtables)

    def tags(self) -> List[str]:
        with self._lock.read():
            return list(self._vtables)

    def create(self, tag: str, payload: Any) -> RegisteredOperation:
        return RegisteredOperation(tag, payload, self.lookup(tag))

    def decode(self, tag: str, encoded_payload: Any) -> RegisteredOperation:
        """
        Builds an instance from the encoded payload found on the wire

        Raises
        ------
        UnknownVariantError
            If the tag is not registered
        WireFormatError
            If the decoder of the vtable rejects the payload
        """
        vtable = self.lookup(tag)
        try:
            payload = vtable.decode(encoded_payload)
        except (KeyError, IndexError, TypeError, ValueError) as err:
            raise WireFormatError(f"Invalid {tag} payload: {err!r}") from err
        return RegisteredOperation(tag, payload, vtable)
