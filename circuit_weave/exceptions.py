"""
Error taxonomy shared by the catalog, circuits, DAG and serialization layer.
"""

from __future__ import annotations

from typing import Iterable


class CircuitWeaveError(Exception):
    """Base class of all circuit_weave errors"""


class ConstructionError(CircuitWeaveError, ValueError):
    """
    Raised when an operation references a qubit, mode or register outside
    the bounds declared by the circuit. The circuit is left unchanged.
    """


class UnevaluatedParameterError(CircuitWeaveError):
    """
    Raised when a numeric value is required but a parameter still
    contains free variables.
    """

    def __init__(self, message: str, free_variables: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.free_variables = frozenset(free_variables)


class ParameterParseError(CircuitWeaveError, ValueError):
    """Raised when a symbolic expression string cannot be parsed"""


class UnknownVariantError(CircuitWeaveError, KeyError):
    """
    Raised when a tag is neither a built-in variant nor registered
    in the dynamic registry
    """

    def __init__(self, tag: str) -> None:
        super().__init__(tag)
        self.tag = tag

    def __str__(self) -> str:
        return f"Unknown operation variant '{self.tag}'"


class SchemaVersionError(CircuitWeaveError):
    """
    Raised when wire data needs a schema version this reader or writer
    cannot handle
    """


class WireFormatError(CircuitWeaveError, ValueError):
    """Raised for malformed wire data or missing required fields"""


class RegistryCollisionError(CircuitWeaveError):
    """Raised when a registration would shadow an existing tag"""


class UnstableOperationError(CircuitWeaveError):
    """
    Raised when an unstable operation is constructed while unstable
    operations are disabled in the Config
    """
