"""
Operator expressions used to describe Hamiltonian gates

An expression is a nested tuple ``(command, *arguments)``. Leaves are
numbers, arrays or names of operator factories in the context.
"""

from functools import reduce
from typing import Any, Callable, Dict, List

import jax.numpy as jnp
from jax.scipy.linalg import expm

OperatorFactory = Callable[[List[int]], jnp.ndarray]


def _fold(function: Callable[[Any, Any], Any]) -> Callable[[List[Any]], Any]:
    return lambda values: reduce(function, values)


def _unary(function: Callable[[Any], Any]) -> Callable[[List[Any]], Any]:
    def apply(values: List[Any]) -> Any:
        if len(values) != 1:
            raise ValueError(f"Expected a single argument, got {len(values)}")
        return function(values[0])

    return apply


def _binary(function: Callable[[Any, Any], Any]) -> Callable[[List[Any]], Any]:
    def apply(values: List[Any]) -> Any:
        if len(values) != 2:
            raise ValueError(f"Expected two arguments, got {len(values)}")
        return function(values[0], values[1])

    return apply


_COMMANDS: Dict[str, Callable[[List[Any]], Any]] = {
    "add": _fold(jnp.add),
    "sub": _binary(jnp.subtract),
    "s_mult": _fold(lambda a, b: a * b),
    "m_mult": _fold(lambda a, b: a @ b),
    "div": _binary(lambda a, b: a / b),
    "kron": _fold(jnp.kron),
    "expm": _unary(expm),
    "dag": _unary(lambda a: jnp.conjugate(a).T),
}


def interpreter(
    expr: Any,
    context: Dict[str, OperatorFactory],
    dimensions: List[int],
) -> jnp.ndarray:
    """
    Evaluates an operator expression

    Parameters
    ----------
    expr : Any
        Expression ``("command", arg1, arg2, ...)``, an operator name
        or a literal
    context : Dict[str, OperatorFactory]
        Operator names mapped to callables building the operator from
        the subsystem dimensions
    dimensions : List[int]
        Dimensions of the subsystems the expression acts on

    Returns
    -------
    jnp.ndarray
        The evaluated operator

    Notes
    -----
    Commands: ``add``, ``sub``, ``s_mult`` (scalar product), ``m_mult``
    (matrix product), ``div``, ``kron``, ``expm`` and ``dag`` (conjugate
    transpose). The Kronecker order is the qubit order of the gate, the
    first factor is the most significant one.
    """
    if isinstance(expr, str):
        return context[expr](dimensions)
    if not isinstance(expr, tuple):
        return expr
    command, *arguments = expr
    if command not in _COMMANDS:
        raise ValueError(f"Unknown operator expression command '{command}'")
    return _COMMANDS[command](
        [interpreter(argument, context, dimensions) for argument in arguments]
    )
