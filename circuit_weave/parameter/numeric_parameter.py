"""
Gate arguments that are either a concrete float or a symbolic expression.

Symbolic expressions are parsed and evaluated with sympy. Only a small set
of mathematical names is known to the parser, every other name becomes a
free variable that has to be substituted before the value can be evaluated.
"""

from __future__ import annotations

import math
import numbers
from typing import Mapping, Union

import sympy
from sympy.parsing.sympy_parser import parse_expr, standard_transformations
from sympy.core.sympify import SympifyError
from tokenize import TokenError

from circuit_weave.exceptions import ParameterParseError, UnevaluatedParameterError

ParameterLike = Union[float, int, str, "NumericParameter"]

_KNOWN_NAMES = (
    "Integer",
    "Float",
    "Rational",
    "Symbol",
    "pi",
    "E",
    "sin",
    "cos",
    "tan",
    "asin",
    "acos",
    "atan",
    "atan2",
    "sinh",
    "cosh",
    "tanh",
    "exp",
    "log",
    "sqrt",
    "Abs",
    "sign",
    "floor",
    "ceiling",
    "Max",
    "Min",
)
_PARSER_GLOBALS = {name: getattr(sympy, name) for name in _KNOWN_NAMES}
_PARSER_GLOBALS.update({"abs": sympy.Abs, "max": sympy.Max, "min": sympy.Min})


def _parse(expression: str) -> sympy.Expr:
    try:
        parsed = parse_expr(
            expression,
            local_dict={},
            global_dict=dict(_PARSER_GLOBALS),
            transformations=standard_transformations,
        )
    except (
        SyntaxError,
        TypeError,
        ValueError,
        AttributeError,
        NameError,
        TokenError,
        SympifyError,
    ) as err:
        raise ParameterParseError(
            f"Could not parse symbolic expression '{expression}'"
        ) from err
    if not isinstance(parsed, sympy.Expr):
        raise ParameterParseError(
            f"Expression '{expression}' does not describe a number"
        )
    return parsed


def _to_float(expression: sympy.Expr, source: str) -> float:
    try:
        value = complex(expression.evalf())
    except TypeError as err:
        raise ParameterParseError(f"Expression '{source}' is not a finite number") from err
    if abs(value.imag) > 1e-12:
        raise ParameterParseError(f"Expression '{source}' evaluates to a complex number")
    return float(value.real)


class NumericParameter:
    """
    A concrete float or a symbolic expression over named free variables

    NumericParameter values are immutable, substitution returns a new
    value. A symbolic string without free variables (e.g. "pi/2") is
    reduced to a concrete value on construction.

    >>> theta = NumericParameter("2*theta")
    >>> theta.free_variables
    frozenset({'theta'})
    >>> theta.substitute({"theta": 0.5}).evaluate()
    1.0
    """

    __slots__ = ("_value", "_expression")

    def __init__(self, value: ParameterLike) -> None:
        self._expression: sympy.Expr | None = None
        if isinstance(value, NumericParameter):
            self._value: float | str = value._value
            self._expression = value._expression
        elif isinstance(value, bool):
            raise TypeError("Boolean values are not numeric parameters")
        elif isinstance(value, numbers.Real):
            self._value = float(value)
        elif isinstance(value, str):
            self._init_from_expression(_parse(value), value)
        else:
            raise TypeError(
                f"Cannot create a NumericParameter from {type(value).__name__}"
            )

    def _init_from_expression(self, expression: sympy.Expr, source: str) -> None:
        if expression.free_symbols:
            self._value = str(expression)
            self._expression = expression
        else:
            self._value = _to_float(expression, source)

    @classmethod
    def _from_expression(cls, expression: sympy.Expr) -> "NumericParameter":
        param = cls.__new__(cls)
        param._expression = None
        param._init_from_expression(sympy.sympify(expression), str(expression))
        return param

    @property
    def is_symbolic(self) -> bool:
        return self._expression is not None

    @property
    def value(self) -> float | str:
        """
        Returns the float of a concrete parameter or the expression
        string of a symbolic one
        """
        return self._value

    @property
    def free_variables(self) -> frozenset[str]:
        if self._expression is None:
            return frozenset()
        return frozenset(str(symbol) for symbol in self._expression.free_symbols)

    def _as_expression(self) -> sympy.Expr:
        if self._expression is not None:
            return self._expression
        return sympy.Float(self._value)

    def substitute(self, mapping: Mapping[str, ParameterLike]) -> "NumericParameter":
        """
        Substitutes the free variables found in the mapping

        Parameters
        ----------
        mapping: Mapping[str, float]
            Variable names mapped to the values, variables not present
            in the mapping stay symbolic

        Returns
        -------
        NumericParameter
            New parameter, concrete if no free variables remain
        """
        if self._expression is None:
            return self
        replacements = {}
        for symbol in self._expression.free_symbols:
            if str(symbol) in mapping:
                replacements[symbol] = NumericParameter(mapping[str(symbol)])._as_expression()
        if not replacements:
            return self
        return NumericParameter._from_expression(self._expression.subs(replacements))

    def evaluate(self) -> float:
        """
        Returns the parameter as a float

        Raises
        ------
        UnevaluatedParameterError
            If the parameter still contains free variables
        """
        if self._expression is not None:
            free = sorted(self.free_variables)
            raise UnevaluatedParameterError(
                f"Parameter '{self._value}' contains unsubstituted variables: "
                f"{', '.join(free)}",
                free,
            )
        return float(self._value)

    def __float__(self) -> float:
        return self.evaluate()

    def isclose(self, other: ParameterLike, atol: float = 1e-12) -> bool:
        other = NumericParameter(other)
        if self.is_symbolic or other.is_symbolic:
            return self == other
        return math.isclose(self.evaluate(), other.evaluate(), abs_tol=atol)

    def _binary(self, other: ParameterLike, operation, reflected: bool = False):
        try:
            other = NumericParameter(other)
        except TypeError:
            return NotImplemented
        left, right = (other, self) if reflected else (self, other)
        if not left.is_symbolic and not right.is_symbolic:
            return NumericParameter(operation(float(left._value), float(right._value)))
        return NumericParameter._from_expression(
            operation(left._as_expression(), right._as_expression())
        )

    def __add__(self, other):
        return self._binary(other, lambda a, b: a + b)

    def __radd__(self, other):
        return self._binary(other, lambda a, b: a + b, reflected=True)

    def __sub__(self, other):
        return self._binary(other, lambda a, b: a - b)

    def __rsub__(self, other):
        return self._binary(other, lambda a, b: a - b, reflected=True)

    def __mul__(self, other):
        return self._binary(other, lambda a, b: a * b)

    def __rmul__(self, other):
        return self._binary(other, lambda a, b: a * b, reflected=True)

    def __truediv__(self, other):
        return self._binary(other, lambda a, b: a / b)

    def __rtruediv__(self, other):
        return self._binary(other, lambda a, b: a / b, reflected=True)

    def __neg__(self) -> "NumericParameter":
        if self._expression is None:
            return NumericParameter(-float(self._value))
        return NumericParameter._from_expression(-self._expression)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NumericParameter):
            return self._value == other._value
        if isinstance(other, numbers.Real) and not isinstance(other, bool):
            return not self.is_symbolic and self._value == float(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"NumericParameter({self._value!r})"

    def __str__(self) -> str:
        return str(self._value)

    def __copy__(self) -> "NumericParameter":
        return self

    def __deepcopy__(self, memo) -> "NumericParameter":
        return self

    def __reduce__(self):
        return (NumericParameter, (self._value,))
