"""
Construction functions for every built-in variant

One function per tag is generated from the catalog. The positional
arguments follow the field order of the variant:

>>> RotateZ(0, "theta")
RotateZ(qubit=0, theta='theta')
>>> CNOT(control=0, target=1)
CNOT(control=0, target=1)
"""

import inspect
from typing import Any, Callable

from circuit_weave.operation.catalog import CATALOG
from circuit_weave.operation.operation import Operation
from circuit_weave.operation.operation_type import OperationTypeBase


def _make_constructor(operation_type: OperationTypeBase) -> Callable[..., Operation]:
    names = [field.name for field in operation_type.fields]

    def constructor(*args: Any, **kwargs: Any) -> Operation:
        if len(args) > len(names):
            raise TypeError(
                f"{operation_type.name} takes at most {len(names)} positional "
                f"arguments ({len(args)} given)"
            )
        for name, value in zip(names, args):
            if name in kwargs:
                raise TypeError(
                    f"{operation_type.name} got multiple values for argument '{name}'"
                )
            kwargs[name] = value
        return Operation(operation_type, **kwargs)

    constructor.__name__ = operation_type.tag
    constructor.__qualname__ = operation_type.tag
    constructor.__module__ = __name__
    constructor.__doc__ = (
        f"Creates a {operation_type.tag} operation "
        f"({type(operation_type).__name__}.{operation_type.name})"
    )
    constructor.__signature__ = inspect.Signature(
        [
            inspect.Parameter(
                field.name,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                default=(
                    inspect.Parameter.empty if field.required else field.default
                ),
            )
            for field in operation_type.fields
        ]
    )
    return constructor


for _tag, _operation_type in CATALOG.items():
    globals()[_tag] = _make_constructor(_operation_type)

__all__ = list(CATALOG)
