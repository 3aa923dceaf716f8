# flake8: noqa

from .schema import json_schema, payload_model, validate_wire  # noqa: F401
from .wire import (  # noqa: F401
    CIRCUIT_TAG,
    deserialize,
    from_json,
    serialize,
    to_json,
)
