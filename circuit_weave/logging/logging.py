import atexit
import datetime as dt
import json
import logging
import logging.config
import os
import pathlib
from logging.handlers import RotatingFileHandler
from typing import Any, override

CONFIG_ENV_VARIABLE = "CIRCUIT_WEAVE_LOGGING_CONFIG"


def _resolve_config_file(config_file: str | os.PathLike | None) -> pathlib.Path:
    if config_file is not None:
        return pathlib.Path(config_file)
    env_file = os.environ.get(CONFIG_ENV_VARIABLE)
    if env_file:
        return pathlib.Path(env_file)
    user_config_file = pathlib.Path("logging_config.json")
    if user_config_file.is_file():
        return user_config_file
    return pathlib.Path(__file__).parent.resolve() / "config.json"


def setup_logging(config_file: str | os.PathLike | None = None) -> None:
    """
    Configures logging

    The configuration is looked up in this order: the explicit
    `config_file` argument, the file named by the
    CIRCUIT_WEAVE_LOGGING_CONFIG environment variable,
    'logging_config.json' in the working directory and finally
    the configuration shipped with circuit_weave.

    Parameters
    ----------
    config_file: str | os.PathLike | None
        Optional path to a dictConfig json file
    """
    with open(_resolve_config_file(config_file)) as f_in:
        config = json.load(f_in)
    logging.config.dictConfig(config)

    queue_handler = logging.getHandlerByName("queue_handler")
    if queue_handler is not None:
        queue_handler.listener.start()
        atexit.register(queue_handler.listener.stop)


class CircuitWeaveJSONFormatter(logging.Formatter):
    """
    JSON formatter for circuit_weave log records

    Attributes:
        fmt_keys (dict): output keys mapped to LogRecord attributes

    Records emitted by the serialization layer and the registry carry
    `variant_tag` and `schema_version` extras, these are passed through
    like any other record attribute.
    """

    def __init__(
        self,
        *,
        fmt_keys: dict[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys if fmt_keys is not None else {}

    @override
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._prepare_log_dict(record), default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> dict:
        always_fields = {
            "message": record.getMessage(),
            "timestamp": dt.datetime.fromtimestamp(
                record.created, tz=dt.timezone.utc
            ).isoformat(),
        }
        if record.exc_info is not None:
            always_fields["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info is not None:
            always_fields["stack_info"] = self.formatStack(record.stack_info)

        message = {}
        for key, attribute in self.fmt_keys.items():
            value = always_fields.pop(attribute, None)
            message[key] = (
                value if value is not None else getattr(record, attribute, None)
            )
        message.update(always_fields)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES and key not in message:
                message[key] = value
        return message


# LogRecord attributes that are only reported when requested in fmt_keys
_RESERVED_ATTRIBUTES = frozenset(
    {
        "args",
        "msg",
        "exc_info",
        "exc_text",
        "stack_info",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "process",
        "processName",
        "taskName",
    }
)


class RotatingFileHandlerWithDir(RotatingFileHandler):
    """
    RotatingFileHandler, which creates the log directory
    if it does not exist already
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        log_file_path = kwargs.get("filename") or (args[0] if args else None)
        if log_file_path:
            pathlib.Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(*args, **kwargs)
