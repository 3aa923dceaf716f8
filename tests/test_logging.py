import json
import logging
import sys

import pytest

from circuit_weave.logging.logging import (
    CONFIG_ENV_VARIABLE,
    CircuitWeaveJSONFormatter,
    RotatingFileHandlerWithDir,
    setup_logging,
)


@pytest.fixture
def reset_circuit_weave_logger():
    logger = logging.getLogger("circuit_weave")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def _config(log_file):
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "circuit_weave.logging.logging.CircuitWeaveJSONFormatter",
                "fmt_keys": {"level": "levelname", "logger": "name"},
            }
        },
        "handlers": {
            "file_json": {
                "()": "circuit_weave.logging.logging.RotatingFileHandlerWithDir",
                "formatter": "json",
                "filename": str(log_file),
            }
        },
        "loggers": {
            "circuit_weave": {"level": "DEBUG", "handlers": ["file_json"]}
        },
    }


def test_setup_logging_from_file(tmp_path, reset_circuit_weave_logger):
    log_file = tmp_path / "logs" / "nested" / "run.jsonl"
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(_config(log_file)))

    setup_logging(config_file)
    logging.getLogger("circuit_weave.test").info(
        "hello %s", "world", extra={"variant_tag": "CNOT"}
    )
    for handler in reset_circuit_weave_logger.handlers:
        handler.flush()

    record = json.loads(log_file.read_text().splitlines()[-1])
    assert record["message"] == "hello world"
    assert record["level"] == "INFO"
    assert record["logger"] == "circuit_weave.test"
    assert record["variant_tag"] == "CNOT"
    assert "timestamp" in record


def test_setup_logging_from_environment(tmp_path, monkeypatch, reset_circuit_weave_logger):
    log_file = tmp_path / "env.jsonl"
    config_file = tmp_path / "env_config.json"
    config_file.write_text(json.dumps(_config(log_file)))
    monkeypatch.setenv(CONFIG_ENV_VARIABLE, str(config_file))

    setup_logging()
    assert any(
        isinstance(handler, RotatingFileHandlerWithDir)
        for handler in reset_circuit_weave_logger.handlers
    )


def test_json_formatter_includes_exception():
    formatter = CircuitWeaveJSONFormatter(fmt_keys={"level": "levelname"})
    try:
        raise ValueError("broken")
    except ValueError:
        record = logging.LogRecord(
            "circuit_weave", logging.ERROR, __file__, 1, "failed", None, None
        )
        record.exc_info = sys.exc_info()
    payload = json.loads(formatter.format(record))
    assert payload["level"] == "ERROR"
    assert payload["message"] == "failed"
    assert "ValueError: broken" in payload["exc_info"]
