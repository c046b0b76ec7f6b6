"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys

import pytest

from duewise.config import BaseConfig
from duewise.logging_config import LOGGER_NAMESPACE, JSONFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Detach handlers installed by setup_logging after each test."""
    yield
    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


def _record(level=logging.INFO, msg="Test message", exc_info=None):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


def test_json_formatter():
    """JSONFormatter renders the standard fields."""
    log_data = json.loads(JSONFormatter().format(_record()))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test.logger"
    assert log_data["message"] == "Test message"
    assert log_data["module"] == "test_module"
    assert log_data["function"] == "test_function"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_exception():
    """JSONFormatter includes exception details."""
    try:
        raise ValueError("Test error")
    except ValueError:
        exc_info = sys.exc_info()

    log_data = json.loads(JSONFormatter().format(_record(logging.ERROR, "Error occurred", exc_info)))

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"] is not None


def test_json_formatter_with_extra_fields():
    """Fields passed through ``extra`` end up under their own key."""
    record = _record()
    record.reminder_id = "loan:L1:2024-07-15"
    record.removed = 2

    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["extra"] == {"reminder_id": "loan:L1:2024-07-15", "removed": 2}


def test_setup_logging(data_dir):
    """setup_logging writes JSON lines to a rotating file under DATA_DIR."""
    config = BaseConfig()
    config.DEV_MODE = True

    logger = setup_logging(config)

    assert logger.name == "duewise"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 2

    log_file = data_dir / "logs" / "duewise.log"
    assert log_file.exists()

    get_logger("tests").warning("Reminder store offline", extra={"user_id": "alice"})
    for handler in logger.handlers:
        handler.flush()

    lines = [line for line in log_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    entries = [json.loads(line) for line in lines]
    assert entries[0]["message"] == "Logging initialized"
    assert entries[-1]["message"] == "Reminder store offline"
    assert entries[-1]["logger"] == "duewise.tests"
    assert entries[-1]["extra"]["user_id"] == "alice"


def test_setup_logging_twice_does_not_duplicate_handlers(data_dir):
    config = BaseConfig()

    setup_logging(config)
    logger = setup_logging(config)

    assert len(logger.handlers) == 2


def test_get_logger():
    """get_logger returns loggers under the package namespace."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")

    assert logger1.name == "duewise.module1"
    assert logger2.name == "duewise.module2"
    assert logger1 != logger2


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(data_dir, dev_mode):
    """Console logging level adjusts based on dev mode."""
    config = BaseConfig()
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handler = None
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.handlers.RotatingFileHandler
        ):
            console_handler = handler
            break

    assert console_handler is not None
    expected_level = logging.INFO if dev_mode else logging.WARNING
    assert console_handler.level == expected_level
