"""Tests for structured logging."""

import json
import logging
import sys

import pytest

from kvload.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    current_context,
    phase_var,
    worker_id_var,
)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="kvload.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    """Tests for LogContext."""

    def test_sets_and_resets(self) -> None:
        with LogContext(phase="preset", worker_id=3):
            assert phase_var.get() == "preset"
            assert worker_id_var.get() == "3"
            assert current_context() == {"phase": "preset", "worker_id": "3"}

        assert phase_var.get() == ""
        assert current_context() == {}

    def test_nested_restores_outer(self) -> None:
        with LogContext(phase="boot"):
            with LogContext(phase="steady"):
                assert phase_var.get() == "steady"
            assert phase_var.get() == "boot"

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            LogContext(tenant="x")


class TestFormatters:
    """Tests for JSON and console formatters."""

    def test_json_includes_context(self) -> None:
        with LogContext(run_id="abc", phase="steady"):
            output = JsonFormatter().format(_record())

        data = json.loads(output)
        assert data["message"] == "hello"
        assert data["level"] == "WARNING"
        assert data["logger"] == "kvload.test"
        assert data["run_id"] == "abc"
        assert data["phase"] == "steady"
        assert "worker_id" not in data

    def test_json_includes_extras(self) -> None:
        data = json.loads(JsonFormatter().format(_record(key="k1", payload=object())))

        assert data["key"] == "k1"
        assert isinstance(data["payload"], str)

    def test_json_exception(self) -> None:
        try:
            raise ConnectionError("refused")
        except ConnectionError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "ConnectionError"
        assert data["exception"]["message"] == "refused"

    def test_console_format(self) -> None:
        with LogContext(worker_id=2):
            output = ConsoleFormatter(use_colors=False).format(_record("step"))

        assert "| WARNING  | kvload.test | step | worker_id=2" in output


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_single_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(json_format=True, level="debug")
            configure_logging(json_format=False, level="WARNING")

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
            assert root.level == logging.WARNING
            assert logging.getLogger("redis").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
