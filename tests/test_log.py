"""Tests for gora.log: console and JSON formatters."""

import io
import json
import logging
import sys

import pytest

from gora.log import ConsoleFormatter, JSONFormatter, configure_logging, record_extras


@pytest.fixture
def restore_gora_logger():
    logger = logging.getLogger("gora")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("gora.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRecordExtras:
    def test_only_extra_fields(self) -> None:
        assert record_extras(_record(status=200, path="/")) == {"status": 200, "path": "/"}

    def test_none_for_plain_record(self) -> None:
        assert record_extras(_record()) == {}


class TestConsoleFormatter:
    def test_appends_key_values(self) -> None:
        line = ConsoleFormatter().format(_record("GET /", status=200))
        assert "gora.test GET / status=200" in line

    def test_plain(self) -> None:
        assert ConsoleFormatter().format(_record("plain")).endswith("gora.test plain")


class TestJSONFormatter:
    def test_one_object_per_record(self) -> None:
        data = json.loads(JSONFormatter().format(_record("GET /", status=200, obj=object())))
        assert data["message"] == "GET /"
        assert data["level"] == "INFO"
        assert data["logger"] == "gora.test"
        assert data["status"] == 200
        assert isinstance(data["obj"], str)

    def test_exception(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("gora", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in data["exception"]


class TestConfigureLogging:
    def test_production_writes_json(self, restore_gora_logger) -> None:
        stream = io.StringIO()
        configure_logging(production=True, stream=stream)
        logging.getLogger("gora.access").info("GET / 200", extra={"status": 200})
        data = json.loads(stream.getvalue().strip())
        assert data["status"] == 200

    def test_development_writes_console(self, restore_gora_logger) -> None:
        stream = io.StringIO()
        configure_logging(stream=stream, level="debug")
        logging.getLogger("gora.router").debug("route %s", "GET ^/$")
        assert "gora.router route GET ^/$" in stream.getvalue()

    def test_reconfigure_replaces_handler(self, restore_gora_logger) -> None:
        configure_logging(stream=io.StringIO())
        configure_logging(stream=io.StringIO())
        ours = [h for h in restore_gora_logger.handlers if getattr(h, "_gora_handler", False)]
        assert len(ours) == 1
