"""Tests for warbler.logging — handler installation and formats."""

import io
import json
import logging
import sys

import pytest

from warbler.logging import LOGGER_NAME, JsonFormatter, TextFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "warbler.pages", logging.ERROR, __file__, 1, "failed %s", ("x",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_fields(self) -> None:
        line = JsonFormatter().format(_record(path="/a", user_agent="ua", stage="resolve"))
        data = json.loads(line)
        assert data["level"] == "error"
        assert data["logger"] == "warbler.pages"
        assert data["msg"] == "failed x"
        assert data["path"] == "/a"
        assert data["user_agent"] == "ua"
        assert data["stage"] == "resolve"
        assert "kind" not in data

    def test_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "warbler", logging.ERROR, __file__, 1, "x", None, sys.exc_info()
            )
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exc"]


class TestTextFormatter:
    def test_appends_stage_and_path(self) -> None:
        line = TextFormatter().format(_record(path="/a", stage="render"))
        assert line.endswith("failed x [render /a]")

    def test_plain_without_context(self) -> None:
        assert TextFormatter().format(_record()).endswith("warbler.pages: failed x")


class TestConfigureLogging:
    def test_json_output(self) -> None:
        stream = io.StringIO()
        configure_logging("info", "json", stream=stream)
        logging.getLogger("warbler.server").info("hello", extra={"path": "/p"})
        data = json.loads(stream.getvalue())
        assert data["msg"] == "hello"
        assert data["path"] == "/p"

    def test_level(self) -> None:
        stream = io.StringIO()
        configure_logging("warning", "text", stream=stream)
        logging.getLogger("warbler.server").info("quiet")
        assert stream.getvalue() == ""

    def test_reconfigure_replaces_handler(self) -> None:
        logger = logging.getLogger(LOGGER_NAME)
        before = len(logger.handlers)
        configure_logging()
        configure_logging()
        assert len(logger.handlers) == before + 1

    def test_bad_format(self) -> None:
        with pytest.raises(ValueError, match="log format"):
            configure_logging(fmt="xml")
