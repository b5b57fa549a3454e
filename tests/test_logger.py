"""
Tests for the Logger utility.
"""

import io

import pytest

from gamecode.utils.logger import Logger, LogLevel, parse_level


@pytest.fixture
def restore_level():
    previous = Logger.get_level()
    yield
    Logger.set_level(previous)


class TestLogger:
    def test_parse_level(self):
        assert parse_level("debug") is LogLevel.DEBUG
        assert parse_level("WARN") is LogLevel.WARNING
        assert parse_level("chatty") is LogLevel.INFO
        assert parse_level(None, LogLevel.ERROR) is LogLevel.ERROR

    def test_context_prefix_and_data(self, restore_level):
        Logger.set_level("info")
        stream = io.StringIO()
        Logger("Agent", stream).info("Turn started", {"rounds": 2})

        output = stream.getvalue()
        assert "[Agent] Turn started" in output
        assert '"rounds": 2' in output

    def test_level_filtering(self, restore_level):
        Logger.set_level(LogLevel.WARNING)
        stream = io.StringIO()
        logger = Logger("Context", stream)

        logger.info("hidden")
        logger.warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_error_includes_exception(self, restore_level):
        Logger.set_level("info")
        stream = io.StringIO()
        Logger("Backend", stream).error("Request failed", ValueError("bad payload"))

        output = stream.getvalue()
        assert '"error_type": "ValueError"' in output
        assert "bad payload" in output

    def test_child_context(self, restore_level):
        Logger.set_level("debug")
        stream = io.StringIO()
        Logger("Agent", stream).child("Round").debug("Requesting model")

        assert "[Agent:Round] Requesting model" in stream.getvalue()
