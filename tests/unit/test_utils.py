# tests/unit/test_utils.py
"""Tests for the structured logging helpers."""

import json
import logging

from freezegun import freeze_time

from svg_sanitizer.utils import (
    ERROR_MESSAGE_MAX_LENGTH,
    LOGGER_NAME,
    configure_logging,
    get_iso_timestamp,
    log_error,
    log_op,
    log_warning,
    truncate_error,
)


class TestGetIsoTimestamp:
    @freeze_time("2026-01-01 12:00:00")
    def test_z_suffix(self):
        assert get_iso_timestamp() == "2026-01-01T12:00:00Z"


class TestTruncateError:
    def test_short_message_unchanged(self):
        assert truncate_error("short") == "short"

    def test_long_message_truncated_with_ellipsis(self):
        result = truncate_error("x" * 500)
        assert len(result) == ERROR_MESSAGE_MAX_LENGTH
        assert result.endswith("...")

    def test_accepts_exception(self):
        assert truncate_error(ValueError("bad value")) == "bad value"

    def test_custom_length(self):
        assert truncate_error("abcdefghij", max_length=6) == "abc..."


class TestLogHelpers:
    @freeze_time("2026-01-01 12:00:00")
    def test_log_op(self, sanitizer_logs):
        log_op("css_declaration_neutralized", property="width")

        [record] = sanitizer_logs.records
        assert record.levelno == logging.INFO
        assert json.loads(record.getMessage()) == {
            "event_type": "css_declaration_neutralized",
            "timestamp": "2026-01-01T12:00:00Z",
            "property": "width",
        }

    def test_log_warning(self, sanitizer_logs):
        log_warning("css_truncated", max_length=10)
        [record] = sanitizer_logs.records
        assert record.levelno == logging.WARNING

    def test_log_error(self, sanitizer_logs):
        log_error("css_sanitize_error", TypeError("boom"), css_length=3)

        [record] = sanitizer_logs.records
        event = json.loads(record.getMessage())
        assert record.levelno == logging.ERROR
        assert event["error_type"] == "TypeError"
        assert event["error"] == "boom"
        assert event["css_length"] == 3


class TestConfigureLogging:
    def test_adds_one_handler_and_sets_level(self):
        logger = logging.getLogger(LOGGER_NAME)
        handlers, level = list(logger.handlers), logger.level
        try:
            configure_logging(logging.WARNING)
            configure_logging(logging.DEBUG)

            stream_handlers = [
                h for h in logger.handlers if type(h) is logging.StreamHandler
            ]
            assert len(stream_handlers) == 1
            assert logger.level == logging.DEBUG
            assert logger.propagate is True
        finally:
            logger.handlers[:] = handlers
            logger.setLevel(level)
