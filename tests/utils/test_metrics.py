"""Tests for logging configuration."""

import json
import logging

from pythonjsonlogger.json import JsonFormatter

from src.utils.metrics import build_formatter


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="src.core.pipeline",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


class TestBuildFormatter:
    """Test log formatter selection."""

    def test_json_format_emits_objects(self) -> None:
        """Test json records render as parseable objects with renamed keys."""
        formatter = build_formatter("json")
        line = formatter.format(make_record("Cache miss", cache_key="abc123"))

        payload = json.loads(line)
        assert isinstance(formatter, JsonFormatter)
        assert payload["message"] == "Cache miss"
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "src.core.pipeline"
        assert payload["cache_key"] == "abc123"
        assert "time" in payload

    def test_json_format_keeps_one_line(self) -> None:
        """Test multi-line messages stay on a single output line."""
        line = build_formatter("json").format(make_record("first\nsecond"))

        assert "\n" not in line
        assert json.loads(line)["message"] == "first\nsecond"

    def test_text_format(self) -> None:
        """Test text records render as a plain line."""
        line = build_formatter("text").format(make_record("Cache miss"))

        assert line.endswith(" - src.core.pipeline - WARNING - Cache miss")
