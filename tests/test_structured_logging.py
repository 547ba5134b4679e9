"""Tests for the structured logging helpers."""
import json
import logging

from perftest_engine.utils.logging import (
    StructuredFormatter,
    configure_logging,
)


def _record(msg="hello %s", args=("world",), **extra):
    rec = logging.LogRecord("perftest.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(rec, key, value)
    return rec


def test_formatter_emits_single_json_line():
    line = StructuredFormatter().format(_record())
    assert "\n" not in line
    entry = json.loads(line)
    assert entry["level"] == "INFO"
    assert entry["logger"] == "perftest.test"
    assert entry["message"] == "hello world"
    assert "timestamp" in entry
    assert "metrics" not in entry


def test_formatter_includes_metrics_extra():
    entry = json.loads(StructuredFormatter().format(_record(metrics={"total_requests": 30})))
    assert entry["metrics"] == {"total_requests": 30}


def test_formatter_includes_exception():
    try:
        raise RuntimeError("kaboom")
    except RuntimeError:
        import sys

        rec = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(StructuredFormatter().format(rec))
    assert "kaboom" in entry["exception"]


def test_configure_logging_json():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("warning", "json")
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

        configure_logging("bogus", "structured")
        assert root.level == logging.INFO
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
