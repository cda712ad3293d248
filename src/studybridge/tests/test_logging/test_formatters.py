# src/studybridge/tests/test_logging/test_formatters.py
import json
import logging
import sys

from studybridge.core.logging.formatters import ColorFormatter, JsonFormatter


def make_record(exc_info=None):
    return logging.LogRecord("studybridge", logging.INFO, __file__, 10, "hello %s", ("tester",), exc_info)


def test_json_formatter_basic_fields():
    rec = make_record()
    rec.model = "Account"
    rec.request_id = "req-1"

    data = json.loads(JsonFormatter(env="testing", service="svc").format(rec))

    assert data["message"] == "hello tester"
    assert data["level"] == "INFO"
    assert data["logger"] == "studybridge"
    assert data["service"] == "svc"
    assert data["env"] == "testing"
    assert data["request_id"] == "req-1"
    assert data["model"] == "Account"
    assert "timestamp" in data
    assert "version" in data


def test_json_formatter_skips_standard_record_attributes():
    data = json.loads(JsonFormatter().format(make_record()))

    assert data["service"] == "studybridge"
    assert data["request_id"] == "-"
    for attr in ("args", "msg", "levelno", "funcName", "thread", "created"):
        assert attr not in data


def test_json_formatter_non_serializable_extra():
    class X:
        def __repr__(self):
            return "<X>"

    rec = make_record()
    rec.obj = X()

    data = json.loads(JsonFormatter(env="dev", service="svc").format(rec))
    assert data["obj"] == "<X>"


def test_json_formatter_includes_traceback():
    try:
        raise ValueError("boom")
    except ValueError:
        rec = make_record(exc_info=sys.exc_info())

    data = json.loads(JsonFormatter().format(rec))
    assert "ValueError: boom" in data["exc_info"]


def test_color_formatter_line():
    rec = make_record()
    rec.request_id = "req-9"

    line = ColorFormatter().format(rec)

    assert "\033[32mINFO" in line
    assert "req-9" in line
    assert line.endswith("hello tester")
