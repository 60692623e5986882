"""Tests configuration des logs / Logging configuration tests."""

import json
import logging

from coverdesk.logging_config import JSONFormatter, RequestIdFilter, request_id_var


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("coverdesk.test", logging.WARNING, __file__, 1, message, (), None)


def test_json_lines_carry_request_id():
    record = _record("claim rejected")
    token = request_id_var.set("req-42")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)

    entry = json.loads(JSONFormatter().format(record))
    assert entry["request_id"] == "req-42"
    assert entry["level"] == "WARNING"
    assert entry["message"] == "claim rejected"


def test_request_id_defaults_outside_requests():
    record = _record("startup")
    RequestIdFilter().filter(record)
    assert record.request_id == "-"
