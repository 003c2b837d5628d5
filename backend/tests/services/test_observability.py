"""Structured Logging: JSON lines with whitelisted extras."""

import json
import logging

from rebuzzle.infrastructure.observability import JSONFormatter


def _record(**extra):
    record = logging.LogRecord(
        "rebuzzle.test", logging.INFO, __file__, 1, "Attempt recorded", None, None,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_json_formatter_surfaces_known_extras():
    line = JSONFormatter().format(_record(user_id="u-1", identified_by="cookie"))
    data = json.loads(line)

    assert data["message"] == "Attempt recorded"
    assert data["level"] == "INFO"
    assert data["user_id"] == "u-1"
    assert data["identified_by"] == "cookie"


def test_json_formatter_drops_unknown_extras():
    data = json.loads(JSONFormatter().format(_record(ip_address="203.0.113.5")))
    assert "ip_address" not in data


def test_json_formatter_keeps_token_usage():
    data = json.loads(JSONFormatter().format(
        _record(attempt=1, input_tokens=120, output_tokens=8),
    ))

    assert data["attempt"] == 1
    assert data["input_tokens"] == 120
    assert data["output_tokens"] == 8
