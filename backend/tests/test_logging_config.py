"""
test_logging_config.py — JSON / text formatter output.

No database, network, or external services are required.
"""

import json
import logging

from app.services.logging_config import JSONFormatter, TextFormatter


def _record(msg, **extra):
    record = logging.LogRecord("hr-api.payroll", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_carries_context_fields():
    line = JSONFormatter().format(_record("payroll calculated", employee_id="e-1", final_payout=3875.0))
    entry = json.loads(line)
    assert entry["message"] == "payroll calculated"
    assert entry["logger"] == "hr-api.payroll"
    assert entry["employee_id"] == "e-1"
    assert entry["final_payout"] == 3875.0
    assert "request_id" not in entry


def test_json_keeps_arabic_readable():
    line = JSONFormatter().format(_record("خصم 2 يوم (غياب)"))
    assert "غياب" in line


def test_text_formatter_appends_context():
    line = TextFormatter().format(_record("request completed", http_status=200))
    assert "request completed" in line
    assert line.endswith("http_status=200")
