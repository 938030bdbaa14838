"""Tests for tagged component logging."""

import logging

from synesthete.logging_utils import component_logger, log_event, set_log_level


def test_fields_are_appended(caplog):
    log_event("WARN", "Engine", "Rejected parameter", key="decay_rate", value=0.123456)

    record = caplog.records[-1]
    assert record.tag == "Engine"
    assert record.levelno == logging.WARNING
    assert record.getMessage() == "Rejected parameter | key=decay_rate value=0.1235"


def test_component_level_is_independent(caplog):
    set_log_level("DEBUG", component="Monitor")
    try:
        log_event("DEBUG", "Monitor", "BEAT intensity 1.20")
        log_event("DEBUG", "Engine", "not shown")
    finally:
        component_logger("Monitor").setLevel(logging.NOTSET)

    messages = [r.getMessage() for r in caplog.records]
    assert "BEAT intensity 1.20" in messages
    assert "not shown" not in messages
