import logging

import structlog
from structlog.testing import capture_logs

from warikan.logging import configure_logging, get_logger
from warikan.models import EqualSplit
from warikan.services.calculation import calculate
from warikan.services.history import HistoryLog
from warikan.services.share import build_sns_url, decode_token


def test_configure_logging_renders_json(caplog):
    caplog.set_level(logging.INFO)
    try:
        configure_logging()
        get_logger("warikan.test").info("logging.ready", answer=42)
    finally:
        structlog.reset_defaults()

    assert '"event": "logging.ready"' in caplog.text
    assert '"answer": 42' in caplog.text


def test_soft_failures_are_logged():
    with capture_logs() as logs:
        assert decode_token("###") is None
        assert HistoryLog(max_entries=5).import_json("[]") is False

    events = [entry["event"] for entry in logs]
    assert events == ["share.decode.failed", "history.import.failed"]
    assert all(entry["log_level"] == "warning" for entry in logs)


def test_unsupported_sns_is_logged():
    with capture_logs() as logs:
        assert build_sns_url("myspace", calculate(EqualSplit(1000, 3))) is None

    assert logs == [{"event": "share.sns.unsupported", "sns": "myspace", "log_level": "warning"}]
