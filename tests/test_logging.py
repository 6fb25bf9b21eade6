"""Tests for the loguru setup."""

import logging

from shortlinks.core.config import settings
from shortlinks.core.logging import setup_logging


def test_stdlib_records_reach_loguru(monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)
    monkeypatch.setattr(settings, "LOG_TO_FILE", False)
    monkeypatch.setattr(settings, "DB_ECHO", False)
    bound = setup_logging()
    records = []
    sink_id = bound.add(lambda message: records.append(message.record), level="DEBUG")

    try:
        logging.getLogger("shortlinks.services.dispatcher").warning("click queue full")
    finally:
        bound.remove(sink_id)

    assert [record["message"] for record in records] == ["click queue full"]
    assert records[0]["extra"]["environment"] == settings.ENVIRONMENT.value
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
