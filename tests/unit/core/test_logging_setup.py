"""Tests for the structlog setup."""

import json
import logging

import pytest
import structlog

from httpecho.core.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging(json_logs=False, log_level_name="DEBUG")
    structlog.configure(cache_logger_on_first_use=False)


@pytest.mark.unit
def test_json_logs_render_event_and_context(capsys: pytest.CaptureFixture[str]):
    setup_logging(json_logs=True, log_level_name="INFO")
    structlog.configure(cache_logger_on_first_use=False)

    get_logger("httpecho.test").info("request_received", method="GET", uri="/")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "request_received"
    assert record["method"] == "GET"
    assert record["level"] == "info"


@pytest.mark.unit
def test_level_filters_debug(capsys: pytest.CaptureFixture[str]):
    setup_logging(json_logs=True, log_level_name="WARNING")
    structlog.configure(cache_logger_on_first_use=False)

    get_logger("httpecho.test").info("hidden_event")

    assert "hidden_event" not in capsys.readouterr().err
    assert logging.getLogger().level == logging.WARNING


@pytest.mark.unit
def test_uvicorn_loggers_propagate_to_root():
    setup_logging(json_logs=False, log_level_name="INFO")

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        assert logger.propagate is True
        assert logger.handlers == []
