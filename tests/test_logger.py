"""Tests for logging helpers."""

import logging

import pytest
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer

from finrecon import logger as logger_module


def test_select_renderer_uses_console_in_debug(monkeypatch) -> None:
    monkeypatch.setattr(logger_module.settings, "debug", True)
    renderer = logger_module._select_renderer()
    assert isinstance(renderer, ConsoleRenderer)


def test_select_renderer_uses_json_in_production(monkeypatch) -> None:
    monkeypatch.setattr(logger_module.settings, "debug", False)
    renderer = logger_module._select_renderer()
    assert isinstance(renderer, JSONRenderer)


def test_log_timing_reports_duration_and_context(caplog) -> None:
    log = logger_module.get_logger("tests.timing")

    with logger_module.log_timing("auto_match", logger=log, user_id="u-1") as timing:
        timing["matched_count"] = 3

    assert timing["duration_ms"] >= 0
    output = caplog.text
    assert "auto_match completed" in output
    assert "matched_count" in output
    assert "u-1" in output


def test_log_timing_logs_even_when_body_raises(caplog) -> None:
    log = logger_module.get_logger("tests.timing")

    with pytest.raises(ValueError):
        with logger_module.log_timing("reconcile_document", logger=log):
            raise ValueError("bad input")

    assert "reconcile_document completed" in caplog.text


def test_log_exception_includes_error_details(caplog) -> None:
    log = logger_module.get_logger("tests.exceptions")

    try:
        raise RuntimeError("commit failed")
    except RuntimeError as exc:
        logger_module.log_exception(log, exc, "Match commit failed", transaction_id="t-1")

    output = caplog.text
    assert "Match commit failed" in output
    assert "RuntimeError" in output
    assert "t-1" in output


def test_log_exception_without_traceback_uses_level(caplog) -> None:
    log = logger_module.get_logger("tests.exceptions")

    with caplog.at_level(logging.WARNING):
        logger_module.log_exception(
            log, ValueError("soft"), "Soft failure", level="warning", include_traceback=False
        )

    assert any(record.levelno == logging.WARNING for record in caplog.records)


def test_configure_logging_installs_stdout_handler(monkeypatch) -> None:
    calls: dict = {}

    def fake_basic_config(**kwargs):
        calls.update(kwargs)

    monkeypatch.setattr(logger_module.settings, "debug", False)
    monkeypatch.setattr(logger_module.logging, "basicConfig", fake_basic_config)
    monkeypatch.setattr(logger_module.structlog, "configure", lambda **kwargs: None)

    logger_module.configure_logging()

    assert calls["level"] == logging.INFO
    [handler] = calls["handlers"]
    assert isinstance(handler.formatter, logger_module.structlog.stdlib.ProcessorFormatter)
