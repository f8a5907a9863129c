"""Unit tests for correlation-aware logging setup."""

import logging

import pytest

from directus_sync.infrastructure.logging import (
    CorrelationIDFilter,
    configure_logging,
    correlation_id_var,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    token = correlation_id_var.set(None)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    correlation_id_var.reset(token)


def test_correlation_id_is_created_once(restore_logging):
    first = get_correlation_id()

    assert get_correlation_id() == first
    set_correlation_id("run-7")
    assert get_correlation_id() == "run-7"


def test_filter_stamps_records(restore_logging):
    set_correlation_id("run-8")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)

    assert CorrelationIDFilter().filter(record)
    assert record.correlation_id == "run-8"


def test_http_loggers_follow_verbose_flag(restore_logging):
    configure_logging(logging.INFO, verbose=False)
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging(logging.INFO, verbose=True)
    assert logging.getLogger("httpx").level == logging.INFO
    assert len(logging.getLogger().handlers) == 1


def test_records_go_to_stderr(restore_logging, capsys):
    configure_logging(logging.INFO)
    set_correlation_id("run-9")

    logging.getLogger("directus_sync.test").info("Imported item")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "correlation_id=run-9 Imported item" in captured.err
