"""Tests for structured logging helpers."""

import logging
import pytest

from presence_api.utils.logging import (
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    mask_user_id,
    get_structured_logger,
    sanitize_message_text,
)
from presence_api.utils.logging_config import LoggingConfig


@pytest.mark.unit
def test_correlation_context_restores_previous():
    assert get_correlation_id() is None
    with correlation_context("cmd_outer"):
        with correlation_context() as inner:
            assert inner.startswith("req_")
            assert get_correlation_id() == inner
        assert get_correlation_id() == "cmd_outer"
    assert get_correlation_id() is None


@pytest.mark.unit
def test_generate_correlation_id_prefix():
    assert generate_correlation_id("btn").startswith("btn_")


@pytest.mark.unit
def test_mask_user_id(monkeypatch):
    monkeypatch.setattr(LoggingConfig, "LOG_MASK_SENSITIVE", True)
    masked = mask_user_id("123456789012345678")
    assert masked.startswith("1234...")
    assert "123456789012345678" not in masked
    assert mask_user_id("123456789012345678") == masked


@pytest.mark.unit
def test_mask_user_id_disabled(monkeypatch):
    monkeypatch.setattr(LoggingConfig, "LOG_MASK_SENSITIVE", False)
    assert mask_user_id("123456789012345678") == "123456789012345678"


@pytest.mark.unit
def test_sanitize_message_text(monkeypatch):
    monkeypatch.setattr(LoggingConfig, "LOG_MESSAGE_CONTENT", True)
    assert sanitize_message_text("x" * 10, max_length=4) == "xxxx..."

    monkeypatch.setattr(LoggingConfig, "LOG_MESSAGE_CONTENT", False)
    assert sanitize_message_text("secret plans") is None


@pytest.mark.unit
def test_structured_error_carries_fields_and_traceback(caplog):
    log = get_structured_logger("presence_api.tests")

    with caplog.at_level(logging.ERROR, logger="presence_api.tests"):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log.error("Task rollback failed", exc_info=True, task_id="abc123")

    record = caplog.records[-1]
    assert record.task_id == "abc123"
    assert record.exc_info[0] is RuntimeError
