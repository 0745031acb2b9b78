"""Tests for sensitive data filtering and correlation ids in logs."""

from __future__ import annotations

import asyncio
import json
import logging
from io import StringIO

import pytest

from fleet_client.core.config import LogSettings
from fleet_client.core.logging import (
    CorrelationIdFilter,
    JsonFormatter,
    SensitiveDataFilter,
    clear_correlation_id,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    scrub_text,
    set_correlation_id,
)


def _json_logger(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


@pytest.fixture(autouse=True)
def _reset_correlation_id():
    clear_correlation_id()
    yield
    clear_correlation_id()


def test_sensitive_filter_redacts_api_keys():
    """Ensure SensitiveDataFilter redacts API key fields."""

    logger, stream = _json_logger("test_redaction")

    logger.info(
        "client.request",
        extra={
            "api_key": "sk-secret-123",
            "x-api-key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_nested_headers():
    """Ensure nested sensitive fields are redacted."""

    logger, stream = _json_logger("test_nested")

    logger.info(
        "executor.request",
        extra={
            "headers": {
                "X-API-Key": "secret-key",
                "Authorization": "Bearer abc",
                "Accept": "application/json",
            },
            "attempts": [{"token": "t-1", "status": 503}],
        },
    )

    output = stream.getvalue()

    assert "secret-key" not in output
    assert "Bearer abc" not in output
    assert "t-1" not in output
    assert "application/json" in output
    assert "503" in output


def test_keys_embedded_in_urls_and_messages_are_scrubbed():
    """Credentials passed as query parameters never reach the log line."""

    logger, stream = _json_logger("test_scrub_text")

    logger.warning(
        "request to /api/v1/cameras?api_key=leaky-key-1 failed",
        extra={"url": "http://fleet/api/v1/cameras?limit=5&api_key=leaky-key-2"},
    )

    payload = json.loads(stream.getvalue())

    assert "leaky-key" not in stream.getvalue()
    assert payload["url"] == "http://fleet/api/v1/cameras?limit=5&api_key=[REDACTED]"
    assert payload["message"] == "request to /api/v1/cameras?api_key=[REDACTED] failed"


def test_scrub_text_leaves_plain_text_alone():
    assert scrub_text("camera cam-1 rebooted") == "camera cam-1 rebooted"
    assert scrub_text("X-API-Key=abc") == "X-API-Key=[REDACTED]"


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""

    logger, stream = _json_logger("test_safe_fields")

    logger.info(
        "compat.outcome",
        extra={
            "operation": "cameras.list",
            "outcome": "legacy",
            "endpoint": "/v1/cameras",
            "http_status": 404,
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["message"] == "compat.outcome"
    assert payload["operation"] == "cameras.list"
    assert payload["http_status"] == 404
    assert "[REDACTED]" not in stream.getvalue()


def test_correlation_id_from_context_is_attached():
    logger, stream = _json_logger("test_correlation")
    set_correlation_id("corr-abc")

    logger.info("client.request_failed")

    assert json.loads(stream.getvalue())["correlation_id"] == "corr-abc"


def test_explicit_correlation_id_wins_over_context():
    logger, stream = _json_logger("test_correlation_explicit")
    set_correlation_id("corr-context")

    logger.info("event", extra={"correlation_id": "corr-explicit"})

    assert json.loads(stream.getvalue())["correlation_id"] == "corr-explicit"


def test_no_correlation_id_when_unset():
    logger, stream = _json_logger("test_correlation_unset")

    logger.info("event")

    assert "correlation_id" not in json.loads(stream.getvalue())


@pytest.mark.asyncio
async def test_correlation_id_is_isolated_per_task():
    async def worker(correlation_id: str) -> str | None:
        set_correlation_id(correlation_id)
        await asyncio.sleep(0)
        return get_correlation_id()

    results = await asyncio.gather(worker("a"), worker("b"))

    assert results == ["a", "b"]
    assert get_correlation_id() is None


def test_configure_logging_plain_to_file(tmp_path):
    log_file = tmp_path / "logs" / "fleet.log"
    root = logging.getLogger()
    previous_handlers = root.handlers[:]
    previous_level = root.level

    try:
        configure_logging(
            LogSettings(level="INFO", format="plain", output="file", file_path=str(log_file))
        )
        logging.getLogger("fleet_client.test").info("hello.file", extra={"api_key": "nope-secret"})
        for handler in root.handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "hello.file" in content
        assert "nope-secret" not in content
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)


def test_correlation_scope_restores_previous_id():
    set_correlation_id("outer")

    with correlation_scope():
        set_correlation_id("inner")
        assert get_correlation_id() == "inner"

    assert get_correlation_id() == "outer"


def test_correlation_scope_restores_on_error():
    with pytest.raises(RuntimeError):
        with correlation_scope("scoped"):
            assert get_correlation_id() == "scoped"
            raise RuntimeError("boom")

    assert get_correlation_id() is None
