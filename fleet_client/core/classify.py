"""Conversion of server error descriptors and pipeline failures into ClassifiedError.

This is the failure boundary of the pipeline: whatever goes wrong below it
(timeouts, dropped connections, HTTP errors, HTML fallbacks, failure
envelopes) leaves as exactly one ``ClassifiedError``.
"""

from __future__ import annotations

from typing import Any

from fleet_client.core.errors import (
    ClassifiedError,
    HTMLFallbackError,
    HttpError,
    MalformedResponseError,
    NetworkError,
    PipelineError,
    RequestTimeoutError,
)
from fleet_client.core.taxonomy import HTML_FALLBACK_CODE, MALFORMED_RESPONSE_CODE
from fleet_client.schemas.envelope import ErrorDescriptor

# Status-derived codes for HTTP errors that did not carry a failure envelope
HTTP_STATUS_CODES: dict[int, str] = {
    400: "INVALID_REQUEST",
    401: "UNAUTHORIZED",
    403: "UNAUTHORIZED",
    422: "VALIDATION_FAILED",
    429: "RATE_LIMITED",
}


def from_error_descriptor(
    descriptor: ErrorDescriptor,
    correlation_id: str | None = None,
    *,
    http_status: int | None = None,
    endpoint: str | None = None,
) -> ClassifiedError:
    """Build a ClassifiedError from a server-supplied error descriptor.

    Retry eligibility is taken verbatim from the server; the taxonomy only
    adds category and display text.

    Args:
        descriptor: The ``error`` object of a failure envelope.
        correlation_id: Envelope correlation id, if present.
        http_status: HTTP status the envelope arrived with, if not 2xx.
        endpoint: Requested path.

    Returns:
        Classified error ready for display.
    """

    return ClassifiedError(
        code=descriptor.code,
        message=descriptor.message,
        details=descriptor.details,
        retryable=descriptor.retryable,
        retry_after_seconds=descriptor.retry_after_seconds,
        correlation_id=correlation_id or None,
        http_status=http_status,
        endpoint=endpoint,
    )


def _code_from_body(body: Any) -> str | None:
    if isinstance(body, dict) and isinstance(body.get("code"), str):
        return body["code"]
    return None


def _message_from_body(body: Any, default: str) -> str:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return default


def classify_exception(exc: PipelineError, endpoint: str | None = None) -> ClassifiedError:
    """Classify a transport or decoding failure.

    Args:
        exc: Failure raised by the executor or decoder.
        endpoint: Requested path (used when the error doesn't carry one).

    Returns:
        Classified error with a stable code.
    """

    if isinstance(exc, RequestTimeoutError):
        return ClassifiedError(
            code="NETWORK_ERROR",
            message=exc.message,
            details=f"timeout after {exc.timeout_ms}ms",
            retryable=True,
            endpoint=exc.endpoint or endpoint,
        )

    if isinstance(exc, NetworkError):
        return ClassifiedError(
            code="NETWORK_ERROR",
            message=_message_from_body(exc.body, exc.message),
            retryable=True,
            http_status=exc.status,
            endpoint=exc.endpoint or endpoint,
        )

    if isinstance(exc, HttpError):
        code = (
            _code_from_body(exc.body)
            or HTTP_STATUS_CODES.get(exc.status)
            or f"HTTP_{exc.status}"
        )
        return ClassifiedError(
            code=code,
            message=_message_from_body(exc.body, exc.message),
            details=f"request_id={exc.request_id}" if exc.request_id else None,
            retryable=exc.status >= 500,
            http_status=exc.status,
            endpoint=exc.endpoint or endpoint,
        )

    if isinstance(exc, HTMLFallbackError):
        return ClassifiedError(
            code=HTML_FALLBACK_CODE,
            message=exc.message,
            details=exc.hint,
            retryable=False,
            http_status=exc.status,
            endpoint=exc.endpoint,
            user_message_override=exc.user_message,
        )

    if isinstance(exc, MalformedResponseError):
        return ClassifiedError(
            code=MALFORMED_RESPONSE_CODE,
            message=exc.message,
            retryable=False,
            endpoint=exc.endpoint or endpoint,
        )

    return ClassifiedError(
        code="INTERNAL_ERROR",
        message=exc.message,
        retryable=False,
        endpoint=endpoint,
    )
