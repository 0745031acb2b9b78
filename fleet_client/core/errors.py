"""Exception types for the request pipeline.

Two families live here:

- ``PipelineError`` subclasses are raised inside the pipeline (transport and
  decoding) and never reach callers that use the client facade.
- ``ClassifiedError`` is the single failure value callers see. It carries a
  stable machine code plus a derived category and display text.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, NotRequired, TypedDict

from fleet_client.core.taxonomy import (
    HTML_FALLBACK_CODE,
    ErrorCategory,
    get_error_category,
    get_user_message,
)


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    endpoint: str
    http_status: int
    request_id: str
    timeout_ms: int
    attempts: int
    content_type: str
    context: NotRequired[dict[str, Any]]


@dataclass(eq=False)
class AppError(Exception):
    """Base error for client failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class PipelineError(AppError):
    """Raised by the executor or decoder; classified before leaving the client."""


class RequestTimeoutError(PipelineError):
    """An attempt exceeded its wall-clock timeout."""

    def __init__(self, timeout_ms: int, endpoint: str | None = None) -> None:
        super().__init__(
            code="request_timeout",
            message=f"Request timed out after {timeout_ms}ms",
            details={"timeout_ms": timeout_ms, "endpoint": endpoint or ""},
        )
        self.timeout_ms = timeout_ms
        self.endpoint = endpoint


class NetworkError(PipelineError):
    """Connection-level failure or exhausted 5xx retries.

    ``status`` holds the last HTTP status seen when the failure came from a
    server error rather than the network itself.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        status: int | None = None,
        body: Any = None,
    ) -> None:
        details: ErrorDetails = {"endpoint": endpoint or ""}
        if status is not None:
            details["http_status"] = status
        super().__init__(code="network_error", message=message, details=details)
        self.endpoint = endpoint
        self.status = status
        self.body = body


class HttpError(PipelineError):
    """Terminal HTTP 4xx response."""

    def __init__(
        self,
        status: int,
        *,
        endpoint: str | None = None,
        body: Any = None,
        request_id: str | None = None,
    ) -> None:
        details: ErrorDetails = {"endpoint": endpoint or "", "http_status": status}
        if request_id:
            details["request_id"] = request_id
        super().__init__(
            code="http_error",
            message=f"HTTP {status} from {endpoint}",
            details=details,
        )
        self.status = status
        self.endpoint = endpoint
        self.body = body
        self.request_id = request_id


class HTMLFallbackError(PipelineError):
    """An API path was answered by the UI's catch-all HTML route.

    This usually means the endpoint is not registered on the backend, which
    makes it the trigger for falling back to the legacy protocol.
    """

    hint = "API route hitting SPA fallback - endpoint may not be registered"

    def __init__(
        self,
        endpoint: str,
        actual_content_type: str,
        expected_content_type: str = "application/json",
        *,
        status: int | None = None,
    ) -> None:
        details: ErrorDetails = {"endpoint": endpoint, "content_type": actual_content_type}
        if status is not None:
            details["http_status"] = status
        super().__init__(
            code="html_fallback",
            message=f"Expected JSON but received HTML from {endpoint}",
            details=details,
        )
        self.status = status
        self.endpoint = endpoint
        self.expected_content_type = expected_content_type
        self.actual_content_type = actual_content_type
        self.timestamp = datetime.now(timezone.utc)

    @property
    def user_message(self) -> str:
        return (
            f'The API endpoint "{self.endpoint}" returned an HTML page instead of data. '
            "This may indicate the endpoint is not properly registered on the server."
        )


class MalformedResponseError(PipelineError):
    """Body claimed to be JSON (or an envelope) but could not be interpreted."""

    def __init__(self, message: str, endpoint: str | None = None) -> None:
        super().__init__(
            code="malformed_response",
            message=message,
            details={"endpoint": endpoint or ""},
        )
        self.endpoint = endpoint


@dataclass(eq=False)
class ClassifiedError(AppError):
    """Failure value enriched with category and user-facing text.

    Built once at the failure boundary; its fields are read-only. ``category``
    and ``user_message`` are derived from ``code`` via the error taxonomy.

    Attributes:
        retryable: Server-declared (or transport-derived) retry eligibility.
        retry_after_seconds: Suggested wait before a manual retry.
        correlation_id: Server correlation id, when the failure carried one.
        http_status: HTTP status behind the failure, if any.
        endpoint: Requested path.
        user_message_override: Display text that replaces the registry lookup.
    """

    details: str | None = None  # type: ignore[assignment]
    retryable: bool = False
    retry_after_seconds: float | None = None
    correlation_id: str | None = None
    http_status: int | None = None
    endpoint: str | None = None
    user_message_override: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False) and name in _CLASSIFIED_FIELDS:
            raise FrozenInstanceError(f"cannot assign to field {name!r}")
        super().__setattr__(name, value)

    @property
    def category(self) -> ErrorCategory:
        return get_error_category(self.code)

    @property
    def user_message(self) -> str:
        if self.user_message_override:
            return self.user_message_override
        return get_user_message(self.code)

    @property
    def is_endpoint_unavailable(self) -> bool:
        """True when the failure means "this route does not exist here"."""

        return self.code == HTML_FALLBACK_CODE or self.http_status in (404, 501)

    def to_log_dict(self) -> dict[str, Any]:
        """Plain mapping for structured logs (no payloads, no credentials)."""

        return {
            "error_code": self.code,
            "error_message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
            "retry_after_seconds": self.retry_after_seconds,
            "correlation_id": self.correlation_id,
            "http_status": self.http_status,
            "endpoint": self.endpoint,
        }


_CLASSIFIED_FIELDS = frozenset(f.name for f in fields(ClassifiedError))

