"""Request/response value types exchanged between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleet_client.schemas.envelope import NoContent

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_ATTEMPTS = 3


class RequestDescriptor(BaseModel):
    """Immutable description of one logical HTTP call.

    Built per call and discarded afterwards. Invalid values (unknown method,
    relative path, non-positive budgets) raise ``pydantic.ValidationError``
    at construction time.
    """

    model_config = ConfigDict(frozen=True)

    method: HttpMethod = "GET"
    path: str = Field(..., description="Path below the API base, starting with '/'.")
    body: Any = Field(default=None, description="JSON-serializable request body.")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers; these override the executor defaults.",
    )
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value


@dataclass(frozen=True)
class RawResponse:
    """Executor output handed to the envelope decoder.

    Attributes:
        path: Requested path (below the API base).
        status: HTTP status code.
        content_type: Response Content-Type header ("" when absent).
        body: Parsed JSON, raw text (HTML or other), or ``NO_CONTENT``.
        request_id: Value of the ``X-Request-Id`` response header, if any.
    """

    path: str
    status: int
    content_type: str
    body: Any | NoContent
    request_id: str | None = None
