"""Pydantic schemas for the versioned (V1) response envelope."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ErrorDescriptor(BaseModel):
    """Structured error information returned by the versioned protocol."""

    code: str = Field(..., description="Machine-readable error code.")
    message: str = Field(..., description="Human-readable message from the backend.")
    retryable: bool = Field(
        default=False,
        description="Whether the server considers the request safe to retry.",
    )
    retry_after_seconds: float | None = Field(
        default=None,
        description="Recommended wait time before retrying, in seconds.",
    )
    details: str | None = Field(
        default=None,
        description="Additional context for debugging.",
    )


class SuccessEnvelope(BaseModel):
    """Successful V1 response: ``{success: true, data, correlation_id, timestamp}``."""

    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    data: Any = None
    correlation_id: str = Field(
        default="",
        description="Server-issued id used to correlate client errors with backend logs.",
    )
    timestamp: str = Field(default="", description="ISO8601 response timestamp.")


class FailureEnvelope(BaseModel):
    """Failed V1 response: ``{success: false, error, correlation_id, timestamp}``."""

    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: ErrorDescriptor
    correlation_id: str = ""
    timestamp: str = ""


Envelope = SuccessEnvelope | FailureEnvelope


@dataclass(frozen=True)
class LegacyBody:
    """Bare legacy response, passed through for the caller to interpret."""

    value: Any


class NoContent(Enum):
    """Sentinel for empty or non-JSON 2xx responses."""

    NO_CONTENT = "no_content"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT = NoContent.NO_CONTENT
