"""Caller-owned diagnostic context: recent correlation ids and fallback outcomes.

Nothing here is read by business logic. The dashboard's diagnostic view reads
it to show which request ids to quote to support, and whether a feature was
served by the versioned or the legacy API.
"""

from __future__ import annotations

import json
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from fleet_client.core.errors import ClassifiedError


class CompatibilityOutcome(str, Enum):
    """Which protocol generation satisfied a call."""

    VERSIONED = "versioned"
    LEGACY = "legacy"


@dataclass(frozen=True)
class CorrelationEntry:
    operation: str
    correlation_id: str
    recorded_at: float


class DiagnosticContext:
    """Bounded, last-write-wins record of recent correlation ids.

    Attributes:
        max_entries: Ring buffer capacity.
    """

    def __init__(self, max_entries: int = 32) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: deque[CorrelationEntry] = deque(maxlen=max_entries)
        self._outcomes: dict[str, CompatibilityOutcome] = {}
        self._lock = threading.Lock()

    def record_correlation_id(self, operation: str, correlation_id: str) -> None:
        """Append a correlation id; the oldest entry drops once the buffer is full."""

        if not correlation_id:
            return
        entry = CorrelationEntry(
            operation=operation,
            correlation_id=correlation_id,
            recorded_at=datetime.now(timezone.utc).timestamp(),
        )
        with self._lock:
            self._entries.append(entry)

    def record_outcome(self, operation: str, outcome: CompatibilityOutcome) -> None:
        with self._lock:
            self._outcomes[operation] = outcome

    @property
    def last_correlation_id(self) -> str | None:
        with self._lock:
            return self._entries[-1].correlation_id if self._entries else None

    def last_for(self, operation: str) -> str | None:
        """Most recent correlation id recorded for one operation."""

        with self._lock:
            for entry in reversed(self._entries):
                if entry.operation == operation:
                    return entry.correlation_id
        return None

    def recent(self) -> list[CorrelationEntry]:
        """Snapshot of the buffer, oldest first."""

        with self._lock:
            return list(self._entries)

    def outcome_for(self, operation: str) -> CompatibilityOutcome | None:
        with self._lock:
            return self._outcomes.get(operation)

    @property
    def outcomes(self) -> dict[str, CompatibilityOutcome]:
        with self._lock:
            return dict(self._outcomes)


class DebugInfo(BaseModel):
    """Copyable debug information for support requests (no PII, no credentials)."""

    endpoint: str = Field(..., description="Requested path that failed.")
    status: int | None = Field(default=None, description="HTTP status, if any.")
    code: str | None = Field(default=None, description="Classified error code.")
    correlation_id: str | None = Field(
        default=None,
        description="Server correlation id to quote when reporting the failure.",
    )
    timestamp: str = Field(..., description="ISO8601 time the debug info was created.")


def create_debug_info(
    error: ClassifiedError,
    *,
    timestamp: datetime | None = None,
) -> DebugInfo:
    """Build a DebugInfo snapshot from a classified error."""

    return DebugInfo(
        endpoint=error.endpoint or "",
        status=error.http_status,
        code=error.code,
        correlation_id=error.correlation_id,
        timestamp=(timestamp or datetime.now(timezone.utc)).isoformat(),
    )


def format_debug_info(info: DebugInfo) -> str:
    """Render debug info as indented JSON for clipboard copying."""

    return json.dumps(info.model_dump(), indent=2)
