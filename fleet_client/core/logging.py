"""Structured logging for the fleet client.

Three concerns live here:
- The server correlation id of the call in flight, held in a ContextVar so
  concurrent calls (one asyncio task each) never see each other's id.
- Credential scrubbing: ``X-API-Key`` and friends are redacted from record
  extras, nested header mappings, and ``key=value`` pairs inside strings
  such as URLs or exception messages.
- Handler wiring (JSON or plain, stdout or rotating file) for applications
  that embed the client.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from fleet_client.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Header and field names whose values never reach a log line
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "apikey",
        "x-api-key",
        "x_api_key",
        "fleet_api_key",
        "authorization",
        "proxy-authorization",
        "token",
        "access_token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
    }
)

# ``api_key=...`` style pairs embedded in URLs and free text
_SECRET_PAIR = re.compile(
    r"(?i)\b(api[_-]?key|x-api-key|access_token|token|password)=([^&\s\"']+)"
)

# LogRecord attributes that are not caller-supplied extras
_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "stack",
    }
)


def set_correlation_id(correlation_id: str | None) -> None:
    """Attach a server correlation id to subsequent logs in this context.

    Args:
        correlation_id: Id from a decoded envelope, or None to detach.
    """

    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Return the correlation id of the current context.

    Returns:
        The id last set in this task, or None.
    """

    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Detach any correlation id from the current context."""

    _correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[None]:
    """Scope correlation ids set inside the block to that block.

    On exit the id that was current before the block is restored, so the id
    of one call does not tag the logs of the next call in the same task.

    Args:
        correlation_id: Optional id to set on entry.
    """

    token = _correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id_var.reset(token)


def _is_sensitive_key(key: str, sensitive_keys: frozenset[str]) -> bool:
    """Check if a field or header name carries a credential.

    Args:
        key: Field name on the record, or a key inside a nested mapping.
        sensitive_keys: Lower-cased names that must be redacted.

    Returns:
        True if the value must be redacted.
    """

    return key.lower() in sensitive_keys


def scrub_text(text: str) -> str:
    """Redact ``api_key=...`` style pairs inside a string.

    >>> scrub_text("GET /api/v1/cameras?api_key=abc123&limit=5")
    'GET /api/v1/cameras?api_key=[REDACTED]&limit=5'
    """

    return _SECRET_PAIR.sub(lambda match: f"{match.group(1)}={REDACTED}", text)


def _redact_value(value: Any, sensitive_keys: frozenset[str]) -> Any:
    """Recursively redact credentials within mappings, sequences and strings.

    Args:
        value: Arbitrary value from log record extras.
        sensitive_keys: Names whose values must be redacted.

    Returns:
        The value with credentials replaced by ``[REDACTED]``.
    """

    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, Mapping):
        return {
            k: REDACTED
            if _is_sensitive_key(str(k), sensitive_keys)
            else _redact_value(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v, sensitive_keys) for v in value)
    return value


def _extract_extras(record: LogRecord, sensitive_keys: frozenset[str]) -> dict[str, Any]:
    """Collect caller-supplied extras from a record, redacted.

    Args:
        record: LogRecord to read.
        sensitive_keys: Names whose values must be redacted.

    Returns:
        Mapping of extra field name to its safe value.
    """

    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        if _is_sensitive_key(key, sensitive_keys):
            extras[key] = REDACTED
        else:
            extras[key] = _redact_value(value, sensitive_keys)
    return extras


class CorrelationIdFilter(logging.Filter):
    """Tag records with the correlation id of the current context."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "correlation_id", None) is None:
            correlation_id = get_correlation_id()
            if correlation_id:
                record.correlation_id = correlation_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact credentials on the record itself, so every formatter is safe."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            key.lower() for key in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _extract_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        if isinstance(record.msg, str):
            record.msg = scrub_text(record.msg)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: event name, level, logger, correlation id and extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            key.lower() for key in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": scrub_text(record.getMessage()),
        }

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        payload.update(_extract_extras(record, self.sensitive_keys))

        if record.exc_info:
            payload["exc_info"] = scrub_text(self.formatException(record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the handler selected by ``LOG_OUTPUT``.

    Args:
        log_settings: Resolved logging settings.

    Returns:
        A stdout stream handler, or a (rotating) file handler.
    """

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/fleet_client.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a redacting handler on the root logger.

    The library never calls this on import; applications embedding the client
    call it once at startup.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # httpx logs every request at INFO; keep it at WARNING unless debugging
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
