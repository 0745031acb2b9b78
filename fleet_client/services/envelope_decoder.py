"""Envelope decoding: tell V1 envelopes, legacy bodies and HTML fallbacks apart."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from fleet_client.core.diagnostics import DiagnosticContext
from fleet_client.core.errors import HTMLFallbackError, MalformedResponseError
from fleet_client.core.logging import set_correlation_id
from fleet_client.schemas.envelope import (
    NO_CONTENT,
    FailureEnvelope,
    LegacyBody,
    NoContent,
    SuccessEnvelope,
)
from fleet_client.schemas.request import RawResponse
from fleet_client.utils.content import is_html_body

logger = logging.getLogger(__name__)

DecodedBody = SuccessEnvelope | FailureEnvelope | LegacyBody | NoContent

# Besides a boolean ``success``, a V1 envelope carries at least one of these
_ENVELOPE_KEYS = ("data", "error", "correlation_id")


def is_envelope(body: Any) -> bool:
    """Return True when a parsed body has the shape of a V1 envelope.

    Some legacy endpoints answer ``{"success": true, "cameras": [...]}``; a
    boolean ``success`` alone is not enough to call that an envelope.
    """
    return (
        isinstance(body, dict)
        and isinstance(body.get("success"), bool)
        and any(key in body for key in _ENVELOPE_KEYS)
    )


def _normalize_envelope_fields(body: dict[str, Any]) -> dict[str, Any]:
    data = dict(body)
    for key in ("correlation_id", "timestamp"):
        if not isinstance(data.get(key), str):
            data[key] = ""
    return data


class EnvelopeDecoder:
    """Decode raw executor responses.

    Attributes:
        diagnostics: Context receiving correlation ids of successful envelopes.
    """

    def __init__(self, diagnostics: DiagnosticContext | None = None) -> None:
        self.diagnostics = diagnostics

    def decode(self, raw: RawResponse, *, operation: str | None = None) -> DecodedBody:
        """Classify a response body.

        Args:
            raw: Response produced by the executor.
            operation: Name recorded alongside the correlation id; defaults
                to the request path.

        Returns:
            SuccessEnvelope, FailureEnvelope, LegacyBody, or NO_CONTENT.

        Raises:
            HTMLFallbackError: If the body is an HTML document.
            MalformedResponseError: If an envelope has an invalid shape.
        """
        body = raw.body

        if body is NO_CONTENT:
            return NO_CONTENT

        if isinstance(body, str) and is_html_body(raw.content_type, body):
            logger.warning(
                "decoder.html_fallback",
                extra={"endpoint": raw.path, "status": raw.status, "content_type": raw.content_type},
            )
            raise HTMLFallbackError(
                raw.path,
                actual_content_type=raw.content_type or "text/html",
                expected_content_type="application/json",
                status=raw.status,
            )

        if not is_envelope(body):
            return LegacyBody(body)

        fields = _normalize_envelope_fields(body)
        try:
            if fields["success"]:
                envelope: SuccessEnvelope | FailureEnvelope = SuccessEnvelope.model_validate(fields)
            else:
                envelope = FailureEnvelope.model_validate(fields)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Invalid envelope from {raw.path}: {exc.error_count()} validation error(s)",
                endpoint=raw.path,
            ) from exc

        if envelope.correlation_id:
            set_correlation_id(envelope.correlation_id)
            if isinstance(envelope, SuccessEnvelope) and self.diagnostics is not None:
                self.diagnostics.record_correlation_id(operation or raw.path, envelope.correlation_id)

        return envelope

    def decode_error_body(self, body: Any) -> FailureEnvelope | None:
        """Extract a failure envelope from a 4xx/5xx body, if it carries one.

        Returns:
            FailureEnvelope, or None when the body is not a valid failure envelope.
        """
        if not is_envelope(body) or body.get("success") is not False:
            return None
        try:
            envelope = FailureEnvelope.model_validate(_normalize_envelope_fields(body))
        except ValidationError:
            logger.debug("decoder.error_body_unrecognized")
            return None
        if envelope.correlation_id:
            set_correlation_id(envelope.correlation_id)
        return envelope
