"""Versioned-first routing with fallback to the legacy protocol.

The router tries the V1 endpoint first. When the backend says the endpoint
does not exist (404, 501, or the UI's HTML catch-all page), it retries the
same operation against the legacy endpoint and normalizes the legacy shape
into the V1 shape. Any other failure is final.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from fleet_client.core.diagnostics import CompatibilityOutcome, DiagnosticContext
from fleet_client.schemas.result import FeatureProbe, Ok, Result

logger = logging.getLogger(__name__)

Call = Callable[[], Awaitable[Result]]
Normalizer = Callable[[Any], Any]


class RouteState(str, Enum):
    TRY_VERSIONED = "try_versioned"
    TRY_LEGACY = "try_legacy"
    SUCCEEDED = "succeeded"
    TERMINAL_FAIL = "terminal_fail"


def next_state(state: RouteState, result: Result) -> RouteState:
    """Pure transition function of the fallback state machine.

    Args:
        state: State whose call produced ``result``.
        result: Outcome of that call.

    Returns:
        The following state.

    Raises:
        ValueError: If ``state`` is terminal.
    """
    if state in (RouteState.SUCCEEDED, RouteState.TERMINAL_FAIL):
        raise ValueError(f"{state.value} is a terminal state")

    if isinstance(result, Ok):
        return RouteState.SUCCEEDED

    if state is RouteState.TRY_VERSIONED and result.error.is_endpoint_unavailable:
        return RouteState.TRY_LEGACY

    return RouteState.TERMINAL_FAIL


class CompatibilityRouter:
    """Run an operation against V1 with legacy fallback.

    Attributes:
        diagnostics: Optional context recording which protocol served each operation.
    """

    def __init__(self, diagnostics: DiagnosticContext | None = None) -> None:
        self.diagnostics = diagnostics

    def _record(self, operation: str, outcome: CompatibilityOutcome) -> None:
        logger.info(
            "compat.outcome",
            extra={"operation": operation, "outcome": outcome.value},
        )
        if self.diagnostics is not None:
            self.diagnostics.record_outcome(operation, outcome)

    async def call_with_fallback(
        self,
        versioned_call: Call,
        legacy_call: Call,
        normalize: Normalizer,
        *,
        legacy_normalize: Normalizer | None = None,
        operation: str = "unknown",
    ) -> Result:
        """Try the versioned call, falling back to legacy when the endpoint is missing.

        Calls are strictly sequential: the legacy call starts only after the
        versioned one finished.

        Args:
            versioned_call: Zero-argument coroutine factory for the V1 call.
            legacy_call: Zero-argument coroutine factory for the legacy call.
            normalize: Applied to the V1 value on success.
            legacy_normalize: Applied to the legacy value; defaults to ``normalize``.
            operation: Name used in logs and diagnostics.

        Returns:
            Ok with the normalized value, or Err. When both protocols fail,
            the Err carries the versioned error.
        """
        versioned_result = await versioned_call()
        state = next_state(RouteState.TRY_VERSIONED, versioned_result)

        if isinstance(versioned_result, Ok):
            value = normalize(versioned_result.value)
            self._record(operation, CompatibilityOutcome.VERSIONED)
            return Ok(value, correlation_id=versioned_result.correlation_id)

        if state is RouteState.TERMINAL_FAIL:
            return versioned_result

        logger.info(
            "compat.fallback",
            extra={
                "operation": operation,
                "reason": versioned_result.error.code,
                "http_status": versioned_result.error.http_status,
                "endpoint": versioned_result.error.endpoint,
            },
        )

        legacy_result = await legacy_call()

        if isinstance(legacy_result, Ok):
            value = (legacy_normalize or normalize)(legacy_result.value)
            self._record(operation, CompatibilityOutcome.LEGACY)
            return Ok(value, correlation_id=legacy_result.correlation_id)

        logger.warning(
            "compat.legacy_failed",
            extra={"operation": operation, **legacy_result.error.to_log_dict()},
        )
        return versioned_result

    async def probe_feature(self, call: Call, *, operation: str = "unknown") -> Result:
        """Call an endpoint that may be missing on older backends.

        Returns:
            Ok(FeatureProbe(supported=True, value)) on success,
            Ok(FeatureProbe(supported=False)) when the endpoint is unavailable,
            or the original Err for any other failure.
        """
        result = await call()

        if isinstance(result, Ok):
            return Ok(FeatureProbe(supported=True, value=result.value), result.correlation_id)

        if result.error.is_endpoint_unavailable:
            logger.info(
                "compat.feature_unavailable",
                extra={
                    "operation": operation,
                    "http_status": result.error.http_status,
                    "error_code": result.error.code,
                },
            )
            return Ok(FeatureProbe(supported=False))

        return result
