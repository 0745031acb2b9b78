"""Client facade wiring executor, decoder, validator, taxonomy and router.

Every request method returns a ``Result``. Transport failures, HTTP errors,
HTML fallbacks and failure envelopes all come back as ``Err`` holding a
``ClassifiedError``; only programmer errors (an invalid request descriptor)
raise.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from fleet_client.adapters.credentials.base import AbstractCredentialProvider
from fleet_client.adapters.credentials.in_memory import InMemoryCredentialProvider
from fleet_client.adapters.http.base import AbstractRequestExecutor
from fleet_client.adapters.http.factory import create_request_executor
from fleet_client.core.classify import classify_exception, from_error_descriptor
from fleet_client.core.config import ClientSettings, Settings, settings
from fleet_client.core.diagnostics import DiagnosticContext
from fleet_client.core.errors import ClassifiedError, HttpError, NetworkError, PipelineError
from fleet_client.core.logging import correlation_scope
from fleet_client.schemas.envelope import NO_CONTENT, FailureEnvelope, LegacyBody, SuccessEnvelope
from fleet_client.schemas.request import HttpMethod, RequestDescriptor
from fleet_client.schemas.result import Err, Ok, Result
from fleet_client.services.compatibility_router import Call, CompatibilityRouter, Normalizer
from fleet_client.services.contract_validator import ContractValidator
from fleet_client.services.envelope_decoder import EnvelopeDecoder
from fleet_client.utils.urls import build_url

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class FleetApiClient:
    """Async client for the fleet backend's legacy and V1 APIs.

    Attributes:
        executor: Transport performing requests with retries.
        credentials: Source of the API key.
        decoder: Envelope decoder.
        validator: Contract validator used for soft schema checks.
        router: Versioned-first router with legacy fallback.
        diagnostics: Caller-owned record of correlation ids and outcomes.
        settings: Client settings (prefixes, timeouts, retry budget).
    """

    def __init__(
        self,
        executor: AbstractRequestExecutor,
        *,
        credentials: AbstractCredentialProvider | None = None,
        decoder: EnvelopeDecoder | None = None,
        validator: ContractValidator | None = None,
        router: CompatibilityRouter | None = None,
        diagnostics: DiagnosticContext | None = None,
        client_settings: ClientSettings | None = None,
    ) -> None:
        self.settings = client_settings or settings.client
        self.diagnostics = diagnostics or DiagnosticContext(self.settings.correlation_history_size)
        self.executor = executor
        self.credentials = credentials or InMemoryCredentialProvider(self.settings.api_key)
        self.decoder = decoder or EnvelopeDecoder(self.diagnostics)
        self.validator = validator or ContractValidator()
        self.router = router or CompatibilityRouter(self.diagnostics)

    @classmethod
    def from_settings(
        cls,
        app_settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        diagnostics: DiagnosticContext | None = None,
        credentials: AbstractCredentialProvider | None = None,
    ) -> "FleetApiClient":
        """Build a client (and its executor) from configuration."""
        cfg = (app_settings or settings).client
        return cls(
            create_request_executor(cfg, transport=transport),
            credentials=credentials,
            diagnostics=diagnostics,
            client_settings=cfg,
        )

    async def aclose(self) -> None:
        await self.executor.aclose()

    async def __aenter__(self) -> "FleetApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def versioned_path(self, path: str) -> str:
        return "/" + self.settings.versioned_prefix.strip("/") + path

    def _unauthorized(self, path: str) -> ClassifiedError:
        return ClassifiedError(
            code="UNAUTHORIZED",
            message="API key required but not configured",
            retryable=False,
            endpoint=path,
        )

    def _classify_failure(self, exc: PipelineError, path: str) -> ClassifiedError:
        """Prefer the structured error a 4xx/5xx body carries over the status."""
        if isinstance(exc, (HttpError, NetworkError)):
            envelope = self.decoder.decode_error_body(exc.body)
            if envelope is not None:
                return from_error_descriptor(
                    envelope.error,
                    envelope.correlation_id,
                    http_status=exc.status,
                    endpoint=path,
                )
        return classify_exception(exc, endpoint=path)

    def check_contract(self, schema: Any, value: Any, *, operation: str, path: str) -> bool:
        """Soft-validate a payload; drift is logged, never raised.

        Returns:
            True when the value matches the schema.
        """
        outcome = self.validator.validate(schema, value)
        if not outcome.ok:
            logger.warning(
                "contract.drift",
                extra={
                    "operation": operation,
                    "endpoint": path,
                    "issues": outcome.issues[:20],
                    "issue_count": len(outcome.issues),
                },
            )
        return outcome.ok

    async def _perform(
        self,
        path: str,
        *,
        method: HttpMethod,
        body: Any,
        headers: Mapping[str, str] | None,
        timeout_ms: int | None,
        max_attempts: int | None,
        requires_auth: bool,
        schema: Any,
        operation: str | None,
    ) -> Result:
        operation = operation or path
        request_headers: dict[str, str] = {}

        if requires_auth:
            api_key = self.credentials.get_api_key()
            if api_key:
                request_headers[API_KEY_HEADER] = api_key
            elif self.settings.auth_required:
                error = self._unauthorized(path)
                logger.warning("client.auth_missing", extra={"operation": operation, "endpoint": path})
                return Err(error)

        request_headers.update(headers or {})
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            body=body,
            headers=request_headers,
            timeout_ms=timeout_ms or self.settings.timeout_ms,
            max_attempts=max_attempts or self.settings.max_attempts,
        )

        with correlation_scope():
            return await self._exchange(descriptor, schema=schema, operation=operation)

    async def _exchange(self, descriptor: RequestDescriptor, *, schema: Any, operation: str) -> Result:
        """Execute, decode and classify one call; logs here carry its correlation id."""
        path = descriptor.path
        try:
            raw = await self.executor.execute(descriptor)
            decoded = self.decoder.decode(raw, operation=operation)
        except PipelineError as exc:
            error = self._classify_failure(exc, path)
            logger.warning("client.request_failed", extra={"operation": operation, **error.to_log_dict()})
            return Err(error)

        if isinstance(decoded, FailureEnvelope):
            error = from_error_descriptor(
                decoded.error,
                decoded.correlation_id,
                http_status=raw.status,
                endpoint=path,
            )
            logger.info("client.business_error", extra={"operation": operation, **error.to_log_dict()})
            return Err(error)

        correlation_id: str | None = None
        if isinstance(decoded, SuccessEnvelope):
            value = decoded.data
            correlation_id = decoded.correlation_id or None
        elif isinstance(decoded, LegacyBody):
            value = decoded.value
        else:
            value = decoded

        if schema is not None and decoded is not NO_CONTENT:
            self.check_contract(schema, value, operation=operation, path=path)

        return Ok(value, correlation_id=correlation_id)

    async def v1_request(
        self,
        path: str,
        *,
        method: HttpMethod = "GET",
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout_ms: int | None = None,
        max_attempts: int | None = None,
        requires_auth: bool = True,
        schema: Any = None,
        operation: str | None = None,
    ) -> Result:
        """Call a versioned endpoint.

        Args:
            path: Path below the versioned prefix, e.g. ``/cameras``.
            method: HTTP method.
            body: JSON-serializable body.
            headers: Extra headers; these override defaults.
            timeout_ms: Per-attempt timeout; defaults to settings.
            max_attempts: Retry budget; defaults to settings.
            requires_auth: Attach ``X-API-Key`` (and fail locally without one).
            schema: Optional schema for a soft contract check of the data.
            operation: Name for logs and diagnostics; defaults to the path.

        Returns:
            Ok(envelope data) or Err(ClassifiedError).
        """
        return await self._perform(
            self.versioned_path(path),
            method=method,
            body=body,
            headers=headers,
            timeout_ms=timeout_ms,
            max_attempts=max_attempts,
            requires_auth=requires_auth,
            schema=schema,
            operation=operation,
        )

    async def v1_get(self, path: str, *, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Result:
        return await self.v1_request(build_url(path, params), method="GET", **kwargs)

    async def v1_post(self, path: str, body: Any = None, **kwargs: Any) -> Result:
        return await self.v1_request(path, method="POST", body=body, **kwargs)

    async def v1_put(self, path: str, body: Any = None, **kwargs: Any) -> Result:
        return await self.v1_request(path, method="PUT", body=body, **kwargs)

    async def v1_patch(self, path: str, body: Any = None, **kwargs: Any) -> Result:
        return await self.v1_request(path, method="PATCH", body=body, **kwargs)

    async def v1_delete(self, path: str, **kwargs: Any) -> Result:
        return await self.v1_request(path, method="DELETE", **kwargs)

    async def legacy_request(
        self,
        path: str,
        *,
        method: HttpMethod = "GET",
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout_ms: int | None = None,
        max_attempts: int | None = None,
        requires_auth: bool = True,
        schema: Any = None,
        operation: str | None = None,
    ) -> Result:
        """Call an unprefixed legacy endpoint; same pipeline as ``v1_request``."""
        return await self._perform(
            path,
            method=method,
            body=body,
            headers=headers,
            timeout_ms=timeout_ms,
            max_attempts=max_attempts,
            requires_auth=requires_auth,
            schema=schema,
            operation=operation,
        )

    async def legacy_get(self, path: str, *, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Result:
        return await self.legacy_request(build_url(path, params), method="GET", **kwargs)

    async def legacy_post(self, path: str, body: Any = None, **kwargs: Any) -> Result:
        return await self.legacy_request(path, method="POST", body=body, **kwargs)

    async def call_with_fallback(
        self,
        versioned_call: Call,
        legacy_call: Call,
        normalize: Normalizer,
        *,
        legacy_normalize: Normalizer | None = None,
        operation: str = "unknown",
    ) -> Result:
        return await self.router.call_with_fallback(
            versioned_call,
            legacy_call,
            normalize,
            legacy_normalize=legacy_normalize,
            operation=operation,
        )

    async def probe_feature(self, call: Call, *, operation: str = "unknown") -> Result:
        return await self.router.probe_feature(call, operation=operation)
