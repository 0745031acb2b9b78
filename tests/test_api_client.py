"""Tests for FleetApiClient: auth, classification, soft validation and end-to-end scenarios."""

import asyncio
import logging
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from fleet_client.core.config import ClientSettings, Settings
from fleet_client.core.diagnostics import CompatibilityOutcome, DiagnosticContext
from fleet_client.core.errors import ClassifiedError
from fleet_client.core.logging import clear_correlation_id, get_correlation_id, set_correlation_id
from fleet_client.schemas.cameras import CameraRecord
from fleet_client.schemas.envelope import NO_CONTENT
from fleet_client.schemas.result import Err, FeatureProbe, Ok
from fleet_client.services.api_client import FleetApiClient
from fleet_client.utils.normalize import normalize_legacy_record
from tests.fake_backend import BackendState, create_fake_backend, envelope, failure


class TestAuth:
    """API key handling."""

    @pytest.mark.asyncio
    async def test_missing_key_fails_without_network(self, make_client: Callable[..., FleetApiClient]) -> None:
        handler_calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            handler_calls.append(request)
            return httpx.Response(200, json=envelope({}))

        client = make_client(httpx.MockTransport(handler), api_key=None)

        result = await client.v1_get("/cameras")

        assert isinstance(result, Err)
        assert result.error.code == "UNAUTHORIZED"
        assert result.error.category.value == "auth"
        assert handler_calls == []

    @pytest.mark.asyncio
    async def test_key_is_sent_as_header(self, make_client: Callable[..., FleetApiClient]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=envelope([]))

        client = make_client(httpx.MockTransport(handler), api_key="secret-key-0001")

        await client.v1_get("/cameras")

        assert seen[0].headers["x-api-key"] == "secret-key-0001"
        assert seen[0].url.path == "/api/v1/cameras"

    @pytest.mark.asyncio
    async def test_public_call_skips_auth(self, make_client: Callable[..., FleetApiClient]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=envelope({"status": "ok"}))

        client = make_client(httpx.MockTransport(handler), api_key=None)

        result = await client.v1_get("/health", requires_auth=False)

        assert result.unwrap() == {"status": "ok"}
        assert "x-api-key" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_auth_not_required_sends_without_key(
        self,
        make_client: Callable[..., FleetApiClient],
        client_settings: ClientSettings,
    ) -> None:
        cfg = client_settings.model_copy(update={"auth_required": False})
        client = make_client(
            httpx.MockTransport(lambda request: httpx.Response(200, json=envelope(1))),
            api_key=None,
            settings_override=cfg,
        )

        assert (await client.v1_get("/x")).unwrap() == 1


class TestResults:
    """Every outcome is Ok or a classified Err."""

    @pytest.mark.asyncio
    async def test_success_envelope_returns_data_and_correlation(
        self,
        make_client: Callable[..., FleetApiClient],
        diagnostics: DiagnosticContext,
    ) -> None:
        client = make_client(
            httpx.MockTransport(lambda request: httpx.Response(200, json=envelope({"cpu": 10}, "corr-77")))
        )

        result = await client.v1_get("/system/info", operation="system.info")

        assert result == Ok({"cpu": 10}, correlation_id="corr-77")
        assert diagnostics.last_for("system.info") == "corr-77"

    @pytest.mark.asyncio
    async def test_correlation_id_is_scoped_to_the_call(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(
            httpx.MockTransport(lambda request: httpx.Response(200, json=envelope({"cpu": 10}, "corr-scoped")))
        )
        set_correlation_id("caller-id")

        try:
            result = await client.v1_get("/system/info")

            assert result.correlation_id == "corr-scoped"
            assert get_correlation_id() == "caller-id"
        finally:
            clear_correlation_id()

    @pytest.mark.asyncio
    async def test_failure_envelope_on_200(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(
            httpx.MockTransport(
                lambda request: httpx.Response(
                    200, json=failure("SESSION_EXPIRED", "expired", retryable=False, correlation_id="c-5")
                )
            )
        )

        result = await client.v1_get("/sessions/1")

        assert isinstance(result, Err)
        assert result.error.code == "SESSION_EXPIRED"
        assert result.error.correlation_id == "c-5"
        assert result.error.http_status == 200

    @pytest.mark.asyncio
    async def test_failure_envelope_in_4xx_body(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(
            httpx.MockTransport(
                lambda request: httpx.Response(
                    429, json=failure("RATE_LIMITED", "slow down", retryable=True, retry_after_seconds=12)
                )
            )
        )

        result = await client.v1_post("/cameras/cam-1/reboot")

        assert isinstance(result, Err)
        assert result.error.code == "RATE_LIMITED"
        assert result.error.retryable is True
        assert result.error.retry_after_seconds == 12
        assert result.error.http_status == 429
        assert result.error.endpoint == "/v1/cameras/cam-1/reboot"

    @pytest.mark.asyncio
    async def test_plain_4xx_uses_status_map(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(422, text="bad")))

        result = await client.v1_put("/config", {"x": 1})

        assert result.error.code == "VALIDATION_FAILED"

    @pytest.mark.asyncio
    async def test_exhausted_5xx_is_network_error(
        self,
        make_client: Callable[..., FleetApiClient],
        fake_sleep: AsyncMock,
    ) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(502)))

        result = await client.v1_get("/system/info")

        assert result.error.code == "NETWORK_ERROR"
        assert result.error.http_status == 502
        assert fake_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_html_on_legacy_call_is_classified(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(200, html="<!doctype html><html/>")))

        result = await client.legacy_get("/dashboard/nope")

        assert result.error.code == "HTML_FALLBACK"
        assert result.error.endpoint == "/dashboard/nope"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 404, 405, 503])
    async def test_html_error_page_is_html_fallback(
        self,
        make_client: Callable[..., FleetApiClient],
        fake_sleep: AsyncMock,
        status: int,
    ) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, html="<!doctype html><html><body>app</body></html>")

        client = make_client(httpx.MockTransport(handler))

        result = await client.v1_get("/cameras")

        assert isinstance(result, Err)
        assert result.error.code == "HTML_FALLBACK"
        assert result.error.http_status == status
        assert result.error.is_endpoint_unavailable is True
        assert '"/v1/cameras"' in result.error.user_message
        assert len(calls) == 1
        fake_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_content(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(204)))

        result = await client.v1_delete("/cameras/cam-1")

        assert result == Ok(NO_CONTENT)

    @pytest.mark.asyncio
    async def test_unwrap_raises_classified_error(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(403)))

        result = await client.v1_get("/x")

        with pytest.raises(ClassifiedError) as exc_info:
            result.unwrap()
        assert exc_info.value.code == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_query_params_are_encoded(self, make_client: Callable[..., FleetApiClient]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=envelope([]))

        client = make_client(httpx.MockTransport(handler))

        await client.v1_get("/containers/c-1/inventory/runs", params={"limit": 5, "cursor": None})

        assert seen[0].url.path == "/api/v1/containers/c-1/inventory/runs"
        assert seen[0].url.params["limit"] == "5"
        assert "cursor" not in seen[0].url.params


class TestSoftValidation:
    """Schema drift is logged, never fatal."""

    @pytest.mark.asyncio
    async def test_drift_is_logged_and_value_returned(
        self,
        make_client: Callable[..., FleetApiClient],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client = make_client(httpx.MockTransport(lambda request: httpx.Response(200, json=envelope([{"name": "x"}]))))

        with caplog.at_level(logging.WARNING, logger="fleet_client.services.api_client"):
            result = await client.v1_get("/cameras", schema=list[CameraRecord], operation="cameras.list")

        assert result.unwrap() == [{"name": "x"}]
        drift = [record for record in caplog.records if record.getMessage() == "contract.drift"]
        assert len(drift) == 1
        assert "0.id: Field required" in drift[0].issues

    @pytest.mark.asyncio
    async def test_valid_payload_logs_nothing(
        self,
        make_client: Callable[..., FleetApiClient],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client = make_client(
            httpx.MockTransport(
                lambda request: httpx.Response(200, json=envelope([{"id": "cam-1", "lastSeen": "t"}]))
            )
        )

        with caplog.at_level(logging.WARNING, logger="fleet_client.services.api_client"):
            await client.v1_get("/cameras", schema=list[CameraRecord])

        assert not [record for record in caplog.records if record.getMessage() == "contract.drift"]


class TestScenarios:
    """End-to-end behaviour of the whole pipeline."""

    @pytest.mark.asyncio
    async def test_timeout_then_success(self, make_client: Callable[..., FleetApiClient]) -> None:
        attempts = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                await asyncio.sleep(10)
            return httpx.Response(200, json={"success": True, "data": {"cpu": 10}})

        client = make_client(httpx.MockTransport(handler))

        result = await client.v1_get("/system/info", timeout_ms=50)

        assert result == Ok({"cpu": 10}, correlation_id=None)
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_rerun_on_501_reports_unsupported(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(
            httpx.MockTransport(lambda request: httpx.Response(501, json=failure("NOT_IMPLEMENTED", "nope")))
        )

        result = await client.probe_feature(
            lambda: client.v1_post("/inventory/run-1/rerun", {}),
            operation="inventory.rerun",
        )

        assert result == Ok(FeatureProbe(supported=False))

    @pytest.mark.asyncio
    async def test_legacy_fallback_normalization(self, make_client: Callable[..., FleetApiClient]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/api/v1/"):
                return httpx.Response(404, json={"detail": "Not Found"})
            return httpx.Response(
                200, json={"device_id": "cam-1", "last_seen": "2026-01-01T00:00:00Z"}
            )

        client = make_client(httpx.MockTransport(handler))

        result = await client.call_with_fallback(
            lambda: client.v1_get("/cameras/cam-1"),
            lambda: client.legacy_get("/dashboard/cameras/cam-1"),
            normalize_legacy_record,
            operation="cameras.get",
        )

        assert result.unwrap() == {"id": "cam-1", "lastSeen": "2026-01-01T00:00:00Z"}
        assert client.diagnostics.outcome_for("cameras.get") is CompatibilityOutcome.LEGACY


class TestAgainstFakeBackend:
    """The client against an in-process FastAPI backend."""

    @pytest.mark.asyncio
    async def test_flaky_endpoint_recovers(self, make_client: Callable[..., FleetApiClient]) -> None:
        state = BackendState(flaky_failures=2)
        client = make_client(httpx.ASGITransport(app=create_fake_backend(state)))

        result = await client.v1_get("/system/flaky", operation="system.flaky")

        assert result == Ok({"cpu": 10}, correlation_id="corr-flaky-3")
        assert state.calls["v1.flaky"] == 3
        assert client.diagnostics.last_correlation_id == "corr-flaky-3"

    @pytest.mark.asyncio
    async def test_wrong_key_is_unauthorized(self, make_client: Callable[..., FleetApiClient]) -> None:
        client = make_client(
            httpx.ASGITransport(app=create_fake_backend()),
            api_key="wrong-key-0000",
        )

        result = await client.v1_get("/cameras")

        assert result.error.code == "UNAUTHORIZED"
        assert result.error.http_status == 401

    @pytest.mark.asyncio
    async def test_from_settings_and_context_manager(self) -> None:
        app_settings = Settings(
            client=ClientSettings(base_url="http://testserver", api_key="test-api-key-123", base_delay_ms=0)
        )

        async with FleetApiClient.from_settings(
            app_settings,
            transport=httpx.ASGITransport(app=create_fake_backend()),
        ) as client:
            result = await client.v1_get("/cameras")

        assert result.unwrap()[0]["id"] == "cam-1"
