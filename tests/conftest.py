"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before settings are imported so a developer's
.env file or shell variables never leak into test runs.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("FLEET_BASE_URL", "http://testserver")
os.environ.setdefault("FLEET_API_KEY", "test-api-key-123")
os.environ.setdefault("FLEET_AUTH_REQUIRED", "true")
os.environ.setdefault("FLEET_BASE_DELAY_MS", "0")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from typing import Callable  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from fleet_client.adapters.credentials.in_memory import InMemoryCredentialProvider  # noqa: E402
from fleet_client.adapters.http.httpx_executor import HttpxRequestExecutor  # noqa: E402
from fleet_client.core.config import ClientSettings  # noqa: E402
from fleet_client.core.diagnostics import DiagnosticContext  # noqa: E402
from fleet_client.services.api_client import FleetApiClient  # noqa: E402

TEST_API_KEY = "test-api-key-123"


@pytest.fixture
def client_settings() -> ClientSettings:
    return ClientSettings(
        base_url="http://testserver",
        api_key=TEST_API_KEY,
        timeout_ms=1000,
        max_attempts=3,
        base_delay_ms=1000,
    )


@pytest.fixture
def fake_sleep() -> AsyncMock:
    """Recording replacement for asyncio.sleep so backoff never waits."""
    return AsyncMock(return_value=None)


@pytest.fixture
def diagnostics() -> DiagnosticContext:
    return DiagnosticContext(max_entries=8)


@pytest.fixture
def make_client(
    client_settings: ClientSettings,
    fake_sleep: AsyncMock,
    diagnostics: DiagnosticContext,
) -> Callable[..., FleetApiClient]:
    """Factory building a FleetApiClient on top of any httpx transport."""

    def _make(
        transport: httpx.AsyncBaseTransport,
        *,
        api_key: str | None = TEST_API_KEY,
        settings_override: ClientSettings | None = None,
    ) -> FleetApiClient:
        cfg = settings_override or client_settings
        executor = HttpxRequestExecutor(
            cfg.api_base_url,
            transport=transport,
            base_delay_ms=cfg.base_delay_ms,
            sleep=fake_sleep,
        )
        return FleetApiClient(
            executor,
            credentials=InMemoryCredentialProvider(api_key),
            diagnostics=diagnostics,
            client_settings=cfg,
        )

    return _make
