"""Factory for the default request executor."""

from __future__ import annotations

import httpx

from fleet_client.adapters.http.base import AbstractRequestExecutor
from fleet_client.adapters.http.httpx_executor import HttpxRequestExecutor
from fleet_client.core.config import ClientSettings, settings


def create_request_executor(
    client_settings: ClientSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AbstractRequestExecutor:
    """Build the executor described by configuration.

    Args:
        client_settings: Client settings; defaults to ``settings.client``.
        transport: Optional httpx transport (mock or ASGI) for tests.

    Returns:
        AbstractRequestExecutor: Executor bound to the configured API base URL.
    """
    cfg = client_settings or settings.client
    return HttpxRequestExecutor(
        base_url=cfg.api_base_url,
        base_delay_ms=cfg.base_delay_ms,
        transport=transport,
    )
