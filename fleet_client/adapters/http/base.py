"""Request executor interface.

The client facade depends on this abstraction so tests (and future
transports) can replace the httpx implementation without touching the
decoding and routing layers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fleet_client.schemas.request import RawResponse, RequestDescriptor


class AbstractRequestExecutor(ABC):
    """Interface for executors that perform one logical call with retries."""

    @abstractmethod
    async def execute(self, descriptor: RequestDescriptor) -> RawResponse:
        """Perform the call described by ``descriptor``.

        Args:
            descriptor: Method, path, body, headers and retry/timeout budget.

        Returns:
            RawResponse for any status below 400.

        Raises:
            RequestTimeoutError: If the last attempt exceeded its timeout.
            NetworkError: If the network or the server (5xx) kept failing.
            HttpError: On a 4xx response (never retried).
            MalformedResponseError: If a JSON body could not be parsed.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release pooled connections. No-op by default."""
        return None
