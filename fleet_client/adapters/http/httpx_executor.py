"""httpx-based request executor with per-attempt timeouts and exponential backoff."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

import httpx

from fleet_client.adapters.http.base import AbstractRequestExecutor
from fleet_client.core.errors import (
    HttpError,
    MalformedResponseError,
    NetworkError,
    PipelineError,
    RequestTimeoutError,
)
from fleet_client.schemas.envelope import NO_CONTENT
from fleet_client.schemas.request import RawResponse, RequestDescriptor
from fleet_client.utils.content import is_html_body, is_json_content_type

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

DEFAULT_BASE_DELAY_MS = 1000

Sleep = Callable[[float], Awaitable[Any]]


def _backoff_ms(base_delay_ms: int, attempt: int) -> int:
    """Delay after the given (1-based) attempt: base, 2*base, 4*base, ..."""
    return base_delay_ms * 2 ** (attempt - 1)


def _read_error_body(response: httpx.Response) -> Any:
    """Best-effort body for error responses: parsed JSON, text, or None."""
    text = response.text
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class HttpxRequestExecutor(AbstractRequestExecutor):
    """Executor backed by a pooled ``httpx.AsyncClient``.

    Each attempt runs under ``asyncio.wait_for`` so a hung connection is
    cancelled at the descriptor's timeout regardless of what the socket does.
    Timeouts, connection failures and 5xx responses are retried with
    exponential backoff; everything below 500 is final. An HTML body is
    handed back on the first attempt at any status.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            base_url: API base URL; descriptor paths are resolved below it.
            client: Pre-built client to use instead of creating one.
            transport: Optional transport for the created client (tests).
            base_delay_ms: Base backoff delay in milliseconds.
            sleep: Awaitable sleep taking seconds (injectable for tests).

        Raises:
            ValueError: If base_delay_ms is negative.
        """
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")

        self._owns_client = client is None
        # Timeouts are enforced by wait_for, not by httpx
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=None,
        )
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep

    async def _send(
        self,
        descriptor: RequestDescriptor,
        headers: dict[str, str],
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": headers}
        if descriptor.body is not None:
            kwargs["json"] = descriptor.body
        return await self.client.request(descriptor.method, descriptor.path, **kwargs)

    def _to_raw_response(
        self,
        descriptor: RequestDescriptor,
        response: httpx.Response,
    ) -> RawResponse:
        """Interpret a 2xx/3xx body, or an HTML body at any status.

        Raises:
            MalformedResponseError: If a JSON content type carries unparseable text.
        """
        content_type = response.headers.get("content-type", "")
        request_id = response.headers.get("x-request-id")
        text = response.text

        def raw(body: Any) -> RawResponse:
            return RawResponse(
                path=descriptor.path,
                status=response.status_code,
                content_type=content_type,
                body=body,
                request_id=request_id,
            )

        # HTML goes to the decoder as text so it can raise HTMLFallbackError
        if is_html_body(content_type, text):
            return raw(text)

        if not text.strip():
            return raw(NO_CONTENT)

        if not is_json_content_type(content_type):
            return raw(NO_CONTENT)

        try:
            return raw(json.loads(text))
        except ValueError as exc:
            raise MalformedResponseError(
                f"Invalid JSON from {descriptor.path}: {exc}",
                endpoint=descriptor.path,
            ) from exc

    async def execute(self, descriptor: RequestDescriptor) -> RawResponse:
        """Perform one logical call with up to ``max_attempts`` tries.

        Args:
            descriptor: Request to perform.

        Returns:
            RawResponse for the first attempt that answers below 400 or
            answers with an HTML page.

        Raises:
            RequestTimeoutError: If the final attempt timed out.
            NetworkError: If the final attempt failed at the network or with 5xx.
            HttpError: As soon as a 4xx response arrives.
            MalformedResponseError: If a JSON body could not be parsed.
        """
        headers = {**DEFAULT_HEADERS, **descriptor.headers}
        timeout_s = descriptor.timeout_ms / 1000
        failure: PipelineError | None = None
        attempt = 0

        while attempt < descriptor.max_attempts:
            attempt += 1
            try:
                response = await asyncio.wait_for(
                    self._send(descriptor, headers),
                    timeout=timeout_s,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                failure = RequestTimeoutError(descriptor.timeout_ms, endpoint=descriptor.path)
            except httpx.HTTPError as exc:
                failure = NetworkError(
                    f"{type(exc).__name__}: {exc}",
                    endpoint=descriptor.path,
                )
            else:
                status = response.status_code
                # An HTML page is the UI catch-all answering, whatever its status
                if is_html_body(response.headers.get("content-type", ""), response.text):
                    return self._to_raw_response(descriptor, response)
                if status >= 500:
                    failure = NetworkError(
                        f"HTTP {status} from {descriptor.path}",
                        endpoint=descriptor.path,
                        status=status,
                        body=_read_error_body(response),
                    )
                elif status >= 400:
                    raise HttpError(
                        status,
                        endpoint=descriptor.path,
                        body=_read_error_body(response),
                        request_id=response.headers.get("x-request-id"),
                    )
                else:
                    if attempt > 1:
                        logger.info(
                            "executor.recovered",
                            extra={"endpoint": descriptor.path, "attempts": attempt},
                        )
                    return self._to_raw_response(descriptor, response)

            if attempt < descriptor.max_attempts:
                delay_ms = _backoff_ms(self.base_delay_ms, attempt)
                logger.warning(
                    "executor.retry",
                    extra={
                        "endpoint": descriptor.path,
                        "method": descriptor.method,
                        "attempt": attempt,
                        "max_attempts": descriptor.max_attempts,
                        "delay_ms": delay_ms,
                        "reason": failure.code,
                    },
                )
                await self._sleep(delay_ms / 1000)

        if failure is None:
            raise ValueError("max_attempts must be >= 1")
        logger.warning(
            "executor.exhausted",
            extra={
                "endpoint": descriptor.path,
                "attempts": attempt,
                "reason": failure.code,
            },
        )
        raise failure

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
