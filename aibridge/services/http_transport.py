from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing
from typing import Any

import httpx

from aibridge.core.errors import APIError, TransportError
from aibridge.models.enums import StreamFraming
from aibridge.services.stream_parsing import iter_json_objects, iter_sse_events

log = logging.getLogger(__name__)


def redact_url(url: str | httpx.URL) -> str:
    """Drop the query string, which may carry an API key."""
    return str(httpx.URL(url).copy_with(query=None))


class ProviderHttp:
    """One-shot JSON POSTs and streamed POSTs against a provider endpoint.

    A fresh ``httpx.AsyncClient`` is opened per request; nothing is pooled or
    retried. httpx failures surface as ``TransportError`` and non-success
    statuses as ``APIError``.

    ``timeout`` bounds the whole request. httpx's own timeout only limits each
    connect/read phase, so a stream that keeps trickling bytes would never
    trip it; a deadline taken when the request starts covers that case.
    """

    def __init__(self, timeout: float, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def post_json(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
        error_prefix: str = "API error",
    ) -> Any:
        log.debug("POST %s", redact_url(url))
        try:
            async with asyncio.timeout(self.timeout):
                async with self.client() as client:
                    response = await client.post(url, headers=headers, json=body)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise TransportError(f"Request timed out after {self.timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {redact_url(url)} failed: {exc}") from exc

        if response.is_error:
            raise APIError(response.status_code, response.text, prefix=error_prefix)
        return response.json()

    async def stream_events(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
        framing: StreamFraming,
    ) -> AsyncGenerator[dict[str, Any], None]:
        log.debug("POST %s (stream, %s)", redact_url(url), framing.value)
        deadline = asyncio.get_running_loop().time() + self.timeout
        try:
            async with self.client() as client:
                async with asyncio.timeout_at(deadline):
                    response = await client.send(
                        client.build_request("POST", url, headers=headers, json=body), stream=True
                    )
                try:
                    if response.is_error:
                        async with asyncio.timeout_at(deadline):
                            await response.aread()
                        raise APIError(response.status_code, response.text)
                    if framing is StreamFraming.SSE:
                        events = iter_sse_events(response.aiter_lines())
                    else:
                        events = iter_json_objects(response.aiter_text())
                    # Deadline applies per read, not across yields.
                    async with aclosing(events):
                        while True:
                            try:
                                async with asyncio.timeout_at(deadline):
                                    event = await anext(events)
                            except StopAsyncIteration:
                                break
                            yield event
                finally:
                    await response.aclose()
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise TransportError(f"Stream timed out after {self.timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Stream from {redact_url(url)} failed: {exc}") from exc
