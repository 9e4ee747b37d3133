"""Shared plumbing for provider adapters."""
from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Protocol

import httpx

from ai_stream_gateway.common.errors import UpstreamHttpError
from ai_stream_gateway.common.schema import ErrorEvent, GenerationResult, StreamEvent
from ai_stream_gateway.providers.decoding import StreamDecoder

LOGGER = logging.getLogger("aigateway.providers")


class ProviderAdapter(Protocol):
    """Capability every backend adapter offers over the same endpoint family."""

    backend: str

    async def generate(self, prompt: str) -> GenerationResult:
        ...

    def stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        ...


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    backend: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Single-shot POST; non-2xx raises UpstreamHttpError with the body attached."""
    response = await client.post(url, json=payload, headers=headers, params=params)
    if not response.is_success:
        LOGGER.error("%s API error: %s %s", backend, response.status_code, response.text)
        raise UpstreamHttpError(backend, response.status_code, response.text)
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"{backend} response is not a JSON object")
    return data


async def stream_events(
    client: httpx.AsyncClient,
    url: str,
    *,
    backend: str,
    decoder: StreamDecoder,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> AsyncIterator[StreamEvent]:
    """Pull loop: read upstream chunks, feed the decoder, yield its deltas.

    Leaving the loop early (sentinel, aclose() or cancellation) exits the
    ``client.stream`` block, which closes the upstream response.
    """
    async with client.stream("POST", url, json=payload, headers=headers, params=params) as response:
        if not response.is_success:
            body = await response.aread()
            LOGGER.error(
                "%s API error: %s %s",
                backend,
                response.status_code,
                body.decode("utf-8", errors="replace"),
            )
            yield ErrorEvent(f"{backend} API error: {response.status_code}")
            return

        async for chunk in response.aiter_bytes():
            for event in decoder.feed(chunk):
                yield event
            if decoder.done:
                LOGGER.debug("%s stream reached end sentinel", backend)
                return
        for event in decoder.finish():
            yield event
