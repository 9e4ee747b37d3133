"""Transcode gateway events onto the outbound SSE wire format.

Every outbound stream looks the same regardless of backend::

    data: {"content": "..."}\\n\\n
    data: {"error": "..."}\\n\\n
    data: [DONE]\\n\\n
"""
from __future__ import annotations
import json
import logging
from typing import AsyncIterator, Protocol

from ai_stream_gateway.common.schema import ErrorEvent, StreamEvent

LOGGER = logging.getLogger("aigateway.relay")

DONE_FRAME = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class OutboundTransport(Protocol):
    """An already-open caller connection."""

    async def write(self, data: str) -> None:
        ...

    async def close(self) -> None:
        ...


def encode_event(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.to_payload(), ensure_ascii=False)}\n\n"


async def sse_frames(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Yield one frame per event, then the terminator exactly once.

    If the consumer goes away the terminator is not sent, but the event
    source is still closed so its upstream connection is released.
    """
    try:
        async for event in events:
            yield encode_event(event)
    except Exception as exc:
        LOGGER.error("AI stream error: %s", exc, exc_info=True)
        yield encode_event(ErrorEvent(str(exc) or "Unknown error occurred"))
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
    yield DONE_FRAME


async def relay(events: AsyncIterator[StreamEvent], transport: OutboundTransport) -> None:
    """Write all frames onto ``transport`` and close it exactly once."""
    frames = sse_frames(events)
    try:
        async for frame in frames:
            await transport.write(frame)
    finally:
        try:
            await frames.aclose()
        finally:
            await transport.close()
