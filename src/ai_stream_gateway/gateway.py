"""Generation gateway: driver dispatch plus the non-streaming and streaming paths."""
from __future__ import annotations
import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator

import httpx

from ai_stream_gateway.common.config import DriverConfig
from ai_stream_gateway.common.errors import (
    GatewayError,
    GenerationFailedError,
    UpstreamHttpError,
    UpstreamStreamError,
)
from ai_stream_gateway.common.schema import (
    AiAction,
    AiConfigResponse,
    ErrorEvent,
    GenerationRequest,
    GenerationResult,
    StreamEvent,
)
from ai_stream_gateway.common.templates import render_prompt
from ai_stream_gateway.providers.factory import (
    BACKEND_NAMES,
    DRIVERS,
    build_adapter,
    required_setting,
    resolve_driver,
)
from ai_stream_gateway.serve.relay import OutboundTransport, relay

LOGGER = logging.getLogger("aigateway.gateway")


def is_configured(config: DriverConfig) -> bool:
    """True iff the selected driver's mandatory credential or endpoint is set."""
    driver = config.driver_name
    if driver not in DRIVERS:
        return False
    return bool(required_setting(config, driver))


def describe(config: DriverConfig) -> AiConfigResponse:
    """Readback of the validated config; never performs I/O."""
    driver = config.driver_name
    return AiConfigResponse(
        configured=is_configured(config),
        available_actions=list(AiAction),
        driver=driver,
        has_api_key=bool(driver and required_setting(config, driver)),
    )


def _render(request: GenerationRequest) -> str:
    return render_prompt(
        request.action,
        request.content,
        prompt=request.prompt,
        target_language=request.target_language,
        tone=request.tone,
    )


class GenerationGateway:
    """Entry point for callers. Holds no per-request state."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _client(self, config: DriverConfig) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=config.timeout, transport=self._transport)

    is_configured = staticmethod(is_configured)
    describe = staticmethod(describe)

    async def generate(self, request: GenerationRequest, config: DriverConfig) -> GenerationResult:
        driver = resolve_driver(config)
        prompt = _render(request)
        backend = BACKEND_NAMES[driver]
        LOGGER.info("Generating %s via %s", request.action.value, backend)

        async with self._client(config) as client:
            adapter = build_adapter(driver, config, client)
            try:
                return await adapter.generate(prompt)
            except UpstreamHttpError as exc:
                raise GenerationFailedError(exc.message) from exc
            except (httpx.HTTPError, ValueError) as exc:
                LOGGER.error("AI generation error: %s", exc)
                raise GenerationFailedError(f"Failed to generate AI content: {exc}") from exc

    def stream(self, request: GenerationRequest, config: DriverConfig) -> AsyncIterator[StreamEvent]:
        """
        Validate eagerly, then return the live event sequence.

        Config and action errors raise here, before any event exists. Once
        iteration starts, failures arrive as a final ErrorEvent instead.
        """
        driver = resolve_driver(config)
        prompt = _render(request)
        LOGGER.info("Streaming %s via %s", request.action.value, BACKEND_NAMES[driver])
        return self._stream(driver, prompt, config)

    async def _stream(self, driver: str, prompt: str, config: DriverConfig) -> AsyncIterator[StreamEvent]:
        backend = BACKEND_NAMES[driver]
        try:
            async with self._client(config) as client:
                adapter = build_adapter(driver, config, client)
                async with aclosing(adapter.stream(prompt)) as events:
                    async for event in events:
                        yield event
        except Exception as exc:
            interrupted = _interruption(exc)
            if interrupted is not None:
                # The caller already left; nothing may be yielded now.
                LOGGER.warning("%s upstream release failed after caller left: %s", backend, exc)
                raise interrupted from exc
            if isinstance(exc, httpx.HTTPError):
                error = UpstreamStreamError(backend, str(exc) or type(exc).__name__)
                LOGGER.error("AI stream error: %s", error.message)
                yield ErrorEvent(error.message)
            else:
                LOGGER.exception("AI stream error: %s", exc)
                yield ErrorEvent(str(exc) or "Unknown error occurred")


    async def stream_to(
        self,
        request: GenerationRequest,
        config: DriverConfig,
        transport: OutboundTransport,
    ) -> None:
        """Write the stream onto an already-open connection; errors go in-band."""
        try:
            events = self.stream(request, config)
        except GatewayError as exc:
            LOGGER.warning("Stream rejected: %s", exc.message)
            events = _single(ErrorEvent(exc.message))
        await relay(events, transport)


async def _single(event: StreamEvent) -> AsyncIterator[StreamEvent]:
    yield event


def _interruption(exc: BaseException) -> BaseException | None:
    """The close or cancellation that ``exc`` was raised while handling, if any."""
    seen = exc.__context__
    while seen is not None:
        if isinstance(seen, (GeneratorExit, asyncio.CancelledError)):
            return seen
        seen = seen.__context__
    return None
