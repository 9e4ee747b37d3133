from __future__ import annotations

import asyncio

import httpx
import pytest

from ai_stream_gateway.common.config import DriverConfig
from ai_stream_gateway.common.errors import (
    GenerationFailedError,
    NotConfiguredError,
    UnsupportedDriverError,
)
from ai_stream_gateway.common.schema import AiAction, ContentDelta, ErrorEvent, GenerationRequest
from ai_stream_gateway.gateway import GenerationGateway, describe, is_configured
from ai_stream_gateway.serve.relay import DONE_FRAME
from wire import gemini_chunk, ndjson, ollama_chunk, openai_delta, sse


class RecordingTransport:
    def __init__(self) -> None:
        self.frames: list[str] = []
        self.closes = 0

    async def write(self, data: str) -> None:
        self.frames.append(data)

    async def close(self) -> None:
        self.closes += 1


def req(**kwargs) -> GenerationRequest:
    kwargs.setdefault("content", "Hello")
    return GenerationRequest(**kwargs)


@pytest.mark.parametrize(
    "config,expected",
    [
        (DriverConfig(), False),
        (DriverConfig(driver="openai"), False),
        (DriverConfig(driver="openai", openai_api_key=""), False),
        (DriverConfig(driver="openai", openai_api_key="sk"), True),
        (DriverConfig(driver="OpenAI", openai_api_key="sk"), True),
        (DriverConfig(driver="gemini", openai_api_key="sk"), False),
        (DriverConfig(driver="gemini", gemini_api_key="g"), True),
        (DriverConfig(driver="ollama"), False),
        (DriverConfig(driver="ollama", ollama_api_url="http://localhost:11434"), True),
        (DriverConfig(driver="anthropic", openai_api_key="sk"), False),
    ],
)
def test_is_configured(config: DriverConfig, expected: bool) -> None:
    assert is_configured(config) is expected
    assert GenerationGateway().is_configured(config) is expected


def test_describe_reads_back_config() -> None:
    info = describe(DriverConfig(driver="Gemini", gemini_api_key="g"))
    assert info.configured is True
    assert info.driver == "gemini"
    assert info.has_api_key is True
    assert info.available_actions == list(AiAction)

    empty = describe(DriverConfig())
    assert empty.configured is False
    assert empty.driver is None
    assert empty.has_api_key is False


@pytest.mark.asyncio
async def test_generate_translate_scenario(upstream, openai_config) -> None:
    upstream.json = {"choices": [{"message": {"content": "안녕하세요"}}]}
    gateway = GenerationGateway(transport=upstream.transport())

    result = await gateway.generate(
        req(action=AiAction.TRANSLATE, target_language="Korean"), openai_config
    )

    assert result.content == "안녕하세요"
    assert result.usage is None
    sent = upstream.last_body["messages"][0]["content"]
    assert "Korean" in sent and "Hello" in sent


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config,error",
    [
        (DriverConfig(), NotConfiguredError),
        (DriverConfig(driver="openai"), NotConfiguredError),
        (DriverConfig(driver="mistral"), UnsupportedDriverError),
    ],
)
async def test_generate_fails_fast_without_upstream_call(upstream, config, error) -> None:
    gateway = GenerationGateway(transport=upstream.transport())
    with pytest.raises(error):
        await gateway.generate(req(), config)
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_generate_wraps_upstream_http_error(upstream, gemini_config) -> None:
    upstream.status = 500
    upstream.text = "internal"
    gateway = GenerationGateway(transport=upstream.transport())
    with pytest.raises(GenerationFailedError, match="Gemini API error: 500"):
        await gateway.generate(req(), gemini_config)


@pytest.mark.asyncio
async def test_generate_wraps_malformed_body(upstream, ollama_config) -> None:
    upstream.text = "<html>not json</html>"
    gateway = GenerationGateway(transport=upstream.transport())
    with pytest.raises(GenerationFailedError):
        await gateway.generate(req(), ollama_config)


def test_stream_validates_before_first_event(upstream) -> None:
    gateway = GenerationGateway(transport=upstream.transport())
    with pytest.raises(NotConfiguredError):
        gateway.stream(req(), DriverConfig())
    with pytest.raises(UnsupportedDriverError):
        gateway.stream(req(), DriverConfig(driver="bard"))
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_stream_yields_deltas_in_order(upstream, gemini_config) -> None:
    upstream.chunks = [sse(gemini_chunk("one ")), sse(gemini_chunk("two ")), sse(gemini_chunk("three"))]
    gateway = GenerationGateway(transport=upstream.transport())
    events = [e async for e in gateway.stream(req(action=AiAction.SUMMARIZE), gemini_config)]
    assert events == [ContentDelta("one "), ContentDelta("two "), ContentDelta("three")]


@pytest.mark.asyncio
async def test_stream_mid_stream_failure_becomes_final_error_event(upstream, ollama_config) -> None:
    upstream.chunks = [ndjson(ollama_chunk("partial")), ndjson(ollama_chunk("lost"))]
    upstream.fail_after = 1
    gateway = GenerationGateway(transport=upstream.transport())

    events = [e async for e in gateway.stream(req(), ollama_config)]

    assert events[0] == ContentDelta("partial")
    assert isinstance(events[-1], ErrorEvent)
    assert events[-1].message.startswith("Ollama stream failed")
    assert len(events) == 2


@pytest.mark.asyncio
async def test_closing_stream_releases_upstream(upstream, openai_config) -> None:
    upstream.chunks = [sse(openai_delta("first"))]
    upstream.endless = True
    gateway = GenerationGateway(transport=upstream.transport())

    events = gateway.stream(req(), openai_config)
    assert await events.__anext__() == ContentDelta("first")
    await events.aclose()

    stream = upstream.stream
    assert stream.closed
    reads = stream.reads
    await asyncio.sleep(0.01)
    assert stream.reads == reads == stream.reads_at_close


@pytest.mark.asyncio
async def test_cancelling_consumer_task_releases_upstream(upstream, openai_config) -> None:
    upstream.chunks = [sse(openai_delta("first"))]
    upstream.endless = True
    gateway = GenerationGateway(transport=upstream.transport())
    seen: list = []

    async def consume() -> None:
        async for event in gateway.stream(req(), openai_config):
            seen.append(event)

    task = asyncio.create_task(consume())
    while upstream.stream is None or upstream.stream.reads < 5:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    stream = upstream.stream
    assert stream.closed
    reads = stream.reads
    for _ in range(10):
        await asyncio.sleep(0)
    assert stream.reads == reads
    assert seen == [ContentDelta("first")]


@pytest.mark.asyncio
async def test_stream_to_writes_frames_and_terminator(upstream, ollama_config) -> None:
    upstream.chunks = [ndjson(ollama_chunk("Hi"), ollama_chunk(" there"), ollama_chunk("", done=True))]
    gateway = GenerationGateway(transport=upstream.transport())
    transport = RecordingTransport()

    await gateway.stream_to(req(), ollama_config, transport)

    assert transport.frames == [
        'data: {"content": "Hi"}\n\n',
        'data: {"content": " there"}\n\n',
        DONE_FRAME,
    ]
    assert transport.closes == 1


@pytest.mark.asyncio
async def test_stream_to_upstream_error_is_one_error_then_terminator(upstream, openai_config) -> None:
    upstream.status = 429
    upstream.chunks = [b'{"error": {"message": "rate limited"}}']
    gateway = GenerationGateway(transport=upstream.transport())
    transport = RecordingTransport()

    await gateway.stream_to(req(), openai_config, transport)

    assert transport.frames == ['data: {"error": "OpenAI API error: 429"}\n\n', DONE_FRAME]
    assert transport.closes == 1


@pytest.mark.asyncio
async def test_stream_to_unconfigured_reports_in_band(upstream) -> None:
    gateway = GenerationGateway(transport=upstream.transport())
    transport = RecordingTransport()

    await gateway.stream_to(req(), DriverConfig(), transport)

    assert len(transport.frames) == 2
    assert transport.frames[0].startswith('data: {"error": "AI is not configured')
    assert transport.frames[-1] == DONE_FRAME
    assert transport.closes == 1
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_closing_stream_survives_failing_upstream_release(upstream, openai_config) -> None:
    upstream.chunks = [sse(openai_delta("first"))]
    upstream.endless = True
    upstream.close_error = httpx.ReadError("reset during close")
    gateway = GenerationGateway(transport=upstream.transport())

    events = gateway.stream(req(), openai_config)
    assert await events.__anext__() == ContentDelta("first")
    await events.aclose()

    assert upstream.stream.closed
    with pytest.raises(StopAsyncIteration):
        await events.__anext__()


@pytest.mark.asyncio
async def test_cancellation_survives_failing_upstream_release(upstream, openai_config) -> None:
    upstream.chunks = [sse(openai_delta("first"))]
    upstream.endless = True
    upstream.close_error = httpx.ReadError("reset during close")
    gateway = GenerationGateway(transport=upstream.transport())
    seen: list = []

    async def consume() -> None:
        async for event in gateway.stream(req(), openai_config):
            seen.append(event)

    task = asyncio.create_task(consume())
    while upstream.stream is None or upstream.stream.reads < 3:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert upstream.stream.closed
    assert seen == [ContentDelta("first")]


@pytest.mark.asyncio
async def test_stream_to_closes_transport_when_caller_and_upstream_both_fail(upstream, openai_config) -> None:
    upstream.chunks = [sse(openai_delta("a"), openai_delta("b"))]
    upstream.endless = True
    upstream.close_error = httpx.ReadError("reset during close")
    gateway = GenerationGateway(transport=upstream.transport())

    class GoneTransport(RecordingTransport):
        async def write(self, data: str) -> None:
            if self.frames:
                raise ConnectionResetError("client went away")
            self.frames.append(data)

    transport = GoneTransport()
    with pytest.raises(ConnectionResetError):
        await gateway.stream_to(req(), openai_config, transport)

    assert transport.frames == ['data: {"content": "a"}\n\n']
    assert transport.closes == 1
    assert upstream.stream.closed
