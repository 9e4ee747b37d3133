from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Iterable

import httpx
import pytest

from ai_stream_gateway.common.config import DriverConfig


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body delivered chunk by chunk; records reads and close."""

    def __init__(
        self,
        chunks: Iterable[bytes],
        *,
        endless: bool = False,
        fail_after: int | None = None,
        close_error: Exception | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.endless = endless
        self.fail_after = fail_after
        self.close_error = close_error
        self.reads = 0
        self.closed = False
        self.reads_at_close: int | None = None

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            if self.closed:
                return
            if self.fail_after is not None and self.reads >= self.fail_after:
                raise httpx.ReadError("connection reset by peer")
            self.reads += 1
            yield chunk
        while self.endless and not self.closed:
            await asyncio.sleep(0)
            self.reads += 1
            yield b": keep-alive\n"

    async def aclose(self) -> None:
        self.closed = True
        self.reads_at_close = self.reads
        if self.close_error is not None:
            raise self.close_error


class FakeUpstream:
    """Single backend endpoint: canned JSON or a chunked body."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.json: Any = None
        self.text: str | None = None
        self.chunks: list[bytes] = []
        self.endless = False
        self.fail_after: int | None = None
        self.close_error: Exception | None = None
        self.stream: ChunkStream | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.json is not None:
            return httpx.Response(self.status, json=self.json)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        self.stream = ChunkStream(
            self.chunks,
            endless=self.endless,
            fail_after=self.fail_after,
            close_error=self.close_error,
        )
        return httpx.Response(self.status, stream=self.stream)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def openai_config() -> DriverConfig:
    return DriverConfig(driver="openai", openai_api_key="sk-test", openai_api_url="https://llm.test/v1")


@pytest.fixture
def gemini_config() -> DriverConfig:
    return DriverConfig(driver="gemini", gemini_api_key="g-key", gemini_api_url="https://gemini.test/v1beta")


@pytest.fixture
def ollama_config() -> DriverConfig:
    return DriverConfig(driver="ollama", ollama_api_url="http://ollama.test:11434")

