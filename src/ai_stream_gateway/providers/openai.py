"""OpenAI-compatible chat completions adapter."""
from __future__ import annotations
from typing import Any, AsyncIterator

import httpx

from ai_stream_gateway.common.schema import GenerationResult, StreamEvent, Usage
from ai_stream_gateway.providers.base import post_json, stream_events
from ai_stream_gateway.providers.decoding import StreamDecoder, dig

DEFAULT_MODEL = "gpt-4o-mini"
MAX_TOKENS = 4096
DONE_SENTINEL = "[DONE]"


def extract_delta(frame: Any) -> str | None:
    return dig(frame, "choices", 0, "delta", "content")


def make_decoder() -> StreamDecoder:
    return StreamDecoder(extract_delta, framing="sse", done_sentinel=DONE_SENTINEL)


class OpenAIAdapter:
    """Talk to ``{endpoint}/chat/completions`` with a Bearer key."""

    backend = "OpenAI"

    def __init__(self, client: httpx.AsyncClient, api_key: str, base_url: str, model: str | None = None) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model or DEFAULT_MODEL

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _payload(self, prompt: str, stream: bool) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": MAX_TOKENS,
            "stream": stream,
        }

    async def generate(self, prompt: str) -> GenerationResult:
        data = await post_json(
            self.client,
            self.url,
            backend=self.backend,
            payload=self._payload(prompt, stream=False),
            headers=self._headers(),
        )
        content = dig(data, "choices", 0, "message", "content") or ""
        usage = data.get("usage")
        return GenerationResult(
            content=content,
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            ) if isinstance(usage, dict) else None,
        )

    def stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        return stream_events(
            self.client,
            self.url,
            backend=self.backend,
            decoder=make_decoder(),
            payload=self._payload(prompt, stream=True),
            headers=self._headers(),
        )
