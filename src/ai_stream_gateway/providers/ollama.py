"""Ollama model server adapter."""
from __future__ import annotations
from typing import Any, AsyncIterator

import httpx

from ai_stream_gateway.common.schema import GenerationResult, StreamEvent, Usage
from ai_stream_gateway.providers.base import post_json, stream_events
from ai_stream_gateway.providers.decoding import StreamDecoder, dig

DEFAULT_MODEL = "llama3.2"


def extract_response(frame: Any) -> str | None:
    return dig(frame, "response")


def make_decoder() -> StreamDecoder:
    return StreamDecoder(extract_response, framing="ndjson")


class OllamaAdapter:
    """Interact with ``{endpoint}/api/generate``; streams newline-delimited JSON."""

    backend = "Ollama"

    def __init__(self, client: httpx.AsyncClient, host: str, model: str | None = None) -> None:
        self.client = client
        self.host = host.rstrip("/")
        self.model = model or DEFAULT_MODEL

    @property
    def url(self) -> str:
        return f"{self.host}/api/generate"

    def _payload(self, prompt: str, stream: bool) -> dict[str, Any]:
        return {"model": self.model, "prompt": prompt, "stream": stream}

    async def generate(self, prompt: str) -> GenerationResult:
        data = await post_json(
            self.client,
            self.url,
            backend=self.backend,
            payload=self._payload(prompt, stream=False),
        )
        prompt_tokens = data.get("prompt_eval_count")
        completion_tokens = data.get("eval_count")
        usage = None
        if isinstance(prompt_tokens, int) and isinstance(completion_tokens, int):
            usage = Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )
        return GenerationResult(content=extract_response(data) or "", usage=usage)

    def stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        return stream_events(
            self.client,
            self.url,
            backend=self.backend,
            decoder=make_decoder(),
            payload=self._payload(prompt, stream=True),
        )
