"""Google Gemini adapter (``generateContent`` / ``streamGenerateContent``)."""
from __future__ import annotations
from typing import Any, AsyncIterator

import httpx

from ai_stream_gateway.common.config import GEMINI_DEFAULT_URL
from ai_stream_gateway.common.schema import GenerationResult, StreamEvent, Usage
from ai_stream_gateway.providers.base import post_json, stream_events
from ai_stream_gateway.providers.decoding import StreamDecoder, dig

DEFAULT_MODEL = "gemini-1.5-flash"


def extract_text(frame: Any) -> str | None:
    return dig(frame, "candidates", 0, "content", "parts", 0, "text")


def make_decoder() -> StreamDecoder:
    # SSE framing, but the stream only ends when the connection closes.
    return StreamDecoder(extract_text, framing="sse")


class GeminiAdapter:
    """Interact with the Gemini API; the key travels as a query parameter."""

    backend = "Gemini"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str | None = None,
        base_url: str = GEMINI_DEFAULT_URL,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.base_url = base_url.rstrip("/")

    def _url(self, method: str) -> str:
        return f"{self.base_url}/models/{self.model}:{method}"

    @staticmethod
    def _payload(prompt: str) -> dict[str, Any]:
        return {"contents": [{"parts": [{"text": prompt}]}]}

    async def generate(self, prompt: str) -> GenerationResult:
        data = await post_json(
            self.client,
            self._url("generateContent"),
            backend=self.backend,
            payload=self._payload(prompt),
            params={"key": self.api_key},
        )
        metadata = data.get("usageMetadata")
        usage = None
        if isinstance(metadata, dict):
            usage = Usage(
                prompt_tokens=metadata.get("promptTokenCount") or 0,
                completion_tokens=metadata.get("candidatesTokenCount") or 0,
                total_tokens=metadata.get("totalTokenCount") or 0,
            )
        return GenerationResult(content=extract_text(data) or "", usage=usage)

    def stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        return stream_events(
            self.client,
            self._url("streamGenerateContent"),
            backend=self.backend,
            decoder=make_decoder(),
            payload=self._payload(prompt),
            params={"alt": "sse", "key": self.api_key},
        )
