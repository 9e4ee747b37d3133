"""Incremental decoding of backend byte streams into content deltas.

Two framings are handled:
- ``sse``: lines of ``data: <json>``; an optional sentinel payload ends the stream.
- ``ndjson``: every non-blank line is a JSON object.

Chunk boundaries may fall anywhere, including inside a UTF-8 code point, so
both the byte-to-text step and the line split carry state between calls.
"""
from __future__ import annotations
import codecs
import json
import logging
from typing import Any, Callable, Literal

from ai_stream_gateway.common.schema import ContentDelta

LOGGER = logging.getLogger("aigateway.providers.decoding")

# Unparseable lines logged at WARNING before dropping to DEBUG.
MAX_SKIP_WARNINGS = 3

Extractor = Callable[[Any], str | None]


def dig(obj: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None at the first missing step."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(obj, list) or len(obj) <= step:
                return None
        elif not isinstance(obj, dict):
            return None
        elif step not in obj:
            return None
        obj = obj[step]
    return obj


class StreamDecoder:
    """Per-call decoder state: carry-over text plus an incremental UTF-8 decoder."""

    def __init__(
        self,
        extract: Extractor,
        *,
        framing: Literal["sse", "ndjson"] = "sse",
        done_sentinel: str | None = None,
    ) -> None:
        self._extract = extract
        self._framing = framing
        self._sentinel = done_sentinel
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False
        self.skipped = 0

    def feed(self, chunk: bytes) -> list[ContentDelta]:
        """Consume one raw chunk; return deltas for every line it completed."""
        if self.done:
            return []
        self._buffer += self._utf8.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._process(lines)

    def finish(self) -> list[ContentDelta]:
        """Signal end of input. A trailing unterminated line is decoded as a final frame."""
        if self.done:
            return []
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        events = self._process([tail]) if tail.strip() else []
        self.done = True
        return events

    def _payload(self, line: str) -> str | None:
        line = line.rstrip("\r")
        if self._framing == "ndjson":
            return line if line.strip() else None
        if not line.startswith("data:"):
            return None
        payload = line[5:]
        return payload[1:] if payload.startswith(" ") else payload

    def _process(self, lines: list[str]) -> list[ContentDelta]:
        events: list[ContentDelta] = []
        for line in lines:
            payload = self._payload(line)
            if payload is None:
                continue
            if self._sentinel is not None and payload.strip() == self._sentinel:
                self.done = True
                self._buffer = ""
                break
            try:
                frame = json.loads(payload)
            except json.JSONDecodeError:
                self._skip(payload)
                continue
            text = self._extract(frame)
            if isinstance(text, str) and text:
                events.append(ContentDelta(text))
        return events

    def _skip(self, payload: str) -> None:
        self.skipped += 1
        level = logging.WARNING if self.skipped <= MAX_SKIP_WARNINGS else logging.DEBUG
        LOGGER.log(level, "Skipping unparseable %s frame (%d chars)", self._framing, len(payload))
