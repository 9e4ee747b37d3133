"""Command-line access to the gateway, mostly for checking a backend by hand.

Without ``--stream`` the full result is printed. With ``--stream`` the exact
outbound SSE frames are written to stdout, as an HTTP caller would see them.
"""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from typing import TextIO

from ai_stream_gateway.common.config import load_driver_config
from ai_stream_gateway.common.errors import GatewayError
from ai_stream_gateway.common.logging_setup import setup_logging
from ai_stream_gateway.common.schema import AiAction, GenerationRequest
from ai_stream_gateway.gateway import GenerationGateway

LOGGER = logging.getLogger("aigateway.cli")


class TextTransport:
    """OutboundTransport over a text stream such as stdout."""

    def __init__(self, out: TextIO) -> None:
        self.out = out
        self.closed = False

    async def write(self, data: str) -> None:
        self.out.write(data)
        self.out.flush()

    async def close(self) -> None:
        self.closed = True


async def run(args: argparse.Namespace, out: TextIO) -> int:
    config = load_driver_config(args.config)
    request = GenerationRequest(
        action=AiAction(args.action),
        content=args.content,
        prompt=args.prompt,
        target_language=args.target_language,
        tone=args.tone,
    )
    gateway = GenerationGateway()

    if args.stream:
        await gateway.stream_to(request, config, TextTransport(out))
        return 0

    try:
        result = await gateway.generate(request, config)
    except GatewayError as e:
        LOGGER.error("%s", e.message)
        return 1
    if result.usage:
        LOGGER.info(
            "Usage: in=%s out=%s total=%s",
            result.usage.prompt_tokens,
            result.usage.completion_tokens,
            result.usage.total_tokens,
        )
    print(result.content, file=out)
    return 0


def main() -> None:
    setup_logging(logging.INFO, stream=sys.stderr)
    ap = argparse.ArgumentParser(description="Generate text through the configured AI backend")
    ap.add_argument("--action", default=AiAction.CUSTOM.value, choices=[a.value for a in AiAction])
    ap.add_argument("--content", required=True, help="Text to work on")
    ap.add_argument("--prompt", help="Instruction for the custom action")
    ap.add_argument("--target-language", help="Target language for translate")
    ap.add_argument("--tone", help="Tone for change_tone")
    ap.add_argument("--stream", action="store_true", help="Emit outbound SSE frames")
    ap.add_argument("--config", help="YAML driver config path")
    args = ap.parse_args()

    sys.exit(asyncio.run(run(args, sys.stdout)))


if __name__ == "__main__":
    main()
