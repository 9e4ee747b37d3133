"""FastAPI surface for the AI stream gateway.

Endpoints:
- GET  /health
- GET  /ai/config
- POST /ai/generate         { "action": "...", "content": "..." }
- POST /ai/generate/stream  same body, answered as text/event-stream
"""
from __future__ import annotations
import logging
import os
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from ai_stream_gateway.common.config import DriverConfig, load_driver_config
from ai_stream_gateway.common.errors import (
    GatewayError,
    GenerationFailedError,
    NotConfiguredError,
    UnsupportedActionError,
    UnsupportedDriverError,
)
from ai_stream_gateway.common.logging_setup import setup_logging
from ai_stream_gateway.common.schema import AiConfigResponse, GenerationRequest, GenerationResult
from ai_stream_gateway.gateway import GenerationGateway
from ai_stream_gateway.serve.relay import SSE_HEADERS, sse_frames

LOGGER = logging.getLogger("aigateway.app")
setup_logging(os.getenv("LOG_LEVEL", "INFO"))

HOST = os.getenv("AI_GATEWAY_HOST", "0.0.0.0")
PORT = int(os.getenv("AI_GATEWAY_PORT", "8080"))

NOT_CONFIGURED_MESSAGE = "AI is not configured. Please set AI_DRIVER and required API keys."


@lru_cache(maxsize=1)
def get_driver_config() -> DriverConfig:
    return load_driver_config()


@lru_cache(maxsize=1)
def get_gateway() -> GenerationGateway:
    return GenerationGateway()


app = FastAPI(title="AI Stream Gateway")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/ai/config", response_model=AiConfigResponse, response_model_exclude_none=True)
def ai_config(
    config: DriverConfig = Depends(get_driver_config),
    gateway: GenerationGateway = Depends(get_gateway),
) -> AiConfigResponse:
    return gateway.describe(config)


@app.post("/ai/generate", response_model=GenerationResult, response_model_exclude_none=True)
async def generate(
    body: GenerationRequest,
    config: DriverConfig = Depends(get_driver_config),
    gateway: GenerationGateway = Depends(get_gateway),
) -> GenerationResult:
    try:
        return await gateway.generate(body, config)
    except (NotConfiguredError, UnsupportedDriverError, UnsupportedActionError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except GenerationFailedError as e:
        LOGGER.error("Generation failed: %s", e.message)
        raise HTTPException(status_code=502, detail=e.message)


@app.post("/ai/generate/stream")
async def generate_stream(
    body: GenerationRequest,
    config: DriverConfig = Depends(get_driver_config),
    gateway: GenerationGateway = Depends(get_gateway),
):
    # Reject before committing to text/event-stream so the caller gets a plain error.
    if not gateway.is_configured(config):
        return JSONResponse(status_code=400, content={"error": NOT_CONFIGURED_MESSAGE})
    try:
        events = gateway.stream(body, config)
    except GatewayError as e:
        return JSONResponse(status_code=400, content={"error": e.message})

    return StreamingResponse(
        sse_frames(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
