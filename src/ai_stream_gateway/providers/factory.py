"""Resolve the configured driver and build its adapter."""
from __future__ import annotations

import httpx

from ai_stream_gateway.common.config import DriverConfig
from ai_stream_gateway.common.errors import NotConfiguredError, UnsupportedDriverError
from ai_stream_gateway.providers.base import ProviderAdapter
from ai_stream_gateway.providers.gemini import GeminiAdapter
from ai_stream_gateway.providers.ollama import OllamaAdapter
from ai_stream_gateway.providers.openai import OpenAIAdapter

DRIVERS = ("openai", "gemini", "ollama")

BACKEND_NAMES = {
    "openai": OpenAIAdapter.backend,
    "gemini": GeminiAdapter.backend,
    "ollama": OllamaAdapter.backend,
}


def required_setting(config: DriverConfig, driver: str) -> str | None:
    """The mandatory credential or endpoint for a driver."""
    if driver == "openai":
        return config.openai_api_key
    if driver == "gemini":
        return config.gemini_api_key
    if driver == "ollama":
        return config.ollama_api_url
    return None


def resolve_driver(config: DriverConfig) -> str:
    """Validate the driver selection without touching the network."""
    driver = config.driver_name
    if not driver:
        raise NotConfiguredError("AI is not configured. Please set AI_DRIVER environment variable.")
    if driver not in DRIVERS:
        raise UnsupportedDriverError(f"Unsupported AI driver: {driver}")
    if not required_setting(config, driver):
        what = "API URL" if driver == "ollama" else "API key"
        raise NotConfiguredError(f"{BACKEND_NAMES[driver]} {what} is not configured.")
    return driver


def build_adapter(driver: str, config: DriverConfig, client: httpx.AsyncClient) -> ProviderAdapter:
    """Instantiate the adapter for an already-resolved driver."""
    if driver == "openai":
        return OpenAIAdapter(
            client,
            api_key=config.openai_api_key or "",
            base_url=config.openai_api_url,
            model=config.completion_model,
        )
    if driver == "gemini":
        return GeminiAdapter(
            client,
            api_key=config.gemini_api_key or "",
            model=config.completion_model,
            base_url=config.gemini_api_url,
        )
    if driver == "ollama":
        return OllamaAdapter(client, host=config.ollama_api_url or "", model=config.completion_model)
    raise UnsupportedDriverError(f"Unsupported AI driver: {driver}")
