"""Driver configuration: YAML file (optional) overlaid with environment variables."""
from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

OPENAI_DEFAULT_URL = "https://api.openai.com/v1"
GEMINI_DEFAULT_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 120.0

ENV_VARS = {
    "driver": "AI_DRIVER",
    "openai_api_key": "OPENAI_API_KEY",
    "openai_api_url": "OPENAI_API_URL",
    "gemini_api_key": "GEMINI_API_KEY",
    "gemini_api_url": "GEMINI_API_URL",
    "ollama_api_url": "OLLAMA_API_URL",
    "completion_model": "AI_COMPLETION_MODEL",
    "timeout": "AI_REQUEST_TIMEOUT",
}


class ConfigError(Exception):
    """Raised when configuration could not be loaded or parsed."""


@dataclass(frozen=True)
class DriverConfig:
    """Validated, read-only settings for the selected backend."""
    driver: str | None = None
    openai_api_key: str | None = None
    openai_api_url: str = OPENAI_DEFAULT_URL
    gemini_api_key: str | None = None
    gemini_api_url: str = GEMINI_DEFAULT_URL
    ollama_api_url: str | None = None
    completion_model: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def driver_name(self) -> str | None:
        """Lower-cased driver name, or None when unset."""
        name = (self.driver or "").strip().lower()
        return name or None


def load_cfg(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping.")
    return data


def load_driver_config(path: str | Path | None = None) -> DriverConfig:
    """
    Build a DriverConfig from an optional YAML file and the environment.

    Args:
        path: YAML config path; falls back to ``AI_GATEWAY_CONFIG`` when unset.
            Environment variables override values from the file.
    """
    known = {f.name for f in fields(DriverConfig)}
    values: dict[str, Any] = {}

    cfg_path = path or os.getenv("AI_GATEWAY_CONFIG")
    if cfg_path:
        for key, value in load_cfg(cfg_path).items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key}")
            values[key] = value

    for key, env_name in ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            values[key] = value

    try:
        timeout = float(values.pop("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigError("timeout must be a number of seconds") from exc

    config = DriverConfig(**{k: str(v) for k, v in values.items() if v is not None})
    return replace(config, timeout=timeout, driver=config.driver_name)
