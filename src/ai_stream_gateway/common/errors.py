"""Exception taxonomy shared by the gateway, adapters and HTTP layer."""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotConfiguredError(GatewayError):
    """No driver is selected, or its mandatory credential is missing."""


class UnsupportedDriverError(GatewayError):
    """The configured driver name matches no known backend."""


class UnsupportedActionError(GatewayError):
    """The requested action has no prompt template."""


class UpstreamHttpError(GatewayError):
    """A backend answered with a non-2xx status."""

    def __init__(self, backend: str, status: int, body: str = "") -> None:
        super().__init__(f"{backend} API error: {status}")
        self.backend = backend
        self.status = status
        self.body = body


class UpstreamStreamError(GatewayError):
    """The upstream connection failed after streaming had begun."""

    def __init__(self, backend: str, detail: str) -> None:
        super().__init__(f"{backend} stream failed: {detail}")
        self.backend = backend
        self.detail = detail


class GenerationFailedError(GatewayError):
    """Non-streaming generation failed at the HTTP or parsing level."""
