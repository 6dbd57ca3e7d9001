"""Exception hierarchy shared by the adapters and the client facade.

Nothing in this package retries. Every failure is raised to the caller that
started the request and, for facade calls, also pushed to the facade's error
stream.
"""

from __future__ import annotations

from aibridge.models.enums import AIProvider


class AIClientError(Exception):
    """Base class for every error raised by aibridge."""


class APIKeyNotConfiguredError(AIClientError):
    """Raised before any network attempt when a provider has no usable key."""

    def __init__(self, provider: AIProvider | str) -> None:
        self.provider = AIProvider(provider)
        super().__init__(
            f"API key not configured for {self.provider.value}. "
            "Please configure your API key before using AI features."
        )


class TransportError(AIClientError):
    """The HTTP exchange itself failed (connection refused, timeout, ...)."""


class APIError(TransportError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, body: str, prefix: str = "API error") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"{prefix} ({status_code}): {body}")
