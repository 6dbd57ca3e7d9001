from __future__ import annotations

import logging

import httpx

from aibridge.core.config import Settings, get_settings
from aibridge.core.keys import is_valid_api_key, mask_api_key, requires_api_key
from aibridge.models.enums import AIProvider
from aibridge.schemas.config import AIConfig
from aibridge.services.anthropic_adapter import ClaudeAdapter
from aibridge.services.fallback_adapter import FallbackAdapter
from aibridge.services.gemini_adapter import GeminiAdapter
from aibridge.services.openai_adapter import OpenAIAdapter
from aibridge.services.providers_base import ChatAdapter

log = logging.getLogger(__name__)


def create_adapter(
    config: AIConfig,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatAdapter | None:
    """Map a resolved config to a concrete adapter.

    Returns ``None`` when the provider needs a key and the configured one
    fails the shape check; callers treat that as "AI features disabled".
    """
    settings = settings or get_settings()
    provider = AIProvider(config.provider)

    if requires_api_key(provider) and not is_valid_api_key(config.api_key):
        log.warning("No usable API key for %s (got %s); AI features are disabled", provider.value, mask_api_key(config.api_key))
        return None

    match provider:
        case AIProvider.OPENAI:
            return OpenAIAdapter(config, transport=transport)
        case AIProvider.CLAUDE:
            return ClaudeAdapter(config, transport=transport, anthropic_version=settings.anthropic_version)
        case AIProvider.GEMINI:
            return GeminiAdapter(config, transport=transport)
        case AIProvider.LOCAL | AIProvider.FALLBACK:
            return FallbackAdapter(
                config,
                delay=settings.fallback_delay_seconds,
                token_delay=settings.fallback_token_delay_seconds,
            )
    raise ValueError(f"Unknown provider: {provider!r}")
