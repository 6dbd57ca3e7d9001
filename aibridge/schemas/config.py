from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from aibridge.core.config import DEFAULT_MODELS, Settings
from aibridge.core.merge import deep_merge
from aibridge.models.enums import AIProvider


class AIConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    provider: AIProvider
    api_key: str | None = Field(default=None, alias="apiKey")
    model: str | None = None
    base_url: str | None = Field(default=None, alias="baseUrl")
    max_tokens: int | None = Field(default=None, gt=0, alias="maxTokens")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    timeout: float | None = Field(default=None, gt=0)
    extra_headers: dict[str, str] = Field(default_factory=dict, alias="extraHeaders")
    extra_body: dict[str, Any] = Field(default_factory=dict, alias="extraBody")


def config_defaults(provider: AIProvider, settings: Settings) -> dict[str, Any]:
    """Named defaults for *provider*, lowest precedence in ``resolve_config``."""
    provider = AIProvider(provider)
    return {
        "provider": provider,
        "api_key": settings.api_key_for(provider) or None,
        "model": DEFAULT_MODELS[provider],
        "base_url": settings.base_url_for(provider),
        "max_tokens": settings.default_max_tokens,
        "temperature": settings.default_temperature,
        "timeout": settings.request_timeout_seconds,
        "extra_headers": {},
        "extra_body": {},
    }


def resolve_config(config: AIConfig, settings: Settings) -> AIConfig:
    """Fill every unset field of *config* from *settings*.

    This is the single merge step: caller values win, settings supply the
    rest, nested dicts are deep-merged.
    """
    overrides = config.model_dump(exclude_none=True)
    merged = deep_merge(config_defaults(config.provider, settings), overrides)
    return AIConfig.model_validate(merged)
