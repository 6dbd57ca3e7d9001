from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aibridge.models.enums import AIProvider

DEFAULT_MODELS: dict[AIProvider, str] = {
    AIProvider.OPENAI: "gpt-4o",
    AIProvider.CLAUDE: "claude-3-5-sonnet-20241022",
    AIProvider.GEMINI: "gemini-pro",
    AIProvider.LOCAL: "llama2",
    AIProvider.FALLBACK: "mock",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    default_provider: AIProvider = AIProvider.FALLBACK
    sentry_dsn: str = ""
    log_level: str = "INFO"

    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""

    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    anthropic_version: str = "2023-06-01"

    default_max_tokens: int = Field(default=4096, gt=0)
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    # Whole-request budget in seconds, including every chunk of a stream.
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    fallback_delay_seconds: float = Field(default=0.5, ge=0)
    fallback_token_delay_seconds: float = Field(default=0.05, ge=0)

    image_model: str = "dall-e-3"
    vision_model: str = "gpt-4o"
    vision_max_tokens: int = 1000

    def api_key_for(self, provider: AIProvider) -> str:
        return {
            AIProvider.OPENAI: self.openai_api_key,
            AIProvider.CLAUDE: self.anthropic_api_key,
            AIProvider.GEMINI: self.gemini_api_key,
        }.get(provider, "")

    def base_url_for(self, provider: AIProvider) -> str | None:
        return {
            AIProvider.OPENAI: self.openai_base_url,
            AIProvider.CLAUDE: self.anthropic_base_url,
            AIProvider.GEMINI: self.gemini_base_url,
        }.get(provider)


@lru_cache
def get_settings() -> Settings:
    return Settings()
