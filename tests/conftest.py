import json

import httpx
import pytest

from aibridge.core.config import Settings, get_settings

OPENAI_KEY = "sk-test-openai-123456789"
CLAUDE_KEY = "sk-ant-test-123456789"
GEMINI_KEY = "AIza-test-gemini-123456789"


class RecordingHandler:
    """MockTransport handler that remembers every request it served."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="",
        anthropic_api_key="",
        gemini_api_key="",
        sentry_dsn="",
        openai_base_url="https://api.openai.com/v1",
        anthropic_base_url="https://api.anthropic.com/v1",
        gemini_base_url="https://generativelanguage.googleapis.com/v1beta",
        anthropic_version="2023-06-01",
        default_max_tokens=4096,
        default_temperature=0.7,
        request_timeout_seconds=60.0,
        image_model="dall-e-3",
        vision_model="gpt-4o",
        vision_max_tokens=1000,
        fallback_delay_seconds=0,
        fallback_token_delay_seconds=0,
    )


@pytest.fixture()
def mock_transport():
    def factory(responder):
        handler = RecordingHandler(responder)
        return handler, httpx.MockTransport(handler)

    return factory


@pytest.fixture()
def fresh_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
