import httpx
import pytest

from aibridge.core.errors import APIError, TransportError
from aibridge.models.enums import AIProvider, FinishReason, MessageRole
from aibridge.schemas.config import AIConfig, resolve_config
from aibridge.services.openai_adapter import OpenAIAdapter
from aibridge.services.providers_base import ChatMessage

from conftest import OPENAI_KEY

COMPLETION = {
    "id": "chatcmpl-1",
    "model": "gpt-4o-2024-08-06",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi there"}, "finish_reason": "stop"}],
    "usage": {"prompt_tokens": 9, "completion_tokens": 2, "total_tokens": 11},
}


def _adapter(settings, transport=None, **overrides):
    config = resolve_config(AIConfig(provider=AIProvider.OPENAI, api_key=OPENAI_KEY, **overrides), settings)
    return OpenAIAdapter(config, transport=transport)


def test_request_shape(settings):
    adapter = _adapter(settings, extra_headers={"OpenAI-Organization": "org-1"})
    messages = [
        ChatMessage(MessageRole.SYSTEM, "Be brief."),
        ChatMessage(MessageRole.USER, "Hello", name="alice"),
    ]

    body = adapter.build_request_body(messages)
    headers = adapter.headers()

    assert adapter.endpoint() == "https://api.openai.com/v1/chat/completions"
    assert headers["Authorization"] == f"Bearer {OPENAI_KEY}"
    assert headers["OpenAI-Organization"] == "org-1"
    assert body == {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hello", "name": "alice"},
        ],
        "max_tokens": 4096,
        "temperature": 0.7,
    }
    assert adapter.build_request_body(messages, stream=True)["stream"] is True


def test_extra_body_is_merged(settings):
    adapter = _adapter(settings, extra_body={"response_format": {"type": "json_object"}, "temperature": 0.1})

    body = adapter.build_request_body([ChatMessage(MessageRole.USER, "x")])

    assert body["response_format"] == {"type": "json_object"}
    assert body["temperature"] == 0.1
    assert body["model"] == "gpt-4o"


def test_base_url_override(settings):
    adapter = _adapter(settings, base_url="http://localhost:8080/v1/")

    assert adapter.endpoint() == "http://localhost:8080/v1/chat/completions"


async def test_chat_round_trip(settings, mock_transport):
    handler, transport = mock_transport(lambda request: httpx.Response(200, json=COMPLETION))
    adapter = _adapter(settings, transport)

    response = await adapter.chat([ChatMessage(MessageRole.USER, "Hello")])

    assert response.message == "Hi there"
    assert response.model == "gpt-4o-2024-08-06"
    assert response.finish_reason is FinishReason.STOP
    assert response.usage.prompt_tokens == 9
    assert response.usage.completion_tokens == 2
    assert response.usage.total_tokens == 11
    assert handler.calls == 1
    assert str(handler.requests[0].url) == "https://api.openai.com/v1/chat/completions"
    assert handler.requests[0].headers["authorization"] == f"Bearer {OPENAI_KEY}"
    assert handler.last_json["messages"] == [{"role": "user", "content": "Hello"}]
    assert "stream" not in handler.last_json


def test_parse_response_tolerates_missing_fields(settings):
    adapter = _adapter(settings)

    response = adapter.parse_response({"choices": [{"message": {"content": None}, "finish_reason": "weird"}]})

    assert response.message == ""
    assert response.usage is None
    assert response.finish_reason is None


def test_finish_reason_mapping(settings):
    adapter = _adapter(settings)

    def reason(raw):
        return adapter.parse_response({"choices": [{"message": {"content": ""}, "finish_reason": raw}]}).finish_reason

    assert reason("length") is FinishReason.LENGTH
    assert reason("content_filter") is FinishReason.CONTENT_FILTER
    assert reason("tool_calls") is FinishReason.TOOL_CALLS
    assert reason(None) is None


async def test_http_error_status_raises_api_error(settings, mock_transport):
    _, transport = mock_transport(lambda request: httpx.Response(500, text="upstream exploded"))
    adapter = _adapter(settings, transport)

    with pytest.raises(APIError) as exc_info:
        await adapter.chat([ChatMessage(MessageRole.USER, "Hello")])

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "upstream exploded"
    assert str(exc_info.value) == "API error (500): upstream exploded"


async def test_connection_failure_raises_transport_error(settings, mock_transport):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    _, transport = mock_transport(refuse)
    adapter = _adapter(settings, transport)

    with pytest.raises(TransportError) as exc_info:
        await adapter.chat([ChatMessage(MessageRole.USER, "Hello")])

    assert not isinstance(exc_info.value, APIError)
    assert "connection refused" in str(exc_info.value)


def test_stream_token_extraction(settings):
    adapter = _adapter(settings)

    assert adapter.extract_stream_token({"choices": [{"delta": {"content": "Hel"}}]}) == "Hel"
    assert adapter.extract_stream_token({"choices": [{"delta": {"role": "assistant"}}]}) == ""
    assert adapter.extract_stream_token({"choices": []}) == ""
