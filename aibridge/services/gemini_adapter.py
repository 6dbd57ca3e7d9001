from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from aibridge.core.merge import deep_merge
from aibridge.models.enums import AIProvider, FinishReason, MessageRole, StreamFraming
from aibridge.schemas.config import AIConfig
from aibridge.services.http_transport import ProviderHttp
from aibridge.services.providers_base import (
    ChatMessage,
    ChatResponse,
    StreamCallbacks,
    StreamChunk,
    TokenUsage,
    dispatch_stream,
    frame_token,
    normalize_finish_reason,
    split_system,
    stream_chunks,
)

_FINISH_REASONS = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
    "SPII": FinishReason.CONTENT_FILTER,
}


def _first_text(candidate: dict[str, Any]) -> str:
    parts = (candidate.get("content") or {}).get("parts") or [{}]
    return parts[0].get("text") or ""


class GeminiAdapter:
    """Google Generative Language API.

    The key travels in the ``key`` query parameter rather than a header, and
    the stream is a JSON array of response objects with no end sentinel.
    """

    provider = AIProvider.GEMINI
    framing = StreamFraming.JSON_OBJECTS

    def __init__(self, config: AIConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._http = ProviderHttp(timeout=config.timeout, transport=transport)

    def _model_url(self, method: str) -> str:
        root = self.config.base_url.rstrip("/")
        url = httpx.URL(f"{root}/models/{self.config.model}:{method}", params={"key": self.config.api_key or ""})
        return str(url)

    def endpoint(self) -> str:
        return self._model_url("generateContent")

    def stream_endpoint(self) -> str:
        return self._model_url("streamGenerateContent")

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", **self.config.extra_headers}

    def build_request_body(self, messages: Sequence[ChatMessage], stream: bool = False) -> dict[str, Any]:
        # Streaming is selected by the endpoint, so *stream* does not change the body.
        system, conversation = split_system(messages)
        body: dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role is MessageRole.ASSISTANT else "user",
                    "parts": [{"text": m.content}],
                }
                for m in conversation
            ],
            "generationConfig": {
                "maxOutputTokens": self.config.max_tokens,
                "temperature": self.config.temperature,
            },
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        return deep_merge(body, self.config.extra_body)

    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        candidate = (raw.get("candidates") or [{}])[0]
        usage = raw.get("usageMetadata")
        return ChatResponse(
            message=_first_text(candidate),
            usage=TokenUsage(
                prompt_tokens=usage.get("promptTokenCount", 0),
                completion_tokens=usage.get("candidatesTokenCount", 0),
                total_tokens=usage.get("totalTokenCount", 0),
            )
            if usage
            else None,
            model=raw.get("modelVersion") or self.config.model,
            finish_reason=normalize_finish_reason(candidate.get("finishReason"), _FINISH_REASONS),
        )

    def extract_stream_token(self, event: dict[str, Any]) -> str:
        candidates = event.get("candidates") or []
        if not candidates:
            return ""
        return _first_text(candidates[0])

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        raw = await self._http.post_json(self.endpoint(), self.headers(), self.build_request_body(messages))
        return self.parse_response(raw)

    async def _tokens(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[str, None]:
        body = self.build_request_body(messages, stream=True)
        events = self._http.stream_events(self.stream_endpoint(), self.headers(), body, self.framing)
        async with aclosing(events):
            async for event in events:
                yield frame_token(self.extract_stream_token, event)

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[StreamChunk, None]:
        return stream_chunks(self._tokens(messages))

    async def chat_stream(self, messages: Sequence[ChatMessage], callbacks: StreamCallbacks) -> None:
        await dispatch_stream(self.stream(messages), callbacks)
