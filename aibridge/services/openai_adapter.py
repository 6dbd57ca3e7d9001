from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from aibridge.core.merge import deep_merge
from aibridge.models.enums import AIProvider, FinishReason, StreamFraming
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
    stream_chunks,
)

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "content_filter": FinishReason.CONTENT_FILTER,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
}


class OpenAIAdapter:
    provider = AIProvider.OPENAI
    framing = StreamFraming.SSE

    def __init__(self, config: AIConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._http = ProviderHttp(timeout=config.timeout, transport=transport)

    def endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/chat/completions"

    def stream_endpoint(self) -> str:
        return self.endpoint()

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            **self.config.extra_headers,
        }

    def build_request_body(self, messages: Sequence[ChatMessage], stream: bool = False) -> dict[str, Any]:
        wire_messages = []
        for m in messages:
            item = {"role": m.role.value, "content": m.content}
            if m.name:
                item["name"] = m.name
            wire_messages.append(item)

        body: dict[str, Any] = {
            "model": self.config.model,
            "messages": wire_messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if stream:
            body["stream"] = True
        return deep_merge(body, self.config.extra_body)

    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        choice = (raw.get("choices") or [{}])[0]
        usage = raw.get("usage")
        return ChatResponse(
            message=(choice.get("message") or {}).get("content") or "",
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            )
            if usage
            else None,
            model=raw.get("model"),
            finish_reason=normalize_finish_reason(choice.get("finish_reason"), _FINISH_REASONS),
        )

    def extract_stream_token(self, event: dict[str, Any]) -> str:
        choices = event.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""

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
