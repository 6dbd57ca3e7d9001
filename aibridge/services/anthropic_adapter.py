from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from aibridge.core.config import get_settings
from aibridge.core.errors import TransportError
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
    split_system,
    stream_chunks,
)

_FINISH_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "tool_use": FinishReason.TOOL_CALLS,
    "refusal": FinishReason.CONTENT_FILTER,
}


class ClaudeAdapter:
    provider = AIProvider.CLAUDE
    framing = StreamFraming.SSE

    def __init__(
        self,
        config: AIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        anthropic_version: str | None = None,
    ) -> None:
        self.config = config
        self.anthropic_version = anthropic_version or get_settings().anthropic_version
        self._http = ProviderHttp(timeout=config.timeout, transport=transport)

    def endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/messages"

    def stream_endpoint(self) -> str:
        return self.endpoint()

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.anthropic_version,
            **self.config.extra_headers,
        }

    def build_request_body(self, messages: Sequence[ChatMessage], stream: bool = False) -> dict[str, Any]:
        # Claude takes the system prompt as a top-level field, not a message.
        system, conversation = split_system(messages)
        body: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": m.role.value, "content": m.content} for m in conversation],
        }
        if system:
            body["system"] = system
        if stream:
            body["stream"] = True
        return deep_merge(body, self.config.extra_body)

    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        content = raw.get("content") or [{}]
        usage = raw.get("usage")
        return ChatResponse(
            message=content[0].get("text") or "",
            usage=TokenUsage(
                prompt_tokens=usage.get("input_tokens", 0),
                completion_tokens=usage.get("output_tokens", 0),
                total_tokens=usage.get("input_tokens", 0) + usage.get("output_tokens", 0),
            )
            if usage
            else None,
            model=raw.get("model"),
            finish_reason=normalize_finish_reason(raw.get("stop_reason"), _FINISH_REASONS),
        )

    def extract_stream_token(self, event: dict[str, Any]) -> str:
        if event.get("type") != "content_block_delta":
            return ""
        return (event.get("delta") or {}).get("text") or ""

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        raw = await self._http.post_json(self.endpoint(), self.headers(), self.build_request_body(messages))
        return self.parse_response(raw)

    async def _tokens(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[str, None]:
        body = self.build_request_body(messages, stream=True)
        events = self._http.stream_events(self.stream_endpoint(), self.headers(), body, self.framing)
        async with aclosing(events):
            async for event in events:
                event_type = event.get("type")
                if event_type == "message_stop":
                    break
                if event_type == "error":
                    error = event.get("error") or {}
                    if not isinstance(error, dict):
                        error = {"message": str(error)}
                    raise TransportError(f"Stream error ({error.get('type', 'unknown')}): {error.get('message', '')}")
                yield frame_token(self.extract_stream_token, event)

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[StreamChunk, None]:
        return stream_chunks(self._tokens(messages))

    async def chat_stream(self, messages: Sequence[ChatMessage], callbacks: StreamCallbacks) -> None:
        await dispatch_stream(self.stream(messages), callbacks)
