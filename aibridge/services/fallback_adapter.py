"""Offline stand-in adapter.

Used for providers that need no key. It never touches the network and never
fails: replies come from a fixed set of canned strings picked by keyword, with
an artificial delay so callers see realistic loading behaviour.
"""

from __future__ import annotations

import asyncio
import random
import re
from collections.abc import AsyncGenerator, Sequence

from aibridge.core.config import get_settings
from aibridge.models.enums import AIProvider, FinishReason
from aibridge.schemas.config import AIConfig
from aibridge.services.providers_base import (
    ChatMessage,
    ChatResponse,
    StreamCallbacks,
    StreamChunk,
    TokenUsage,
    dispatch_stream,
    stream_chunks,
)

FALLBACK_MODEL = "fallback-mock"

GREETING_REPLY = "Hello! I'm the offline fallback assistant. What would you like to try out?"
HELP_REPLY = (
    "Happy to help! Replies in offline mode are canned. "
    "Configure an API key for a real provider to get generated answers."
)
CODE_REPLY = (
    "Here is a placeholder code sample:\n\n"
    "```python\n"
    "def example():\n"
    "    return \"offline response\"\n"
    "```\n\n"
    "Configure a real provider for actual code generation."
)
GENERIC_REPLIES: tuple[str, ...] = (
    "This is an offline fallback reply. Add an API key to enable a real provider.",
    "Your request arrived fine. The fallback provider only returns canned text.",
    "Offline mode is active and everything is working as expected.",
    "Canned response: pick OpenAI, Claude or Gemini and set its key for real output.",
    "Request received. Responses stay canned until a provider key is configured.",
)

_KEYWORD_REPLIES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(hello|hi)\b"), GREETING_REPLY),
    (re.compile(r"\bhelp\b"), HELP_REPLY),
    (re.compile(r"\b(code|function)\b"), CODE_REPLY),
)

_TOKEN_RE = re.compile(r"\S+\s*")


def _word_count(text: str) -> int:
    return len(text.split())


class FallbackAdapter:
    def __init__(
        self,
        config: AIConfig,
        rng: random.Random | None = None,
        delay: float | None = None,
        token_delay: float | None = None,
    ) -> None:
        settings = get_settings()
        self.config = config
        self.provider = AIProvider(config.provider)
        self._rng = rng or random.Random()
        self._delay = settings.fallback_delay_seconds if delay is None else delay
        self._token_delay = settings.fallback_token_delay_seconds if token_delay is None else token_delay

    def reply_for(self, messages: Sequence[ChatMessage]) -> str:
        text = messages[-1].content.lower() if messages else ""
        for pattern, reply in _KEYWORD_REPLIES:
            if pattern.search(text):
                return reply
        return self._rng.choice(GENERIC_REPLIES)

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        await asyncio.sleep(self._delay)
        reply = self.reply_for(messages)
        prompt_tokens = sum(_word_count(m.content) for m in messages)
        completion_tokens = _word_count(reply)
        return ChatResponse(
            message=reply,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=FALLBACK_MODEL,
            finish_reason=FinishReason.STOP,
        )

    async def _tokens(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[str, None]:
        # Each token is one word plus the whitespace that follows it.
        for token in _TOKEN_RE.findall(self.reply_for(messages)):
            await asyncio.sleep(self._token_delay)
            yield token

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[StreamChunk, None]:
        return stream_chunks(self._tokens(messages))

    async def chat_stream(self, messages: Sequence[ChatMessage], callbacks: StreamCallbacks) -> None:
        await dispatch_stream(self.stream(messages), callbacks)
