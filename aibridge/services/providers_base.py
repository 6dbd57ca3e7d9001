from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from aibridge.models.enums import AIProvider, FinishReason, MessageRole, StreamEventType
from aibridge.schemas.config import AIConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: MessageRole
    content: str
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", MessageRole(self.role))


@dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True, slots=True)
class ChatResponse:
    message: str
    usage: TokenUsage | None = None
    model: str | None = None
    finish_reason: FinishReason | None = None


@dataclass(frozen=True, slots=True)
class StreamChunk:
    type: StreamEventType
    text: str = ""
    error: Exception | None = None


TokenCallback = Callable[[str], Awaitable[None] | None]
CompleteCallback = Callable[[str], Awaitable[None] | None]
ErrorCallback = Callable[[Exception], Awaitable[None] | None]


@dataclass
class StreamCallbacks:
    on_token: TokenCallback
    on_complete: CompleteCallback | None = None
    on_error: ErrorCallback | None = None


class ChatAdapter(Protocol):
    """What the client facade needs from one backend."""

    provider: AIProvider
    config: AIConfig

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse: ...

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[StreamChunk, None]: ...

    async def chat_stream(self, messages: Sequence[ChatMessage], callbacks: StreamCallbacks) -> None: ...


async def stream_chunks(tokens: AsyncIterator[str]) -> AsyncGenerator[StreamChunk, None]:
    """Turn a raw token iterator into token chunks plus exactly one terminal chunk.

    Any exception raised while producing tokens ends the stream with an
    ``error`` chunk instead of propagating.
    """
    parts: list[str] = []
    try:
        async for token in tokens:
            if not token:
                continue
            parts.append(token)
            yield StreamChunk(type=StreamEventType.TOKEN, text=token)
    except Exception as exc:
        log.debug("Stream failed after %d tokens: %s", len(parts), exc)
        yield StreamChunk(type=StreamEventType.ERROR, error=exc)
        return
    finally:
        await _aclose(tokens)
    yield StreamChunk(type=StreamEventType.COMPLETE, text="".join(parts))


async def _aclose(iterator: AsyncIterator[Any]) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


async def invoke_callback(callback: Callable[[Any], Awaitable[None] | None] | None, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


async def dispatch_stream(chunks: AsyncIterator[StreamChunk], callbacks: StreamCallbacks) -> None:
    """Feed *chunks* into *callbacks*.

    on_token is called per token in order; then exactly one of on_complete or
    on_error. An exception raised by on_token stops the stream and is
    reported through on_error.
    """
    try:
        async for chunk in chunks:
            if chunk.type is StreamEventType.TOKEN:
                try:
                    await invoke_callback(callbacks.on_token, chunk.text)
                except Exception as exc:
                    await invoke_callback(callbacks.on_error, exc)
                    return
            elif chunk.type is StreamEventType.COMPLETE:
                await invoke_callback(callbacks.on_complete, chunk.text)
                return
            else:
                await invoke_callback(callbacks.on_error, chunk.error)
                return
    finally:
        await _aclose(chunks)


_FRAME_SHAPE_ERRORS = (AttributeError, KeyError, IndexError, TypeError)


def frame_token(extract: Callable[[dict[str, Any]], str], event: dict[str, Any]) -> str:
    """Apply *extract* to one decoded frame.

    A frame that decodes but has the wrong shape (``null`` where an object
    belongs, a string where a list belongs, a non-string text) yields ``""``
    so the stream carries on with the next frame.
    """
    try:
        token = extract(event)
    except _FRAME_SHAPE_ERRORS as exc:
        log.debug("Skipping malformed stream frame (%s): %.80r", exc, event)
        return ""
    if not isinstance(token, str):
        log.debug("Skipping non-text stream token: %.80r", token)
        return ""
    return token


def normalize_finish_reason(raw: str | None, mapping: dict[str, FinishReason]) -> FinishReason | None:
    if not raw:
        return None
    reason = mapping.get(raw)
    if reason is None:
        log.debug("Unmapped finish reason %r", raw)
    return reason


def split_system(messages: Sequence[ChatMessage]) -> tuple[str | None, list[ChatMessage]]:
    """Separate system messages from the conversation.

    Returns the system texts joined by a blank line (or ``None``) and the
    remaining messages in order.
    """
    system = [m.content for m in messages if m.role is MessageRole.SYSTEM]
    rest = [m for m in messages if m.role is not MessageRole.SYSTEM]
    return ("\n\n".join(system) if system else None), rest
