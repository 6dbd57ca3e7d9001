"""Frame splitting for streamed chat responses.

Two framings are in use:

``sse``
    ``data: {...}`` lines. An optional ``[DONE]`` payload ends the stream.

``json_objects``
    A bare sequence of JSON objects, usually wrapped in a JSON array
    (``[{...},\\r\\n{...}]``), with no terminating sentinel. Object boundaries
    can fall anywhere inside a network chunk.

Both yield decoded ``dict`` events. Frames that fail to decode are skipped;
for ``json_objects`` any complete objects caught inside a broken one are
still delivered, in order.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

log = logging.getLogger(__name__)

SSE_DONE = "[DONE]"


def parse_sse_line(line: str) -> str | None:
    """Return the payload of a ``data:`` line, or ``None`` for any other line."""
    if not line or not line.startswith("data:"):
        return None
    return line[len("data:") :].strip()


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncGenerator[dict[str, Any], None]:
    async for line in lines:
        payload = parse_sse_line(line)
        if not payload:
            continue
        if payload == SSE_DONE:
            break
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            log.debug("Skipping malformed SSE frame: %.80s", payload)
            continue
        if isinstance(event, dict):
            yield event


class JsonObjectSplitter:
    """Incrementally cut complete top-level ``{...}`` objects out of text.

    Characters between objects (whitespace, ``[``, ``,``, ``]``) are dropped.
    Braces inside string literals are ignored. A truncated object never
    closes, so everything after it piles up in ``pending``; ``flush`` digs the
    complete objects back out of that buffer.
    """

    def __init__(self) -> None:
        self._buffer: list[str] = []
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def feed(self, text: str) -> list[str]:
        objects: list[str] = []
        for char in text:
            if self._depth == 0:
                if char == "{":
                    self._depth = 1
                    self._buffer = [char]
                continue

            self._buffer.append(char)
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
                continue

            if char == '"':
                self._in_string = True
            elif char == "{":
                self._depth += 1
            elif char == "}":
                self._depth -= 1
                if self._depth == 0:
                    objects.append("".join(self._buffer))
                    self._buffer = []
        return objects

    def flush(self) -> list[str]:
        """Return the complete objects trapped behind an unterminated one."""
        pending = self.pending
        self._buffer = []
        self._depth = 0
        self._in_string = False
        self._escaped = False
        return salvage_objects(pending)

    @property
    def pending(self) -> str:
        return "".join(self._buffer)


def salvage_objects(raw: str) -> list[str]:
    """Complete objects found in *raw* once its own opening brace is dropped."""
    if len(raw) < 2:
        return []
    splitter = JsonObjectSplitter()
    return splitter.feed(raw[1:]) + splitter.flush()


def _decode_frame(raw: str) -> list[dict[str, Any]]:
    try:
        event = json.loads(raw)
    except json.JSONDecodeError:
        log.debug("Skipping malformed JSON frame: %.80s", raw)
        return [event for inner in salvage_objects(raw) for event in _decode_frame(inner)]
    return [event] if isinstance(event, dict) else []


async def iter_json_objects(chunks: AsyncIterator[str]) -> AsyncGenerator[dict[str, Any], None]:
    splitter = JsonObjectSplitter()
    async for chunk in chunks:
        for raw in splitter.feed(chunk):
            for event in _decode_frame(raw):
                yield event
    if splitter.pending.strip():
        log.debug("Recovering from unterminated JSON frame: %.80s", splitter.pending)
        for raw in splitter.flush():
            for event in _decode_frame(raw):
                yield event
