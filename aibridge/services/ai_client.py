"""Client facade: the single entry point consumers call.

``AIClient`` owns one configuration and at most one active adapter. Each
instance is independent; there is no module-level client.

State machine (driven only by ``configure``)::

    unconfigured --configure--> configured-no-key   (key required, key unusable)
                 --configure--> configured-valid    (key usable, or no key needed)

Calls in ``configured-no-key`` (or before any ``configure``) raise
``APIKeyNotConfiguredError`` without touching the network. Nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from aibridge.core.config import Settings, get_settings
from aibridge.core.errors import APIKeyNotConfiguredError
from aibridge.core.keys import is_valid_api_key, mask_api_key, requires_api_key
from aibridge.core.observable import ObservableValue
from aibridge.models.enums import AIProvider, ClientState, MessageRole, StreamEventType
from aibridge.schemas.config import AIConfig, resolve_config
from aibridge.schemas.images import ImageGenerationRequest, ImageGenerationResponse
from aibridge.services.http_transport import ProviderHttp
from aibridge.services.provider_service import create_adapter
from aibridge.services.providers_base import (
    ChatAdapter,
    ChatMessage,
    ChatResponse,
    StreamCallbacks,
    StreamChunk,
    invoke_callback,
)

log = logging.getLogger(__name__)


class AIClient:
    """Unified chat/stream/image client over the configured provider.

    Observable state for UI binding:

    ``loading``
        ``True`` while at least one request started by this client is in
        flight.
    ``errors``
        The most recent failure, cleared to ``None`` when a request starts.
    ``api_key_missing``
        ``True`` when the current provider needs a key and has none usable.
    """

    def __init__(
        self,
        config: AIConfig | None = None,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._config: AIConfig | None = None
        self._adapter: ChatAdapter | None = None
        self._in_flight = 0

        self.loading: ObservableValue[bool] = ObservableValue(False)
        self.errors: ObservableValue[Exception | None] = ObservableValue(None)
        self.api_key_missing: ObservableValue[bool] = ObservableValue(True)

        if config is not None:
            self.configure(config)

    # -- configuration ------------------------------------------------------

    def configure(self, config: AIConfig) -> None:
        """Replace the configuration and adapter wholesale."""
        resolved = resolve_config(config, self._settings)
        self._config = resolved
        self._adapter = create_adapter(resolved, self._settings, self._transport)
        self.api_key_missing.set(requires_api_key(resolved.provider) and not is_valid_api_key(resolved.api_key))
        log.info(
            "Configured %s (model=%s, key=%s, state=%s)",
            resolved.provider.value,
            resolved.model,
            mask_api_key(resolved.api_key),
            self.state.value,
        )

    def get_config(self) -> AIConfig | None:
        return self._config

    @property
    def state(self) -> ClientState:
        if self._config is None:
            return ClientState.UNCONFIGURED
        if self._adapter is None:
            return ClientState.CONFIGURED_NO_KEY
        return ClientState.CONFIGURED_VALID

    def is_configured(self) -> bool:
        return self._adapter is not None

    def has_valid_api_key(self) -> bool:
        if self._config is None:
            return False
        if not requires_api_key(self._config.provider):
            return True
        return is_valid_api_key(self._config.api_key)

    def get_current_provider(self) -> AIProvider | None:
        return self._config.provider if self._config else None

    def _ensure_adapter(self) -> ChatAdapter:
        if self._adapter is not None and self.has_valid_api_key():
            return self._adapter
        provider = self._config.provider if self._config else AIProvider.OPENAI
        raise APIKeyNotConfiguredError(provider)

    # -- loading / error bookkeeping -----------------------------------------

    def _begin(self) -> None:
        self._in_flight += 1
        self.errors.set(None)
        if self._in_flight == 1:
            self.loading.set(True)

    def _end(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self.loading.set(False)

    # -- chat ---------------------------------------------------------------

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        adapter = self._ensure_adapter()
        self._begin()
        try:
            return await adapter.chat(list(messages))
        except Exception as exc:
            self.errors.set(exc)
            raise
        finally:
            self._end()

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncGenerator[StreamChunk, None]:
        """Yield token chunks, then one ``complete`` or ``error`` chunk.

        The key check happens on the first iteration and raises
        ``APIKeyNotConfiguredError`` instead of yielding.
        """
        adapter = self._ensure_adapter()
        self._begin()
        try:
            async with aclosing(adapter.stream(list(messages))) as chunks:
                async for chunk in chunks:
                    if chunk.type is StreamEventType.ERROR:
                        self.errors.set(chunk.error)
                    yield chunk
        finally:
            self._end()

    async def chat_stream(self, messages: Sequence[ChatMessage], callbacks: StreamCallbacks) -> None:
        """Stream into *callbacks*.

        A missing key is reported through ``on_error`` and also raised. All
        other failures arrive only through ``on_error``.
        """
        try:
            adapter = self._ensure_adapter()
        except APIKeyNotConfiguredError as exc:
            await invoke_callback(callbacks.on_error, exc)
            raise

        self._begin()
        finished = False

        def finish() -> None:
            nonlocal finished
            if not finished:
                finished = True
                self._end()

        async def on_complete(text: str) -> None:
            finish()
            await invoke_callback(callbacks.on_complete, text)

        async def on_error(error: Exception) -> None:
            finish()
            self.errors.set(error)
            await invoke_callback(callbacks.on_error, error)

        try:
            await adapter.chat_stream(list(messages), StreamCallbacks(callbacks.on_token, on_complete, on_error))
        finally:
            finish()

    async def ask(self, message: str, system_prompt: str | None = None) -> str:
        messages: list[ChatMessage] = []
        if system_prompt:
            messages.append(ChatMessage(MessageRole.SYSTEM, system_prompt))
        messages.append(ChatMessage(MessageRole.USER, message))
        response = await self.chat(messages)
        return response.message

    # -- images (OpenAI only) -----------------------------------------------

    def _image_api(self) -> tuple[str, str, ProviderHttp]:
        # Only "a key is present" is checked here, not the full adapter gate.
        if self._config is None or not self._config.api_key:
            raise APIKeyNotConfiguredError(self._config.provider if self._config else AIProvider.OPENAI)
        root = self._settings.openai_base_url
        if self._config.provider is AIProvider.OPENAI and self._config.base_url:
            root = self._config.base_url
        http = ProviderHttp(timeout=self._config.timeout or self._settings.request_timeout_seconds, transport=self._transport)
        return root.rstrip("/"), self._config.api_key, http

    async def _openai_post(self, path: str, body: dict[str, Any], error_prefix: str) -> Any:
        root, api_key, http = self._image_api()
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
        self._begin()
        try:
            return await http.post_json(f"{root}{path}", headers, body, error_prefix=error_prefix)
        except Exception as exc:
            self.errors.set(exc)
            raise
        finally:
            self._end()

    async def generate_image(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        body = {
            "model": self._settings.image_model,
            "prompt": request.prompt,
            "n": request.n,
            "size": request.size,
            "quality": request.quality,
            "response_format": request.response_format,
            "style": request.style,
        }
        data = await self._openai_post("/images/generations", body, "Image generation failed")
        items = data.get("data") or []
        return ImageGenerationResponse(
            images=[item.get("url") or item.get("b64_json") or "" for item in items],
            revised_prompts=[item["revised_prompt"] for item in items if item.get("revised_prompt")],
        )

    async def analyze_image(self, image_base64: str, prompt: str) -> str:
        body = {
            "model": self._settings.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image_base64}},
                    ],
                }
            ],
            "max_tokens": self._settings.vision_max_tokens,
        }
        data = await self._openai_post("/chat/completions", body, "Image analysis failed")
        choices = data.get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""
