"""aibridge: one chat interface over OpenAI, Claude and Gemini."""

from aibridge.core.config import DEFAULT_MODELS, Settings, get_settings
from aibridge.core.errors import AIClientError, APIError, APIKeyNotConfiguredError, TransportError
from aibridge.core.keys import is_valid_api_key, requires_api_key
from aibridge.models.enums import AIProvider, ClientState, FinishReason, MessageRole, StreamEventType
from aibridge.schemas.config import AIConfig, resolve_config
from aibridge.schemas.images import ImageGenerationRequest, ImageGenerationResponse
from aibridge.services.ai_client import AIClient
from aibridge.services.provider_service import create_adapter
from aibridge.services.providers_base import (
    ChatMessage,
    ChatResponse,
    StreamCallbacks,
    StreamChunk,
    TokenUsage,
)

__version__ = "0.1.0"

__all__ = [
    "AIClient",
    "AIClientError",
    "AIConfig",
    "AIProvider",
    "APIError",
    "APIKeyNotConfiguredError",
    "ChatMessage",
    "ChatResponse",
    "ClientState",
    "DEFAULT_MODELS",
    "FinishReason",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "MessageRole",
    "Settings",
    "StreamCallbacks",
    "StreamChunk",
    "StreamEventType",
    "TokenUsage",
    "TransportError",
    "create_adapter",
    "get_settings",
    "is_valid_api_key",
    "requires_api_key",
    "resolve_config",
]
