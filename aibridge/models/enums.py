from enum import Enum


class AIProvider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    LOCAL = "local"
    FALLBACK = "fallback"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"


class StreamEventType(str, Enum):
    TOKEN = "token"
    COMPLETE = "complete"
    ERROR = "error"


class StreamFraming(str, Enum):
    SSE = "sse"
    JSON_OBJECTS = "json_objects"


class ClientState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED_NO_KEY = "configured-no-key"
    CONFIGURED_VALID = "configured-valid"
