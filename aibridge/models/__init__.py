from aibridge.models.enums import (
    AIProvider,
    ClientState,
    FinishReason,
    MessageRole,
    StreamEventType,
    StreamFraming,
)

__all__ = [
    "AIProvider",
    "ClientState",
    "FinishReason",
    "MessageRole",
    "StreamEventType",
    "StreamFraming",
]
