"""Request and response schemas for the chat API."""

from autochat.api.schemas.chat import (
    ChatMessage,
    ChatOut,
    ChatUsage,
    PostRequestBody,
    StreamChunk,
)
from autochat.api.schemas.common import ErrorResponse, HealthResponse, ServiceStatus

__all__ = [
    "ChatMessage",
    "ChatOut",
    "ChatUsage",
    "ErrorResponse",
    "HealthResponse",
    "PostRequestBody",
    "ServiceStatus",
    "StreamChunk",
]
