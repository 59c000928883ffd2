"""Chat endpoint schemas."""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChatModelId = Literal["chat-model", "chat-model-reasoning"]
VisibilityType = Literal["public", "private"]


class TextPartIn(BaseModel):
    """Plain text segment of an inbound message."""

    type: Literal["text"]
    text: str = Field(..., min_length=1, max_length=2000)


class FilePartIn(BaseModel):
    """Attachment segment of an inbound message (images only)."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["file"]
    media_type: Literal["image/jpeg", "image/png"] = Field(..., alias="mediaType")
    name: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)


MessagePartIn = Annotated[Union[TextPartIn, FilePartIn], Field(discriminator="type")]


class InboundMessage(BaseModel):
    """The new user message carried by a chat request."""

    id: UUID
    role: Literal["user"]
    parts: list[MessagePartIn] = Field(..., min_length=1)


class PostRequestBody(BaseModel):
    """Body of ``POST /api/chat``.

    Args:
        id: Chat identifier (new chats are created on first message)
        message: The new user message
        selected_chat_model: Client-facing chat model id
        selected_visibility_type: Visibility applied when the chat is created
    """

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    message: InboundMessage
    selected_chat_model: ChatModelId = Field(..., alias="selectedChatModel")
    selected_visibility_type: VisibilityType = Field(..., alias="selectedVisibilityType")


class ChatMessage(BaseModel):
    """In-memory message handed to generation.

    Parts are kept as plain dicts so persisted tool parts survive untouched.
    """

    id: UUID
    role: Literal["user", "assistant", "system"]
    parts: list[dict[str, Any]]
    created_at: Optional[datetime] = None

    def first_text(self) -> str:
        """Return the text of the first text part, or an empty string."""
        for part in self.parts:
            if part.get("type") == "text":
                return str(part.get("text") or "")
        return ""


class ChatOut(BaseModel):
    """Serialized chat session."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    user_id: UUID
    visibility: VisibilityType
    created_at: Optional[datetime] = None

    @field_validator("visibility", mode="before")
    @classmethod
    def _enum_to_value(cls, value: Any) -> Any:
        return getattr(value, "value", value)


class ChatUsage(BaseModel):
    """Token usage for a chat generation.

    Args:
        input_tokens: Number of tokens in the input
        output_tokens: Number of tokens generated in the response
        model: Model identifier used for generation
    """

    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


class StreamChunk(BaseModel):
    """Server-Sent Events stream chunk for chat streaming.

    Args:
        type: Chunk type - "start", "content" (text delta), "reasoning",
            "tool_call", "tool_result", "data", "usage", "error", "done"
        content: Text content for content/reasoning chunks, error text for error chunks
        chat_id: Chat ID (start chunk only)
        message_id: ID of the assistant message being generated (start chunk only)
        stream_id: Resumable stream handle (start chunk only)
        usage: Token usage statistics (usage chunk only)
        tool_name: Name of the tool being called (tool_call chunks)
        tool_args: Arguments passed to the tool (tool_call chunks)
        tool_call_id: Unique identifier for a tool call/result pair
        tool_result_content: Result returned by the tool (tool_result chunks)
        data: Structured payload emitted by tools (data chunks)
    """

    type: str  # "start", "content", "reasoning", "tool_call", "tool_result", "data", "usage", "error", "done"
    content: str = ""
    chat_id: Optional[UUID] = None
    message_id: Optional[UUID] = None
    stream_id: Optional[UUID] = None
    usage: Optional[ChatUsage] = None
    tool_name: Optional[str] = None
    tool_args: Optional[dict] = None
    tool_call_id: Optional[str] = None
    tool_result_content: Optional[Any] = None
    data: Optional[dict] = None
