"""Conversation history assembly.

Persisted messages plus the new inbound message become the ordered context
for generation. The model-facing conversion lives here too.
"""

import logging
from typing import Any, Sequence, Union

from pydantic_ai.messages import (
    ImageUrl,
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserContent,
    UserPromptPart,
)

from autochat.api.schemas.chat import ChatMessage, InboundMessage
from autochat.db.models.chat import MessageORM

logger = logging.getLogger(__name__)

TOOL_PART_PREFIX = "tool-"
OUTPUT_AVAILABLE = "output-available"


def message_from_row(row: MessageORM) -> ChatMessage:
    """Convert a persisted message row to the in-memory representation."""
    return ChatMessage(
        id=row.id,
        role=getattr(row.role, "value", row.role),
        parts=list(row.parts or []),
        created_at=row.created_at,
    )


def message_from_inbound(message: InboundMessage) -> ChatMessage:
    """Convert the validated inbound user message."""
    return ChatMessage(
        id=message.id,
        role=message.role,
        parts=[part.model_dump(by_alias=True) for part in message.parts],
    )


def assemble_history(rows: Sequence[MessageORM], new_message: InboundMessage) -> list[ChatMessage]:
    """
    Build the ordered context: persisted messages as stored, then the new one.

    Args:
        rows: Persisted messages in creation order
        new_message: Inbound user message

    Returns:
        All messages, nothing dropped or reordered
    """
    messages = [message_from_row(row) for row in rows]
    messages.append(message_from_inbound(new_message))
    logger.debug("history_assembled: persisted=%d, total=%d", len(rows), len(messages))
    return messages


def to_user_prompt(message: ChatMessage) -> Union[str, list[UserContent]]:
    """
    Render a user message's parts as pydantic-ai user content.

    Text parts become strings and image file parts become ImageUrl entries.
    A message with a single text part collapses to a plain string.
    """
    content: list[UserContent] = []
    for part in message.parts:
        part_type = part.get("type")
        if part_type == "text":
            content.append(str(part.get("text") or ""))
        elif part_type == "file" and part.get("url"):
            content.append(ImageUrl(url=str(part["url"])))
    if len(content) == 1 and isinstance(content[0], str):
        return content[0]
    return content


def _assistant_messages(parts: Sequence[dict[str, Any]]) -> list[ModelMessage]:
    out: list[ModelMessage] = []
    response_parts: list[Any] = []

    for part in parts:
        part_type = str(part.get("type") or "")
        if part_type == "text":
            response_parts.append(TextPart(content=str(part.get("text") or "")))
        elif part_type.startswith(TOOL_PART_PREFIX) and part.get("state") == OUTPUT_AVAILABLE:
            tool_name = part_type[len(TOOL_PART_PREFIX) :]
            tool_call_id = str(part.get("toolCallId") or "")
            response_parts.append(
                ToolCallPart(tool_name=tool_name, args=part.get("input") or {}, tool_call_id=tool_call_id)
            )
            out.append(ModelResponse(parts=response_parts))
            response_parts = []
            out.append(
                ModelRequest(
                    parts=[
                        ToolReturnPart(
                            tool_name=tool_name,
                            content=part.get("output"),
                            tool_call_id=tool_call_id,
                        )
                    ]
                )
            )

    if response_parts:
        out.append(ModelResponse(parts=response_parts))
    return out


def to_model_messages(messages: Sequence[ChatMessage]) -> list[ModelMessage]:
    """
    Convert chat messages to pydantic-ai message history.

    Parts the model cannot use (reasoning, unfinished tool calls, unknown
    kinds) are left out of the model view only; the stored messages are
    untouched.

    Args:
        messages: Ordered chat messages

    Returns:
        Equivalent pydantic-ai messages in the same order
    """
    history: list[ModelMessage] = []
    for message in messages:
        if message.role == "user":
            history.append(ModelRequest(parts=[UserPromptPart(content=to_user_prompt(message))]))
        elif message.role == "assistant":
            history.extend(_assistant_messages(message.parts))
        elif message.role == "system":
            text = message.first_text()
            if text:
                history.append(ModelRequest(parts=[SystemPromptPart(content=text)]))
    return history
