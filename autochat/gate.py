"""Pre-stream checks for chat requests.

Everything here runs before any generation starts, and every failure is a
ChatError with a fixed status code.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request
from pydantic import ValidationError
from pydantic_ai import Agent

from autochat.api.schemas.chat import InboundMessage, PostRequestBody
from autochat.auth.dependencies import SessionUser
from autochat.db.models.chat import ChatORM
from autochat.db.repositories.chat_repo import ChatRepository
from autochat.entitlements import QUOTA_WINDOW_HOURS, get_entitlements
from autochat.errors import ChatError
from autochat.prompts import TITLE_PROMPT, RequestHints

logger = logging.getLogger(__name__)

_TITLE_MAX_LENGTH: int = 80


@dataclass
class AdmittedRequest:
    """Outcome of a request that passed every check.

    Attributes:
        body: Validated request body.
        user: Authenticated caller.
        chat: Existing or newly created chat owned by the caller.
        is_new_chat: Whether the chat was created by this request.
    """

    body: PostRequestBody
    user: SessionUser
    chat: ChatORM
    is_new_chat: bool


async def parse_request_body(request: Request) -> PostRequestBody:
    """
    Read and validate the POST body.

    Raises:
        ChatError: bad_request:api for invalid JSON or a wrong shape
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise ChatError("bad_request:api", cause="Request body is not valid JSON") from e

    try:
        return PostRequestBody.model_validate(payload)
    except ValidationError as e:
        logger.info("request_body_invalid: errors=%d", e.error_count())
        raise ChatError("bad_request:api", cause=str(e.errors()[0].get("msg"))) from e


def get_request_hints(request: Request) -> RequestHints:
    """Read geolocation hints set by the edge network, when present."""
    headers = request.headers
    return RequestHints(
        longitude=headers.get("x-vercel-ip-longitude"),
        latitude=headers.get("x-vercel-ip-latitude"),
        city=headers.get("x-vercel-ip-city"),
        country=headers.get("x-vercel-ip-country") or headers.get("cf-ipcountry"),
    )


def fallback_title(text: str) -> str:
    """Title from the message text alone: first sentence or a hard truncation."""
    clean = " ".join(text.split())
    if not clean:
        return "New chat"
    if len(clean) <= _TITLE_MAX_LENGTH:
        return clean

    for sep in (".", "?", "!"):
        idx = clean.find(sep, 0, _TITLE_MAX_LENGTH)
        if idx > 0:
            return clean[: idx + 1]

    return clean[: _TITLE_MAX_LENGTH - 3] + "..."


async def generate_title_from_user_message(
    message: InboundMessage,
    title_model: Optional[Any],
) -> str:
    """
    Ask the title model for a short chat title.

    Best-effort: any model failure falls back to a truncation of the text.

    Args:
        message: First user message of the chat
        title_model: Model to use, or None to skip the model call

    Returns:
        Title of at most 80 characters
    """
    text = " ".join(part.text for part in message.parts if part.type == "text")
    if title_model is None:
        return fallback_title(text)

    try:
        agent = Agent(title_model, instructions=TITLE_PROMPT)
        result = await agent.run(json.dumps(message.model_dump(mode="json", by_alias=True)))
        title = result.output.strip().strip('"')
        if title:
            return title[:_TITLE_MAX_LENGTH]
    except Exception as e:
        logger.warning("title_generation_failed: error=%s", str(e))
    return fallback_title(text)


async def admit_chat_request(
    request: Request,
    *,
    user: Optional[SessionUser],
    repository: ChatRepository,
    title_model: Optional[Any] = None,
) -> AdmittedRequest:
    """
    Validate, authenticate, enforce the quota, and resolve the chat.

    A new chat is created (flushed, not committed) when the id is unknown.

    Args:
        request: Incoming request
        user: Caller resolved from the session, or None
        repository: Chat persistence bound to the request session
        title_model: Model used to title new chats

    Returns:
        AdmittedRequest for the generation stage

    Raises:
        ChatError: bad_request:api, unauthorized:chat, rate_limit:chat, forbidden:chat
    """
    # ----- Step 1: Shape -----
    body = await parse_request_body(request)

    # ----- Step 2: Identity -----
    if user is None:
        raise ChatError("unauthorized:chat")

    # ----- Step 3: Quota -----
    entitlements = get_entitlements(user.user_type)
    message_count = await repository.get_message_count_by_user_id(
        user.user_id, difference_in_hours=QUOTA_WINDOW_HOURS
    )
    if message_count >= entitlements.max_messages_per_day:
        logger.info(
            "rate_limited: user_id=%s, user_type=%s, count=%d, limit=%d",
            user.user_id,
            user.user_type,
            message_count,
            entitlements.max_messages_per_day,
        )
        raise ChatError("rate_limit:chat")

    # ----- Step 4: Ownership -----
    chat = await repository.get_chat_by_id(body.id)
    is_new_chat = chat is None
    if chat is None:
        title = await generate_title_from_user_message(body.message, title_model)
        chat = await repository.save_chat(
            id=body.id,
            user_id=user.user_id,
            title=title,
            visibility=body.selected_visibility_type,
        )
    elif chat.user_id != user.user_id:
        logger.warning(
            "chat_forbidden: chat_id=%s, owner_id=%s, user_id=%s",
            chat.id,
            chat.user_id,
            user.user_id,
        )
        raise ChatError("forbidden:chat")

    return AdmittedRequest(body=body, user=user, chat=chat, is_new_chat=is_new_chat)
