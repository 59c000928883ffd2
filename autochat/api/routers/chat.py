"""Chat endpoints: streamed generation, deletion, and stream resumption."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from autochat.api.dependencies import (
    get_db,
    get_orchestrator,
    get_stream_manager,
    get_title_model,
)
from autochat.api.schemas.chat import ChatOut
from autochat.auth.dependencies import SessionUser, get_session_user
from autochat.cache.resumable_stream import ResumableStreamManager, encode_chunks
from autochat.db.models.chat import VisibilityEnum
from autochat.db.repositories.chat_repo import ChatRepository
from autochat.errors import ChatError
from autochat.gate import admit_chat_request, get_request_hints
from autochat.history import assemble_history
from autochat.orchestrator import GenerationOrchestrator, GenerationRequest
from autochat.prompts import system_prompt
from autochat.routing import select_plan

logger = logging.getLogger(__name__)

router = APIRouter()

_SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}

# Redis Stream entry id, as sent in the SSE "id:" field
_EVENT_ID_PATTERN = re.compile(r"\d+-\d+")


@router.post(
    "/api/chat",
    summary="Send a message and stream the assistant response via Server-Sent Events",
)
async def post_chat(
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    stream_manager: Optional[ResumableStreamManager] = Depends(get_stream_manager),
    title_model: Optional[Any] = Depends(get_title_model),
) -> StreamingResponse:
    """Send a user message and stream the assistant response.

    Pre-stream failures are JSON errors with their own status codes. Once the
    stream starts the status is 200 and failures arrive as an ``error`` event.

    SSE Event types:
    - {"type": "start", "chat_id": ..., "message_id": ..., "stream_id": ...}
    - {"type": "content", "content": "..."} - Text delta
    - {"type": "reasoning", "content": "..."} - Reasoning delta
    - {"type": "tool_call", "tool_name": ..., "tool_args": ..., "tool_call_id": ...}
    - {"type": "tool_result", "tool_call_id": ..., "tool_result_content": ...}
    - {"type": "data", "data": {...}} - Document drafting payloads
    - {"type": "usage", "usage": {...}}
    - {"type": "error", "content": "Oops, an error occurred!"}
    - {"type": "done"}
    - data: [DONE] - Stream terminator

    Args:
        request: Incoming request carrying the JSON body.
        db: Async database session.
        user: Caller, or None without a valid session.
        orchestrator: Generation orchestrator.
        stream_manager: Resumable stream manager, or None without Redis.
        title_model: Model used to title new chats.

    Returns:
        StreamingResponse with media_type "text/event-stream".
    """
    request_id: Optional[str] = getattr(request.state, "request_id", None)
    repository = ChatRepository(db)

    # ----- Step 1: Validate, authenticate, quota, ownership -----
    admitted = await admit_chat_request(
        request, user=user, repository=repository, title_model=title_model
    )
    body = admitted.body

    # ----- Step 2: History, then persist the new user message -----
    rows = await repository.get_messages_by_chat_id(body.id)
    messages = assemble_history(rows, body.message)
    user_message = messages[-1].model_copy(update={"created_at": datetime.now(timezone.utc)})
    await repository.save_messages(body.id, [user_message])

    # ----- Step 3: Stream handle -----
    stream_id = uuid4()
    await repository.create_stream_id(stream_id, body.id)
    await db.commit()

    logger.info(
        "chat_start: request_id=%s, chat_id=%s, user_id=%s, is_new=%s, history=%d, stream_id=%s",
        request_id,
        body.id,
        admitted.user.user_id,
        admitted.is_new_chat,
        len(messages) - 1,
        stream_id,
    )

    # ----- Step 4: Routing -----
    base_prompt = system_prompt(body.selected_chat_model, get_request_hints(request))
    plan = select_plan(user_message.first_text(), base_prompt, body.selected_chat_model)

    # ----- Step 5: Generation and delivery -----
    run = orchestrator.create_run(
        GenerationRequest(
            chat_id=body.id,
            user_id=admitted.user.user_id,
            stream_id=stream_id,
            selected_chat_model=body.selected_chat_model,
            base_prompt=base_prompt,
            plan=plan,
            messages=messages,
            request_id=request_id,
        )
    )

    frames = None
    if stream_manager is not None:
        frames = await stream_manager.resumable_stream(
            str(stream_id), lambda: run.subscribe(maxsize=0)
        )
    if frames is None:
        frames = encode_chunks(run.subscribe())
    run.start()

    return StreamingResponse(frames, media_type="text/event-stream", headers=_SSE_HEADERS)


@router.delete("/api/chat", response_model=ChatOut)
async def delete_chat(
    id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
) -> ChatOut:
    """Delete a chat owned by the caller.

    Args:
        id: Chat UUID from the query string.
        db: Async database session.
        user: Caller, or None without a valid session.

    Returns:
        The deleted chat.

    Raises:
        ChatError: bad_request:api, unauthorized:chat, not_found:chat, forbidden:chat.
    """
    if not id:
        raise ChatError("bad_request:api", cause="Parameter id is required.")
    try:
        chat_id = UUID(id)
    except ValueError as e:
        raise ChatError("bad_request:api", cause="Parameter id must be a UUID.") from e

    if user is None:
        raise ChatError("unauthorized:chat")

    repository = ChatRepository(db)
    chat = await repository.get_chat_by_id(chat_id)
    if chat is None:
        raise ChatError("not_found:chat")
    if chat.user_id != user.user_id:
        logger.warning(
            "delete_chat_forbidden: chat_id=%s, owner_id=%s, user_id=%s",
            chat_id,
            chat.user_id,
            user.user_id,
        )
        raise ChatError("forbidden:chat")

    deleted = await repository.delete_chat_by_id(chat_id)
    result = ChatOut.model_validate(deleted)
    await db.commit()
    return result


@router.get("/api/chat/{chat_id}/stream", response_model=None)
async def resume_chat_stream(
    chat_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
    stream_manager: Optional[ResumableStreamManager] = Depends(get_stream_manager),
) -> Response:
    """Reattach to the most recent generation stream of a chat.

    Honors the ``Last-Event-ID`` header so only frames after the last one
    the client received are sent. Returns 204 when nothing can be resumed,
    including when streams are not resumable at all (no Redis).

    Args:
        chat_id: Chat UUID.
        request: Incoming request (for Last-Event-ID).
        db: Async database session.
        user: Caller, or None without a valid session.
        stream_manager: Resumable stream manager, or None without Redis.

    Returns:
        StreamingResponse, or an empty 204 response.

    Raises:
        ChatError: bad_request:api, not_found:chat, unauthorized:chat, forbidden:chat.
    """
    last_event_id = request.headers.get("Last-Event-ID")
    if last_event_id is not None and not _EVENT_ID_PATTERN.fullmatch(last_event_id):
        raise ChatError("bad_request:api", cause="Last-Event-ID is not a stream event id.")

    if stream_manager is None:
        return Response(status_code=204)

    repository = ChatRepository(db)
    chat = await repository.get_chat_by_id(chat_id)
    if chat is None:
        raise ChatError("not_found:chat")

    if chat.visibility == VisibilityEnum.PRIVATE:
        if user is None:
            raise ChatError("unauthorized:chat")
        if chat.user_id != user.user_id:
            raise ChatError("forbidden:chat")

    stream_ids = await repository.get_stream_ids_by_chat_id(chat_id)
    if not stream_ids:
        return Response(status_code=204)

    frames = await stream_manager.resume_stream(str(stream_ids[-1]), last_event_id)
    if frames is None:
        return Response(status_code=204)

    return StreamingResponse(frames, media_type="text/event-stream", headers=_SSE_HEADERS)
