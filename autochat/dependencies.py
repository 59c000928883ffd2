"""Dependencies injected into the chat agent's run context."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional
from uuid import UUID

import httpx

from autochat.api.schemas.chat import StreamChunk
from autochat.settings import Settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


@dataclass
class ChatDependencies:
    """Per-request context available to every tool.

    Attributes:
        chat_id: Chat the generation belongs to.
        user_id: Caller, or None for anonymous automation calls.
        settings: Application settings.
        http_client: Shared client for outbound HTTP (automation agent, weather).
        session_factory: Opens database sessions independent of the request.
        emit: Pushes an extra event to the client stream (document drafting).
        artifact_model: Model override for document tools; resolved from
            settings when None.
    """

    chat_id: UUID
    settings: Settings
    http_client: httpx.AsyncClient
    user_id: Optional[UUID] = None
    session_factory: Optional["async_sessionmaker[AsyncSession]"] = None
    emit: Optional[Callable[[StreamChunk], None]] = None
    artifact_model: Optional[Any] = None

    def send(self, chunk: StreamChunk) -> None:
        """Emit a chunk if a sink is attached; otherwise drop it."""
        if self.emit is not None:
            self.emit(chunk)

    def get_artifact_model(self) -> Any:
        """Return the model used to draft documents."""
        if self.artifact_model is None:
            from autochat.providers import ARTIFACT_MODEL_ID, get_llm_model

            self.artifact_model = get_llm_model(ARTIFACT_MODEL_ID, self.settings)
        return self.artifact_model
