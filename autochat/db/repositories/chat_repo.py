"""Chat, message, and stream persistence."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autochat.api.schemas.chat import ChatMessage
from autochat.db.models.chat import ChatORM, MessageORM, MessageRoleEnum, StreamORM
from autochat.db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ChatRepository(BaseRepository[ChatORM]):
    """Persistence operations consumed by the chat endpoint.

    Args:
        session: AsyncSession for database operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ChatORM)

    async def get_chat_by_id(self, id: UUID) -> Optional[ChatORM]:
        """Get a chat by ID, or None if it does not exist."""
        return await self.get_by_id(id)

    async def save_chat(
        self,
        id: UUID,
        user_id: UUID,
        title: str,
        visibility: str,
    ) -> ChatORM:
        """Create a chat owned by ``user_id``."""
        chat = await self.create(
            id=id,
            user_id=user_id,
            title=title,
            visibility=visibility,
            created_at=datetime.now(timezone.utc),
        )
        logger.info(
            "chat_saved: chat_id=%s, user_id=%s, visibility=%s", chat.id, user_id, visibility
        )
        return chat

    async def get_messages_by_chat_id(self, id: UUID) -> list[MessageORM]:
        """Get all messages of a chat in creation order.

        Args:
            id: Chat UUID.

        Returns:
            Messages ordered by ``created_at`` ascending.
        """
        stmt = (
            select(MessageORM)
            .where(MessageORM.chat_id == id)
            .order_by(MessageORM.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def save_messages(self, chat_id: UUID, messages: Sequence[ChatMessage]) -> None:
        """Append a batch of messages to a chat in one flush.

        Messages without ``created_at`` are stamped with the current time.

        Args:
            chat_id: Owning chat UUID.
            messages: Messages to append, in order.
        """
        now = datetime.now(timezone.utc)
        for message in messages:
            self._session.add(
                MessageORM(
                    id=message.id,
                    chat_id=chat_id,
                    role=message.role,
                    parts=message.parts,
                    attachments=[],
                    created_at=message.created_at or now,
                )
            )
        await self._session.flush()
        logger.info("messages_saved: chat_id=%s, count=%d", chat_id, len(messages))

    async def delete_chat_by_id(self, id: UUID) -> Optional[ChatORM]:
        """Delete a chat together with its messages and streams.

        Args:
            id: Chat UUID.

        Returns:
            The deleted chat, or None if it did not exist.
        """
        chat = await self.get_by_id(id)
        if chat is None:
            return None
        await self._session.delete(chat)
        await self._session.flush()
        logger.info("chat_deleted: chat_id=%s", id)
        return chat

    async def get_message_count_by_user_id(self, id: UUID, difference_in_hours: int) -> int:
        """Count the user's own messages sent within the trailing window.

        Args:
            id: User UUID.
            difference_in_hours: Size of the trailing window.

        Returns:
            Number of user-role messages in chats owned by ``id`` since the cutoff.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(hours=difference_in_hours)
        stmt = (
            select(func.count(MessageORM.id))
            .join(ChatORM, MessageORM.chat_id == ChatORM.id)
            .where(
                ChatORM.user_id == id,
                MessageORM.role == MessageRoleEnum.USER.value,
                MessageORM.created_at >= cutoff,
            )
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def create_stream_id(self, stream_id: UUID, chat_id: UUID) -> None:
        """Record a new stream handle for a chat."""
        self._session.add(
            StreamORM(id=stream_id, chat_id=chat_id, created_at=datetime.now(timezone.utc))
        )
        await self._session.flush()

    async def get_stream_ids_by_chat_id(self, chat_id: UUID) -> list[UUID]:
        """Get stream handles of a chat, oldest first."""
        stmt = (
            select(StreamORM.id)
            .where(StreamORM.chat_id == chat_id)
            .order_by(StreamORM.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
