"""Chat, Message, and Stream ORM models."""

import enum
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autochat.db.base import Base, CreatedAtMixin, JSONType, UUIDMixin


class VisibilityEnum(str, enum.Enum):
    """Who can read a chat.

    Maps to the ``visibility`` PostgreSQL enum type.
    """

    PRIVATE = "private"
    PUBLIC = "public"


class MessageRoleEnum(str, enum.Enum):
    """Role of a message sender.

    Maps to the ``message_role`` PostgreSQL enum type.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class ChatORM(Base, UUIDMixin, CreatedAtMixin):
    """A chat session owned by one user.

    The owner is fixed at creation. Maps to the ``chat`` table.
    """

    __tablename__ = "chat"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    visibility: Mapped[str] = mapped_column(
        Enum(
            VisibilityEnum,
            name="visibility",
            native_enum=True,
            create_constraint=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        server_default=text("'private'"),
    )

    # Relationships
    messages: Mapped[List["MessageORM"]] = relationship(
        "MessageORM",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    streams: Mapped[List["StreamORM"]] = relationship(
        "StreamORM",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class MessageORM(Base, UUIDMixin):
    """Individual message within a chat.

    Messages are immutable and ordered by ``created_at``.
    Maps to the ``message`` table.
    """

    __tablename__ = "message"
    __table_args__ = (Index("ix_message_chat_id_created_at", "chat_id", "created_at"),)

    chat_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        Enum(
            MessageRoleEnum,
            name="message_role",
            native_enum=True,
            create_constraint=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    parts: Mapped[list] = mapped_column(JSONType, nullable=False)
    attachments: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    chat: Mapped["ChatORM"] = relationship("ChatORM", back_populates="messages")


class StreamORM(Base, UUIDMixin, CreatedAtMixin):
    """Handle of one generation run, keyed by its resumable stream id.

    Maps to the ``stream`` table.
    """

    __tablename__ = "stream"

    chat_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    chat: Mapped["ChatORM"] = relationship("ChatORM", back_populates="streams")
