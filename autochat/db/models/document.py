"""Document and Suggestion ORM models written by the document tools."""

import enum
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKeyConstraint,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from autochat.db.base import Base, CreatedAtMixin, UUIDMixin


class DocumentKindEnum(str, enum.Enum):
    """Kind of document an assistant can draft.

    Maps to the ``document_kind`` PostgreSQL enum type.
    """

    TEXT = "text"
    CODE = "code"
    SHEET = "sheet"


class DocumentORM(Base):
    """One version of a document.

    Versions share ``id`` and differ by ``created_at``.
    Maps to the ``document`` table.
    """

    __tablename__ = "document"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), primary_key=True, server_default=func.now()
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column(
        Enum(
            DocumentKindEnum,
            name="document_kind",
            native_enum=True,
            create_constraint=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        server_default=text("'text'"),
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)


class SuggestionORM(Base, UUIDMixin, CreatedAtMixin):
    """An edit suggestion attached to a document version.

    Maps to the ``suggestion`` table.
    """

    __tablename__ = "suggestion"
    __table_args__ = (
        ForeignKeyConstraint(
            ["document_id", "document_created_at"],
            ["document.id", "document.created_at"],
            ondelete="CASCADE",
        ),
    )

    document_id: Mapped[UUID] = mapped_column(nullable=False)
    document_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    original_text: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_text: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_resolved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False)
