"""ORM models for database tables."""

from autochat.db.models.chat import (
    ChatORM,
    MessageORM,
    MessageRoleEnum,
    StreamORM,
    VisibilityEnum,
)
from autochat.db.models.document import DocumentKindEnum, DocumentORM, SuggestionORM

__all__ = [
    "ChatORM",
    "DocumentKindEnum",
    "DocumentORM",
    "MessageORM",
    "MessageRoleEnum",
    "StreamORM",
    "SuggestionORM",
    "VisibilityEnum",
]
