"""Repositories wrapping the async SQLAlchemy session."""

from autochat.db.repositories.base import BaseRepository
from autochat.db.repositories.chat_repo import ChatRepository
from autochat.db.repositories.document_repo import DocumentRepository

__all__ = ["BaseRepository", "ChatRepository", "DocumentRepository"]
