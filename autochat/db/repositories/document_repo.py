"""Document and suggestion persistence used by the document tools."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autochat.db.models.document import DocumentORM, SuggestionORM

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Versioned documents and their suggestions.

    Args:
        session: AsyncSession for database operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_document(
        self,
        id: UUID,
        title: str,
        kind: str,
        content: str,
        user_id: UUID,
    ) -> DocumentORM:
        """Store a new version of a document."""
        document = DocumentORM(
            id=id,
            title=title,
            kind=kind,
            content=content,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(document)
        await self._session.flush()
        logger.info("document_saved: document_id=%s, kind=%s, length=%d", id, kind, len(content))
        return document

    async def get_document_by_id(self, id: UUID) -> Optional[DocumentORM]:
        """Get the latest version of a document."""
        stmt = (
            select(DocumentORM)
            .where(DocumentORM.id == id)
            .order_by(DocumentORM.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_suggestions(self, suggestions: Sequence[SuggestionORM]) -> None:
        """Store a batch of suggestions."""
        self._session.add_all(list(suggestions))
        await self._session.flush()
        logger.info("suggestions_saved: count=%d", len(suggestions))
