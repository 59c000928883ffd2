"""Database base classes, mixins, and engine utilities."""

from autochat.db.base import Base, CreatedAtMixin, JSONType, UUIDMixin
from autochat.db.engine import get_engine, get_session_factory

__all__ = [
    "Base",
    "CreatedAtMixin",
    "JSONType",
    "UUIDMixin",
    "get_engine",
    "get_session_factory",
]
