"""FastAPI dependency injection for database, settings, and chat collaborators."""

import logging
from functools import partial
from typing import Any, AsyncGenerator, Optional

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from autochat.cache.client import RedisManager
from autochat.cache.resumable_stream import ResumableStreamManager
from autochat.orchestrator import GenerationOrchestrator
from autochat.providers import TITLE_MODEL_ID, get_llm_model
from autochat.settings import Settings, load_settings

logger = logging.getLogger(__name__)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session from app.state.session_factory.

    Args:
        request: FastAPI request object with app.state.session_factory.

    Yields:
        AsyncSession instance closed after the request.

    Raises:
        RuntimeError: If the database was not initialized during lifespan.
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        logger.error("get_db_error: reason=engine_not_initialized")
        raise RuntimeError(
            "Database engine not initialized. Ensure DATABASE_URL is set and app lifespan has run."
        )

    async with session_factory() as session:
        logger.debug("db_session_created: engine=initialized")
        yield session
        logger.debug("db_session_closed: cleanup=complete")


def get_settings(request: Request) -> Settings:
    """
    Get application settings from app.state.settings.

    Falls back to load_settings() when lifespan has not run.

    Args:
        request: FastAPI request object with app.state.

    Returns:
        Settings instance with application configuration.
    """
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        logger.warning(
            "get_settings_fallback: app.state.settings not initialized, loading directly"
        )
        settings = load_settings()
    return settings


def get_redis_manager(request: Request) -> Optional[RedisManager]:
    """Get the Redis manager, or None when Redis is not configured."""
    redis_manager = getattr(request.app.state, "redis", None)
    if redis_manager is None:
        logger.debug("get_redis_manager: redis not configured")
    return redis_manager


def get_stream_manager(request: Request) -> Optional[ResumableStreamManager]:
    """
    Get the resumable stream manager.

    None means streams are delivered directly and cannot be resumed.
    """
    return getattr(request.app.state, "stream_manager", None)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared outbound HTTP client created during lifespan."""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized. Ensure app lifespan has run.")
    return client


def get_orchestrator(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> GenerationOrchestrator:
    """
    Build the generation orchestrator from app-level collaborators.

    Args:
        request: FastAPI request object with app.state.
        settings: Application settings.
        http_client: Shared outbound HTTP client.

    Returns:
        Orchestrator whose runs open their own database sessions.
    """
    return GenerationOrchestrator(
        settings=settings,
        http_client=http_client,
        model_factory=partial(get_llm_model, settings=settings),
        session_factory=getattr(request.app.state, "session_factory", None),
    )


def get_title_model(settings: Settings = Depends(get_settings)) -> Optional[Any]:
    """Model used to title new chats, or None when title generation is disabled."""
    if not settings.feature_flags.enable_title_generation:
        return None
    return get_llm_model(TITLE_MODEL_ID, settings)
