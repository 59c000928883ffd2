"""FastAPI application factory with async lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from autochat import __version__
from autochat.agent import configure_logfire
from autochat.cache.client import RedisManager
from autochat.cache.resumable_stream import ResumableStreamManager
from autochat.db.engine import get_engine, get_session_factory
from autochat.errors import ChatError
from autochat.settings import load_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    Initializes and stores in app.state:
    - settings
    - database engine and session factory (if database_url is configured)
    - Redis manager and resumable stream manager (if redis_url is configured
      and reachable; otherwise streams are delivered directly)
    - shared outbound httpx client

    Args:
        app: FastAPI application instance.

    Yields:
        None while the application runs.
    """
    settings = load_settings()
    app.state.settings = settings
    logging.getLogger("autochat").setLevel(settings.log_level.upper())
    logger.info("app_startup: initializing resources")

    configure_logfire(settings)

    # Database (required by the chat routes; readiness reports its absence)
    engine: Optional[AsyncEngine] = None
    app.state.session_factory = None
    if settings.database_url:
        try:
            engine = await get_engine(
                database_url=settings.database_url,
                pool_size=settings.database_pool_size,
                pool_overflow=settings.database_pool_overflow,
            )
            app.state.session_factory = get_session_factory(engine)
            logger.info("db_engine_initialized: url=postgresql+asyncpg://...")
        except Exception as e:
            logger.exception(f"db_engine_init_error: error={str(e)}")
    else:
        logger.info("db_engine_skipped: database_url not configured")
    app.state.engine = engine

    # Redis (optional, enables resumable streams)
    redis_manager: Optional[RedisManager] = None
    app.state.redis = None
    app.state.stream_manager = None
    if settings.redis_url and settings.feature_flags.enable_resumable_streams:
        redis_manager = RedisManager(
            redis_url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            socket_timeout=settings.resumable_stream_block_ms / 1000.0 + 5.0,
        )
        if await redis_manager.get_client() is not None:
            app.state.redis = redis_manager
            app.state.stream_manager = ResumableStreamManager(
                redis_manager,
                ttl_seconds=settings.resumable_stream_ttl_seconds,
                block_ms=settings.resumable_stream_block_ms,
            )
            logger.info("resumable_streams_enabled: redis=connected")
        else:
            logger.warning("resumable_streams_disabled: reason=redis_unreachable")
    else:
        logger.info("resumable_streams_disabled: reason=redis_not_configured")

    # Shared outbound HTTP client (automation agent, weather)
    http_client = httpx.AsyncClient(timeout=30.0)
    app.state.http_client = http_client

    logger.info("app_startup_complete: resources initialized")
    yield

    logger.info("app_shutdown: cleaning up resources")

    await http_client.aclose()

    if redis_manager is not None:
        await redis_manager.close()

    if engine is not None:
        try:
            await engine.dispose()
            logger.info("db_engine_disposed: connection pool closed")
        except Exception as e:
            logger.warning(f"db_engine_dispose_error: error={str(e)}")

    logger.info("app_shutdown_complete: all resources cleaned up")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application with lifespan, CORS, routes, and middleware.
    """
    settings = load_settings()

    app = FastAPI(
        title="Autochat API",
        version=__version__,
        description="Streaming chat endpoint with resumable streams and web-automation delegation",
        lifespan=lifespan,
    )

    # Starlette runs middleware LIFO (last registered = first to run).
    # Execution order: CORS -> ErrorHandler -> RequestID -> RequestLogging
    from autochat.api.middleware import (
        RequestIdMiddleware,
        RequestLoggingMiddleware,
        chat_error_handler,
        error_handling_middleware,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.middleware("http")(error_handling_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(ChatError, chat_error_handler)

    from autochat.api.routers import chat_router, health_router

    app.include_router(health_router, tags=["health"])
    app.include_router(chat_router, tags=["chat"])

    logger.info(
        f"app_created: title=Autochat API, version={__version__}, routers=2, "
        "middleware=cors,error_handler,request_id,request_logging"
    )
    return app
