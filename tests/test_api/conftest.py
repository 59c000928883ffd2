"""Shared fixtures for API endpoint tests."""

from typing import AsyncGenerator, AsyncIterator, Callable, Optional
from uuid import UUID, uuid4

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic_ai.messages import ModelMessage
from pydantic_ai.models.function import AgentInfo, FunctionModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autochat.api.app import create_app
from autochat.api.dependencies import (
    get_db,
    get_orchestrator,
    get_settings,
    get_stream_manager,
    get_title_model,
)
from autochat.auth.jwt import create_session_token
from autochat.cache.resumable_stream import ResumableStreamManager
from autochat.orchestrator import GenerationOrchestrator
from autochat.settings import Settings


async def reply_hello(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
    yield "Hello"
    yield " there"


class AppState:
    """Mutable knobs tests use to steer the overridden dependencies."""

    def __init__(self) -> None:
        self.stream_function: Callable = reply_hello
        self.stream_manager: Optional[ResumableStreamManager] = None
        self.model_ids: list[str] = []


@pytest.fixture
def app_state() -> AppState:
    return AppState()


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
    app_state: AppState,
) -> FastAPI:
    """FastAPI app with database, model, and stream dependencies overridden."""
    test_app = create_app()
    test_app.state.session_factory = session_factory
    test_app.state.redis = None

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    def model_factory(model_id: str) -> FunctionModel:
        app_state.model_ids.append(model_id)
        return FunctionModel(stream_function=app_state.stream_function)

    test_app.dependency_overrides[get_settings] = lambda: settings
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_orchestrator] = lambda: GenerationOrchestrator(
        settings=settings,
        http_client=http_client,
        model_factory=model_factory,
        session_factory=session_factory,
    )
    test_app.dependency_overrides[get_stream_manager] = lambda: app_state.stream_manager
    test_app.dependency_overrides[get_title_model] = lambda: None
    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_headers(settings: Settings) -> Callable[..., dict[str, str]]:
    def _make(user_id: UUID, user_type: str = "regular") -> dict[str, str]:
        token = create_session_token(settings, user_id, user_type)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def auth_headers(make_headers, user_id: UUID) -> dict[str, str]:
    return make_headers(user_id)


def _chat_body(
    chat_id: UUID,
    text: str = "Hello!",
    model: str = "chat-model",
    visibility: str = "private",
) -> dict:
    return {
        "id": str(chat_id),
        "message": {
            "id": str(uuid4()),
            "role": "user",
            "parts": [{"type": "text", "text": text}],
        },
        "selectedChatModel": model,
        "selectedVisibilityType": visibility,
    }


@pytest.fixture
def chat_body() -> Callable[..., dict]:
    """Builder for a valid POST /api/chat body."""
    return _chat_body
