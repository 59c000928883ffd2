"""Fixtures for chat tool tests."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import httpx
import pytest

from autochat.dependencies import ChatDependencies
from autochat.settings import Settings


@dataclass
class MockContext:
    """Mock RunContext carrying only the dependencies tools read."""

    deps: ChatDependencies


@pytest.fixture
def chat_id() -> UUID:
    return uuid4()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def emitted() -> list:
    """Chunks pushed to the client stream by the tool under test."""
    return []


@pytest.fixture
def deps(
    settings: Settings,
    http_client: httpx.AsyncClient,
    chat_id: UUID,
    user_id: UUID,
    emitted: list,
) -> ChatDependencies:
    return ChatDependencies(
        chat_id=chat_id,
        settings=settings,
        http_client=http_client,
        user_id=user_id,
        emit=emitted.append,
    )


@pytest.fixture
def ctx(deps: ChatDependencies) -> MockContext:
    return MockContext(deps=deps)
