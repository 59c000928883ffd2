"""Tests for generation runs: streaming, persistence, fallback, and delivery."""

import asyncio
import json
from typing import AsyncIterator, Callable, Optional, Union
from uuid import UUID, uuid4

import httpx
import pytest
import respx
from pydantic_ai.messages import ModelMessage, ToolReturnPart
from pydantic_ai.models.function import AgentInfo, DeltaToolCall, DeltaToolCalls, FunctionModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autochat.api.schemas.chat import ChatMessage, StreamChunk
from autochat.cache.resumable_stream import DONE_FRAME, encode_chunks
from autochat.db.repositories.chat_repo import ChatRepository
from autochat.orchestrator import (
    GENERIC_ERROR_TEXT,
    GenerationOrchestrator,
    GenerationRequest,
    GenerationRun,
    GenerationState,
)
from autochat.routing import GenerationPlan, select_plan
from autochat.settings import Settings

BASE_PROMPT = "You are a friendly assistant!"
AGENT_URL = "http://automation.test/api/agents/webAutomationAgent/stream"

StreamFunction = Callable[[list[ModelMessage], AgentInfo], AsyncIterator[Union[str, DeltaToolCalls]]]


async def _hello(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
    yield "Hello"
    yield ", world"


async def _slow_hello(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
    yield "Hello"
    await asyncio.sleep(0.05)
    yield ", world"


def _has_tool_return(messages: list[ModelMessage]) -> bool:
    return any(isinstance(part, ToolReturnPart) for part in messages[-1].parts)


async def _screenshot(
    messages: list[ModelMessage], info: AgentInfo
) -> AsyncIterator[Union[str, DeltaToolCalls]]:
    if _has_tool_return(messages):
        yield "Done."
        return
    yield {
        0: DeltaToolCall(
            name="web-automation",
            json_args='{"instruction": "Take a screenshot of example.com"}',
            tool_call_id="call-1",
        )
    }


@pytest.fixture
async def chat_id(session_factory: async_sessionmaker[AsyncSession]) -> UUID:
    chat_id = uuid4()
    async with session_factory() as session:
        await ChatRepository(session).save_chat(
            id=chat_id, user_id=uuid4(), title="Test", visibility="private"
        )
        await session.commit()
    return chat_id


@pytest.fixture
def make_run(
    settings: Settings,
    http_client: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
    chat_id: UUID,
) -> Callable[..., GenerationRun]:
    def _make(
        stream_function: StreamFunction,
        text: str = "Tell me something",
        plan: Optional[GenerationPlan] = None,
        run_settings: Optional[Settings] = None,
    ) -> GenerationRun:
        model = FunctionModel(stream_function=stream_function)
        orchestrator = GenerationOrchestrator(
            settings=run_settings or settings,
            http_client=http_client,
            model_factory=lambda _model_id: model,
            session_factory=session_factory,
        )
        message = ChatMessage(id=uuid4(), role="user", parts=[{"type": "text", "text": text}])
        return orchestrator.create_run(
            GenerationRequest(
                chat_id=chat_id,
                user_id=uuid4(),
                stream_id=uuid4(),
                selected_chat_model="chat-model",
                base_prompt=BASE_PROMPT,
                plan=plan or select_plan(text, BASE_PROMPT, "chat-model-reasoning"),
                messages=[message],
            )
        )

    return _make


async def _drain(events: AsyncIterator[StreamChunk]) -> list[StreamChunk]:
    return [chunk async for chunk in events]


async def _assistant_messages(session_factory, chat_id: UUID) -> list:
    async with session_factory() as session:
        rows = await ChatRepository(session).get_messages_by_chat_id(chat_id)
    return [row for row in rows if row.role == "assistant"]


# ---------------------------------------------------------------------------
# Streaming and persistence
# ---------------------------------------------------------------------------


class TestGeneration:
    """Happy-path runs."""

    async def test_events_in_order(self, make_run) -> None:
        run = make_run(_hello)
        events = run.subscribe()
        run.start()

        chunks = await _drain(events)

        assert [c.type for c in chunks] == ["start", "content", "content", "usage", "done"]
        assert "".join(c.content for c in chunks if c.type == "content") == "Hello, world"
        assert chunks[0].message_id == run.request.message_id
        assert chunks[0].stream_id == run.request.stream_id
        assert chunks[3].usage is not None
        assert chunks[3].usage.model.startswith("function:")
        assert run.state == GenerationState.TERMINAL_SUCCESS

    async def test_assistant_message_persisted(self, make_run, session_factory, chat_id) -> None:
        run = make_run(_hello)
        events = run.subscribe()
        run.start()
        await _drain(events)

        saved = await _assistant_messages(session_factory, chat_id)

        assert len(saved) == 1
        assert saved[0].id == run.request.message_id
        assert saved[0].parts == [{"type": "text", "text": "Hello, world"}]

    async def test_persists_after_client_disconnect(
        self, make_run, session_factory, chat_id
    ) -> None:
        run = make_run(_slow_hello)
        events = run.subscribe()
        run.start()

        first = await events.__anext__()
        await events.aclose()

        assert first.type == "start"
        assert run.state == GenerationState.DRAINING

        await run.wait()

        assert run.state == GenerationState.TERMINAL_SUCCESS
        saved = await _assistant_messages(session_factory, chat_id)
        assert saved[0].parts == [{"type": "text", "text": "Hello, world"}]

    async def test_runs_without_subscribers(self, make_run, session_factory, chat_id) -> None:
        run = make_run(_hello)
        run.start()
        await run.wait()

        assert len(await _assistant_messages(session_factory, chat_id)) == 1

    async def test_subscribe_after_start_is_rejected(self, make_run) -> None:
        run = make_run(_hello)
        run.start()

        with pytest.raises(RuntimeError):
            run.subscribe()
        await run.wait()

    async def test_start_is_idempotent(self, make_run) -> None:
        run = make_run(_hello)

        assert run.start() is run.start()
        await run.wait()


# ---------------------------------------------------------------------------
# Tools and the automation plan
# ---------------------------------------------------------------------------


class TestAutomation:
    """Runs on the automation plan."""

    @respx.mock
    async def test_tool_call_streamed_and_persisted(
        self, make_run, session_factory, chat_id, recwarn
    ) -> None:
        respx.post(AGENT_URL).mock(
            return_value=httpx.Response(
                200, content=b'0:"Screenshot saved."\ne:{"finishReason":"stop"}\n'
            )
        )
        run = make_run(_screenshot, text="Take a screenshot of example.com")
        assert run.request.plan.is_automation

        events = run.subscribe()
        run.start()
        chunks = await _drain(events)

        types = [c.type for c in chunks]
        assert types == ["start", "tool_call", "tool_result", "content", "usage", "done"]
        assert chunks[1].tool_name == "web-automation"
        assert chunks[1].tool_args == {"instruction": "Take a screenshot of example.com"}
        assert chunks[2].tool_call_id == "call-1"
        assert chunks[2].tool_result_content == {"result": "Screenshot saved.", "is_error": False}
        assert run.fallback_used is False
        deprecations = [w for w in recwarn if issubclass(w.category, DeprecationWarning)]
        assert not [w for w in deprecations if "result" in str(w.message)]

        saved = await _assistant_messages(session_factory, chat_id)
        tool_part, text_part = saved[0].parts
        assert tool_part["type"] == "tool-web-automation"
        assert tool_part["state"] == "output-available"
        assert tool_part["output"]["result"] == "Screenshot saved."
        assert text_part == {"type": "text", "text": "Done."}

    @respx.mock
    async def test_agent_unavailable_is_a_tool_result(self, make_run) -> None:
        respx.post(AGENT_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
        run = make_run(_screenshot, text="Take a screenshot of example.com")
        events = run.subscribe()
        run.start()

        chunks = await _drain(events)

        result = next(c for c in chunks if c.type == "tool_result")
        assert result.tool_result_content["is_error"] is True
        assert chunks[-1].type == "done"

    async def test_plan_failure_falls_back_once(self, make_run, session_factory, chat_id) -> None:
        seen_tools: list[list[str]] = []

        async def stream(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
            names = [tool.name for tool in info.function_tools]
            seen_tools.append(names)
            if "web-automation" in names:
                raise RuntimeError("automation provider failed")
            yield "Automation is unavailable right now."

        run = make_run(stream, text="Open the website and click login")
        events = run.subscribe()
        run.start()
        chunks = await _drain(events)

        assert run.fallback_used is True
        assert seen_tools == [["web-automation"], []]
        assert "error" not in [c.type for c in chunks]
        assert chunks[-1].type == "done"
        saved = await _assistant_messages(session_factory, chat_id)
        assert saved[0].parts == [{"type": "text", "text": "Automation is unavailable right now."}]

    async def test_standard_plan_failure_does_not_fall_back(
        self, make_run, session_factory, chat_id
    ) -> None:
        calls = []

        async def stream(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
            calls.append(1)
            raise RuntimeError("provider down")
            yield ""  # pragma: no cover

        run = make_run(stream, text="Tell me a joke")
        events = run.subscribe()
        run.start()
        chunks = await _drain(events)

        assert len(calls) == 1
        assert [c.type for c in chunks] == ["start", "error"]
        assert chunks[-1].content == GENERIC_ERROR_TEXT
        assert run.state == GenerationState.TERMINAL_ERROR
        assert await _assistant_messages(session_factory, chat_id) == []

    @respx.mock
    async def test_step_budget_stops_the_run(self, make_run) -> None:
        respx.post(AGENT_URL).mock(return_value=httpx.Response(200, content=b'0:"ok"\n'))

        async def always_call(
            messages: list[ModelMessage], info: AgentInfo
        ) -> AsyncIterator[DeltaToolCalls]:
            yield {
                0: DeltaToolCall(
                    name="web-automation",
                    json_args='{"instruction": "click"}',
                    tool_call_id=f"call-{len(messages)}",
                )
            }

        plan = GenerationPlan(
            name="automation",
            system_prompt=BASE_PROMPT,
            active_tools=("web-automation",),
            max_steps=2,
        )
        run = make_run(always_call, text="click around", plan=plan)
        events = run.subscribe()
        run.start()
        chunks = await _drain(events)

        assert [c.type for c in chunks].count("tool_call") == 2
        assert chunks[-1].type == "done"


# ---------------------------------------------------------------------------
# Timeouts and delivery
# ---------------------------------------------------------------------------


class TestDelivery:
    """Budget and queue behavior."""

    async def test_timeout_emits_error(self, make_run, settings, session_factory, chat_id) -> None:
        async def stalled(messages: list[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
            yield "partial"
            await asyncio.sleep(5)
            yield "never"

        run = make_run(
            stalled,
            run_settings=settings.model_copy(update={"request_timeout_seconds": 0.1}),
        )
        events = run.subscribe()
        run.start()
        chunks = await _drain(events)

        assert chunks[-1].type == "error"
        assert chunks[-1].content == GENERIC_ERROR_TEXT
        assert run.error == "timeout"
        assert await _assistant_messages(session_factory, chat_id) == []

    async def test_full_queue_closes_slow_subscriber_with_error(
        self, make_run, session_factory, chat_id
    ) -> None:
        run = make_run(_hello)
        slow = run.subscribe(maxsize=3)
        durable = run.subscribe(maxsize=0)
        run.start()
        await run.wait()

        slow_chunks = await _drain(slow)
        durable_chunks = await _drain(durable)

        assert [c.type for c in slow_chunks] == ["start", "error"]
        assert slow_chunks[-1].content == GENERIC_ERROR_TEXT
        assert [c.type for c in durable_chunks] == ["start", "content", "content", "usage", "done"]
        assert run.state == GenerationState.TERMINAL_SUCCESS
        saved = await _assistant_messages(session_factory, chat_id)
        assert saved[0].parts == [{"type": "text", "text": "Hello, world"}]

    async def test_direct_delivery_ends_with_error_after_overflow(self, make_run) -> None:
        run = make_run(_hello)
        frames = encode_chunks(run.subscribe(maxsize=3))
        run.start()
        await run.wait()

        received = [frame async for frame in frames]

        payloads = [json.loads(frame[len("data: ") :]) for frame in received[:-1]]
        assert [p["type"] for p in payloads] == ["start", "error"]
        assert received[-1] == DONE_FRAME

    async def test_durable_subscriber_keeps_run_streaming(self, make_run) -> None:
        run = make_run(_slow_hello)
        client = run.subscribe()
        durable = run.subscribe(maxsize=0)
        run.start()

        first = await client.__anext__()
        await client.aclose()

        assert first.type == "start"
        assert run.state == GenerationState.STREAMING

        await run.wait()

        assert run.state == GenerationState.TERMINAL_SUCCESS
        assert [c.type for c in await _drain(durable)][-1] == "done"
