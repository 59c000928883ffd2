"""Generation orchestration.

One producer task per request drives the agent run to completion and fans
normalized StreamChunk events out to subscriber queues. The producer never
awaits a subscriber: a subscriber whose bounded queue fills is cut off with
an error event rather than fed a stream with gaps, and a subscriber that goes
away (client disconnect) just detaches.
Persistence happens in the producer, so it completes with or without a client.
"""

import asyncio
import enum
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Optional
from uuid import UUID, uuid4

import httpx
from pydantic_ai import Agent
from pydantic_ai.messages import (
    FunctionToolCallEvent,
    FunctionToolResultEvent,
    PartDeltaEvent,
    PartStartEvent,
    TextPart,
    TextPartDelta,
    ThinkingPart,
    ThinkingPartDelta,
    ToolReturnPart,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autochat.agent import build_chat_agent
from autochat.api.schemas.chat import ChatMessage, ChatUsage, StreamChunk
from autochat.db.repositories.chat_repo import ChatRepository
from autochat.dependencies import ChatDependencies
from autochat.history import OUTPUT_AVAILABLE, TOOL_PART_PREFIX, to_model_messages, to_user_prompt
from autochat.routing import GenerationPlan, fallback_plan
from autochat.settings import Settings
from autochat.tools.result import ToolInvocationResult

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "Oops, an error occurred!"

# Holds producer tasks until they finish so they are not garbage collected
_background_tasks: set[asyncio.Task] = set()

_END = object()


class GenerationState(str, enum.Enum):
    """Lifecycle of one generation run.

    DRAINING is entered when every subscriber has detached while the model is
    still streaming. The durable Redis pump stays attached until the run ends,
    so with resumable streams a run goes from STREAMING straight to FINALIZING.
    """

    ROUTING = "routing"
    STREAMING = "streaming"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    TERMINAL_SUCCESS = "terminal_success"
    TERMINAL_ERROR = "terminal_error"


@dataclass
class GenerationRequest:
    """Everything the producer needs, resolved before streaming starts.

    Attributes:
        chat_id: Chat being answered.
        user_id: Caller.
        stream_id: StreamHandle recorded for this run.
        selected_chat_model: Client-facing chat model id.
        base_prompt: System prompt before plan-specific additions.
        plan: Routing decision.
        messages: Full ordered context; the last entry is the new user message.
        request_id: Correlation id for logs.
        message_id: Id of the assistant message this run produces.
    """

    chat_id: UUID
    user_id: Optional[UUID]
    stream_id: UUID
    selected_chat_model: str
    base_prompt: str
    plan: GenerationPlan
    messages: list[ChatMessage]
    request_id: Optional[str] = None
    message_id: UUID = field(default_factory=uuid4)


@dataclass
class _Sink:
    queue: asyncio.Queue


def _tool_output(content: Any) -> Any:
    if isinstance(content, ToolInvocationResult):
        return asdict(content)
    return content


class GenerationRun:
    """A single generation with its producer task and subscribers.

    Subscribe first, then ``start()``; events emitted before a subscriber
    attaches are not replayed to it.
    """

    def __init__(
        self,
        request: GenerationRequest,
        *,
        settings: Settings,
        http_client: httpx.AsyncClient,
        model_factory: Callable[[str], Any],
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        artifact_model: Optional[Any] = None,
    ) -> None:
        self.request = request
        self.state = GenerationState.ROUTING
        self.fallback_used = False
        self.error: Optional[str] = None
        self.usage = ChatUsage()
        self._settings = settings
        self._http_client = http_client
        self._model_factory = model_factory
        self._session_factory = session_factory
        self._artifact_model = artifact_model
        self._sinks: list[_Sink] = []
        self._parts: list[dict[str, Any]] = []
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Delivery side
    # ------------------------------------------------------------------

    def subscribe(self, maxsize: Optional[int] = None) -> AsyncIterator[StreamChunk]:
        """
        Attach a consumer.

        Args:
            maxsize: Queue bound; defaults to ``delivery_queue_size``.
                0 means unbounded (used by the durable pump).

        Returns:
            Async iterator over this run's events; closing it detaches.

        Raises:
            RuntimeError: If the run has already started.
        """
        if self._task is not None:
            raise RuntimeError("subscribe() must be called before start()")
        size = self._settings.delivery_queue_size if maxsize is None else maxsize
        # Two slots are held back for the overflow error and the end marker
        sink = _Sink(queue=asyncio.Queue(maxsize=max(size, 3) if size else 0))
        self._sinks.append(sink)
        return self._deliver(sink)

    async def _deliver(self, sink: _Sink) -> AsyncIterator[StreamChunk]:
        try:
            while True:
                item = await sink.queue.get()
                if item is _END:
                    return
                yield item
        finally:
            self._detach(sink)

    def _detach(self, sink: _Sink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)
        if not self._sinks and self.state == GenerationState.STREAMING:
            self.state = GenerationState.DRAINING
            logger.info(
                "generation_draining: request_id=%s, chat_id=%s",
                self.request.request_id,
                self.request.chat_id,
            )

    def _emit(self, chunk: StreamChunk) -> None:
        for sink in list(self._sinks):
            queue = sink.queue
            if queue.maxsize and queue.qsize() >= queue.maxsize - 2:
                logger.warning(
                    "delivery_queue_full: request_id=%s, chat_id=%s, closing subscriber",
                    self.request.request_id,
                    self.request.chat_id,
                )
                queue.put_nowait(StreamChunk(type="error", content=GENERIC_ERROR_TEXT))
                queue.put_nowait(_END)
                self._detach(sink)
                continue
            queue.put_nowait(chunk)

    def _close_sinks(self) -> None:
        for sink in list(self._sinks):
            sink.queue.put_nowait(_END)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Launch the producer task (idempotent)."""
        if self._task is None:
            self._task = asyncio.create_task(
                self._produce(), name=f"generation-{self.request.stream_id}"
            )
            _background_tasks.add(self._task)
            self._task.add_done_callback(_background_tasks.discard)
        return self._task

    async def wait(self) -> None:
        """Wait for the producer to finish without cancelling it."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _produce(self) -> None:
        request = self.request
        logger.info(
            "generation_start: request_id=%s, chat_id=%s, stream_id=%s, plan=%s",
            request.request_id,
            request.chat_id,
            request.stream_id,
            request.plan.name,
        )
        self._emit(
            StreamChunk(
                type="start",
                chat_id=request.chat_id,
                message_id=request.message_id,
                stream_id=request.stream_id,
            )
        )
        try:
            self.state = GenerationState.STREAMING
            await asyncio.wait_for(
                self._generate(), timeout=self._settings.request_timeout_seconds
            )

            self.state = GenerationState.FINALIZING
            await self._finalize()

            self._emit(StreamChunk(type="usage", usage=self.usage))
            self._emit(StreamChunk(type="done"))
            self.state = GenerationState.TERMINAL_SUCCESS
            logger.info(
                "generation_complete: request_id=%s, chat_id=%s, fallback=%s, total_tokens=%d",
                request.request_id,
                request.chat_id,
                self.fallback_used,
                self.usage.input_tokens + self.usage.output_tokens,
            )
        except asyncio.TimeoutError:
            logger.error(
                "generation_timeout: request_id=%s, chat_id=%s, budget_s=%s",
                request.request_id,
                request.chat_id,
                self._settings.request_timeout_seconds,
            )
            self._fail("timeout")
        except Exception as e:
            logger.exception(
                "generation_error: request_id=%s, chat_id=%s, error=%s",
                request.request_id,
                request.chat_id,
                str(e),
            )
            self._fail(str(e))
        finally:
            self._close_sinks()

    def _fail(self, reason: str) -> None:
        self.state = GenerationState.TERMINAL_ERROR
        self.error = reason
        self._emit(StreamChunk(type="error", content=GENERIC_ERROR_TEXT))

    async def _generate(self) -> None:
        plan = self.request.plan
        try:
            await self._run_plan(plan)
        except Exception as e:
            if not plan.is_automation:
                raise
            logger.warning(
                "automation_plan_failed: request_id=%s, chat_id=%s, error=%s, falling_back=standard",
                self.request.request_id,
                self.request.chat_id,
                str(e),
            )
            self.fallback_used = True
            self._parts = []
            await self._run_plan(fallback_plan(self.request.base_prompt))

    async def _run_plan(self, plan: GenerationPlan) -> None:
        request = self.request
        model = self._model_factory(request.selected_chat_model)
        agent = build_chat_agent(model, plan)
        deps = ChatDependencies(
            chat_id=request.chat_id,
            settings=self._settings,
            http_client=self._http_client,
            user_id=request.user_id,
            session_factory=self._session_factory,
            emit=self._emit,
            artifact_model=self._artifact_model,
        )
        history = to_model_messages(request.messages[:-1])
        user_prompt = to_user_prompt(request.messages[-1])

        steps = 0
        async with agent.iter(user_prompt, message_history=history or None, deps=deps) as run:
            async for node in run:
                if Agent.is_model_request_node(node):
                    steps += 1
                    if steps > plan.max_steps:
                        logger.info(
                            "step_budget_reached: request_id=%s, chat_id=%s, max_steps=%d",
                            request.request_id,
                            request.chat_id,
                            plan.max_steps,
                        )
                        break
                    async with node.stream(run.ctx) as request_stream:
                        async for event in request_stream:
                            self._on_model_event(event)
                elif Agent.is_call_tools_node(node):
                    async with node.stream(run.ctx) as tool_stream:
                        async for event in tool_stream:
                            self._on_tool_event(event)
            usage = run.usage()

        self.usage = ChatUsage(
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            model=str(getattr(model, "model_name", model)),
        )

    # ------------------------------------------------------------------
    # Event normalization
    # ------------------------------------------------------------------

    def _append_text(self, kind: str, text: str, new_part: bool = False) -> None:
        if new_part or not self._parts or self._parts[-1]["type"] != kind:
            self._parts.append({"type": kind, "text": ""})
        self._parts[-1]["text"] += text
        if text:
            chunk_type = "content" if kind == "text" else "reasoning"
            self._emit(StreamChunk(type=chunk_type, content=text))

    def _on_model_event(self, event: Any) -> None:
        if isinstance(event, PartStartEvent):
            if isinstance(event.part, TextPart):
                self._append_text("text", event.part.content, new_part=True)
            elif isinstance(event.part, ThinkingPart):
                self._append_text("reasoning", event.part.content, new_part=True)
        elif isinstance(event, PartDeltaEvent):
            delta = event.delta
            if isinstance(delta, TextPartDelta) and delta.content_delta:
                self._append_text("text", delta.content_delta)
            elif isinstance(delta, ThinkingPartDelta) and delta.content_delta:
                self._append_text("reasoning", delta.content_delta)

    def _on_tool_event(self, event: Any) -> None:
        if isinstance(event, FunctionToolCallEvent):
            part = event.part
            args = part.args_as_dict()
            self._parts.append(
                {
                    "type": f"{TOOL_PART_PREFIX}{part.tool_name}",
                    "toolCallId": part.tool_call_id,
                    "input": args,
                    "state": "input-available",
                }
            )
            self._emit(
                StreamChunk(
                    type="tool_call",
                    tool_name=part.tool_name,
                    tool_args=args,
                    tool_call_id=part.tool_call_id,
                )
            )
        elif isinstance(event, FunctionToolResultEvent):
            result = event.part
            if isinstance(result, ToolReturnPart):
                output = _tool_output(result.content)
            else:
                output = asdict(ToolInvocationResult(result=result.model_response(), is_error=True))
            for part in self._parts:
                if part.get("toolCallId") == event.tool_call_id:
                    part["output"] = output
                    part["state"] = OUTPUT_AVAILABLE
            self._emit(
                StreamChunk(
                    type="tool_result",
                    tool_call_id=event.tool_call_id,
                    tool_result_content=output,
                )
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _finalize(self) -> None:
        parts = [
            part
            for part in self._parts
            if not (part["type"] in ("text", "reasoning") and not part["text"])
        ]
        if not parts:
            logger.info(
                "generation_empty: request_id=%s, chat_id=%s",
                self.request.request_id,
                self.request.chat_id,
            )
            return
        if self._session_factory is None:
            logger.warning(
                "generation_not_persisted: request_id=%s, chat_id=%s, reason=no_database",
                self.request.request_id,
                self.request.chat_id,
            )
            return

        message = ChatMessage(
            id=self.request.message_id,
            role="assistant",
            parts=parts,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            await ChatRepository(session).save_messages(self.request.chat_id, [message])
            await session.commit()


class GenerationOrchestrator:
    """Creates generation runs sharing one set of collaborators."""

    def __init__(
        self,
        *,
        settings: Settings,
        http_client: httpx.AsyncClient,
        model_factory: Callable[[str], Any],
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        artifact_model: Optional[Any] = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client
        self._model_factory = model_factory
        self._session_factory = session_factory
        self._artifact_model = artifact_model

    def create_run(self, request: GenerationRequest) -> GenerationRun:
        """Prepare a run; callers subscribe and then call ``start()``."""
        return GenerationRun(
            request,
            settings=self._settings,
            http_client=self._http_client,
            model_factory=self._model_factory,
            session_factory=self._session_factory,
            artifact_model=self._artifact_model,
        )
