"""Document tools: draft, redraft, and review documents shown beside the chat."""

import logging
from typing import Awaitable, Callable, Literal, Optional, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, Field
from pydantic_ai import Agent, RunContext

from autochat.api.schemas.chat import StreamChunk
from autochat.db.models.document import SuggestionORM
from autochat.db.repositories.document_repo import DocumentRepository
from autochat.dependencies import ChatDependencies
from autochat.prompts import PROMPTS_BY_KIND, SUGGESTIONS_PROMPT, update_document_prompt
from autochat.tools.result import ToolInvocationResult

logger = logging.getLogger(__name__)

DocumentKind = Literal["text", "code", "sheet"]

T = TypeVar("T")


class SuggestionDraft(BaseModel):
    """One suggested edit produced by the artifact model."""

    original_sentence: str = Field(..., description="The original sentence")
    suggested_sentence: str = Field(..., description="The suggested sentence")
    description: str = Field(..., description="The description of the suggestion")


def _send_data(deps: ChatDependencies, payload_type: str, content: object) -> None:
    deps.send(StreamChunk(type="data", data={"type": payload_type, "content": content}))


async def _draft(deps: ChatDependencies, instructions: str, prompt: str, kind: str) -> str:
    """Stream a draft from the artifact model, forwarding each delta to the client."""
    agent = Agent(deps.get_artifact_model(), instructions=instructions)
    pieces: list[str] = []
    async with agent.run_stream(prompt) as result:
        async for delta in result.stream_text(delta=True):
            pieces.append(delta)
            _send_data(deps, f"{kind}-delta", delta)
    return "".join(pieces)


async def _with_repository(
    deps: ChatDependencies,
    work: Callable[[DocumentRepository], Awaitable[T]],
) -> Optional[T]:
    """Run work in a fresh committed session; None when storage is unavailable."""
    if deps.session_factory is None:
        logger.warning(f"document_storage_unavailable: chat_id={deps.chat_id}")
        return None
    async with deps.session_factory() as session:
        value = await work(DocumentRepository(session))
        await session.commit()
        return value


async def create_document(
    ctx: RunContext[ChatDependencies],
    title: str,
    kind: DocumentKind,
) -> ToolInvocationResult:
    """
    Create a document for writing or content creation activities. The document
    content is generated from the title and kind.

    Args:
        ctx: Agent runtime context with dependencies
        title: Title of the document
        kind: Kind of document: "text", "code", or "sheet"

    Returns:
        Confirmation with the new document id
    """
    deps = ctx.deps
    if deps.user_id is None:
        return ToolInvocationResult(result="Error: Documents require a signed-in user.", is_error=True)

    document_id = uuid4()
    _send_data(deps, "kind", kind)
    _send_data(deps, "id", str(document_id))
    _send_data(deps, "title", title)
    _send_data(deps, "clear", "")

    content = await _draft(deps, PROMPTS_BY_KIND[kind], title, kind)

    async def _save(repo: DocumentRepository) -> None:
        await repo.save_document(document_id, title, kind, content, deps.user_id)

    await _with_repository(deps, _save)
    _send_data(deps, "finish", "")

    if deps.session_factory is None:
        return ToolInvocationResult(
            result="Error: The document was drafted but could not be saved.", is_error=True
        )

    logger.info(f"create_document: document_id={document_id}, kind={kind}, chars={len(content)}")
    return ToolInvocationResult(
        result=(
            f"A {kind} document titled '{title}' was created with id {document_id} "
            "and is now visible to the user."
        )
    )


async def update_document(
    ctx: RunContext[ChatDependencies],
    id: str,
    description: str,
) -> ToolInvocationResult:
    """
    Update a document with the given description.

    Args:
        ctx: Agent runtime context with dependencies
        id: The id of the document to update
        description: The description of changes that need to be made

    Returns:
        Confirmation, or an error message if the document does not exist
    """
    deps = ctx.deps
    try:
        document_id = UUID(id)
    except ValueError:
        return ToolInvocationResult(result=f"Error: '{id}' is not a valid document id.", is_error=True)

    document = await _with_repository(deps, lambda repo: repo.get_document_by_id(document_id))
    if document is None or document.user_id != deps.user_id:
        return ToolInvocationResult(result="Error: Document not found.", is_error=True)

    kind = str(getattr(document.kind, "value", document.kind))
    _send_data(deps, "clear", document.title)

    content = await _draft(
        deps, update_document_prompt(document.content, kind), description, kind
    )

    async def _save(repo: DocumentRepository) -> None:
        await repo.save_document(document_id, document.title, kind, content, document.user_id)

    await _with_repository(deps, _save)
    _send_data(deps, "finish", "")

    logger.info(f"update_document: document_id={document_id}, chars={len(content)}")
    return ToolInvocationResult(
        result=f"The document '{document.title}' has been updated successfully."
    )


async def request_suggestions(
    ctx: RunContext[ChatDependencies],
    document_id: str,
) -> ToolInvocationResult:
    """
    Request suggestions for a document.

    Args:
        ctx: Agent runtime context with dependencies
        document_id: The id of the document to request edits for

    Returns:
        Confirmation with the number of suggestions added
    """
    deps = ctx.deps
    try:
        parsed_id = UUID(document_id)
    except ValueError:
        return ToolInvocationResult(
            result=f"Error: '{document_id}' is not a valid document id.", is_error=True
        )

    document = await _with_repository(deps, lambda repo: repo.get_document_by_id(parsed_id))
    if document is None or not document.content or document.user_id != deps.user_id:
        return ToolInvocationResult(result="Error: Document not found.", is_error=True)

    agent = Agent(
        deps.get_artifact_model(),
        output_type=list[SuggestionDraft],
        instructions=SUGGESTIONS_PROMPT,
    )
    result = await agent.run(document.content)
    drafts = result.output[:5]

    rows = []
    for draft in drafts:
        row = SuggestionORM(
            id=uuid4(),
            document_id=document.id,
            document_created_at=document.created_at,
            original_text=draft.original_sentence,
            suggested_text=draft.suggested_sentence,
            description=draft.description,
            is_resolved=False,
            user_id=document.user_id,
        )
        rows.append(row)
        _send_data(
            deps,
            "suggestion",
            {
                "id": str(row.id),
                "documentId": str(document.id),
                "originalText": row.original_text,
                "suggestedText": row.suggested_text,
                "description": row.description,
            },
        )

    await _with_repository(deps, lambda repo: repo.save_suggestions(rows))
    _send_data(deps, "finish", "")

    logger.info(f"request_suggestions: document_id={document.id}, count={len(rows)}")
    return ToolInvocationResult(
        result=f"{len(rows)} suggestions have been added to the document '{document.title}'."
    )
