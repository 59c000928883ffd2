"""Delegation of browser tasks to the remote automation agent."""

import logging
from typing import Optional

import httpx
from pydantic_ai import RunContext

from autochat.dependencies import ChatDependencies
from autochat.tools.result import ToolInvocationResult
from autochat.wire_protocol import decode_agent_stream

logger = logging.getLogger(__name__)

EMPTY_RESULT_TEXT = "Web automation completed successfully."


def _unavailable(reason: str) -> ToolInvocationResult:
    return ToolInvocationResult(
        result=(
            f"Web automation is currently unavailable. Error: {reason}. "
            "Please try again later or contact support."
        ),
        is_error=True,
    )


def build_instruction(instruction: str, url: Optional[str] = None) -> str:
    """Combine the task and optional target URL into one instruction."""
    if url:
        return f"{instruction} on {url}"
    return instruction


async def web_automation(
    ctx: RunContext[ChatDependencies],
    instruction: str,
    url: Optional[str] = None,
) -> ToolInvocationResult:
    """
    Perform web automation tasks like taking screenshots, navigating websites,
    filling forms, and interacting with web pages using a browser.

    Args:
        ctx: Agent runtime context with dependencies
        instruction: What to do in the browser, in plain language
        url: Page to start from, if the task targets a specific site

    Returns:
        The automation agent's answer, or an explanation if it could not run
    """
    deps = ctx.deps
    settings = deps.settings
    endpoint = (
        f"{settings.automation_api_url.rstrip('/')}"
        f"/api/agents/{settings.automation_agent_name}/stream"
    )
    body = {
        "messages": build_instruction(instruction, url),
        "memory": {
            "thread": {"id": f"chat-{deps.chat_id}"},
            "resource": str(deps.user_id) if deps.user_id else "anonymous",
        },
        "temperature": settings.automation_temperature,
        "maxSteps": settings.automation_max_steps,
    }
    headers = {"Content-Type": "application/json", "x-mastra-dev-playground": "true"}

    logger.info(f"web_automation_start: chat_id={deps.chat_id}, endpoint={endpoint}")
    try:
        async with deps.http_client.stream(
            "POST",
            endpoint,
            json=body,
            headers=headers,
            timeout=settings.automation_timeout_seconds,
        ) as response:
            if not response.is_success:
                logger.warning(
                    f"web_automation_http_error: chat_id={deps.chat_id}, "
                    f"status={response.status_code}"
                )
                return _unavailable(f"HTTP {response.status_code} {response.reason_phrase}")

            decoded = await decode_agent_stream(response.aiter_bytes())

    except httpx.TimeoutException:
        logger.error(f"web_automation_timeout: chat_id={deps.chat_id}, endpoint={endpoint}")
        return _unavailable("Request timed out")
    except httpx.HTTPError as e:
        logger.error(f"web_automation_request_error: chat_id={deps.chat_id}, error={str(e)}")
        return _unavailable(str(e) or type(e).__name__)
    except Exception as e:
        logger.exception(f"web_automation_error: chat_id={deps.chat_id}, error={str(e)}")
        return _unavailable(str(e) or type(e).__name__)

    logger.info(
        f"web_automation_success: chat_id={deps.chat_id}, chars={len(decoded.text)}, "
        f"finished={decoded.finished}"
    )
    return ToolInvocationResult(result=decoded.text or EMPTY_RESULT_TEXT)
