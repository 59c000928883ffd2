"""Chat agent construction and optional Logfire instrumentation."""

import logging
from typing import Any

from pydantic_ai import Agent

from autochat.dependencies import ChatDependencies
from autochat.routing import GenerationPlan
from autochat.settings import Settings
from autochat.tools.registry import get_tools

logger = logging.getLogger(__name__)

_logfire_configured: bool = False


def configure_logfire(settings: Settings) -> None:
    """Configure Logfire if token is present (one-time)."""
    global _logfire_configured
    if _logfire_configured:
        return

    if settings.logfire_token:
        try:
            import logfire

            logfire.configure(
                token=settings.logfire_token,
                send_to_logfire="if-token-present",
                service_name=settings.logfire_service_name,
                environment=settings.logfire_environment,
                console=logfire.ConsoleOptions(show_project_link=False),
            )

            # Instrument Pydantic AI
            logfire.instrument_pydantic_ai()

            # Instrument outbound HTTP (LLM providers and the automation agent)
            logfire.instrument_httpx(capture_all=True)

            logger.info(f"logfire_enabled: service={settings.logfire_service_name}")
        except Exception as e:
            logger.warning(f"logfire_initialization_failed: {str(e)}")
    else:
        logger.info("logfire_disabled: token not provided")

    _logfire_configured = True


def build_chat_agent(model: Any, plan: GenerationPlan) -> Agent[ChatDependencies, str]:
    """
    Create an agent for one generation plan.

    The plan's system prompt is passed as instructions so it applies even
    when the run starts from existing message history.

    Args:
        model: pydantic-ai model (or model name) to generate with
        plan: Routing decision carrying the prompt and active tools

    Returns:
        Agent with only the plan's tools registered
    """
    return Agent(
        model,
        deps_type=ChatDependencies,
        instructions=plan.system_prompt,
        tools=get_tools(plan.active_tools),
    )
