"""Per-message choice between the automation-biased and standard generation plans."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from autochat.prompts import AUTOMATION_PREAMBLE, AUTOMATION_UNAVAILABLE_NOTE
from autochat.providers import REASONING_MODEL_ID
from autochat.tools.registry import ALL_TOOL_NAMES, WEB_AUTOMATION

logger = logging.getLogger(__name__)

# Substring triggers for the automation plan. "web" matches many ordinary
# messages; kept as is.
AUTOMATION_KEYWORDS: tuple[str, ...] = (
    "screenshot",
    "navigate",
    "browser",
    "website",
    "web",
    "automation",
    "playwright",
    "fill form",
    "click",
)

DEFAULT_MAX_STEPS = 5

AUTOMATION_PLAN = "automation"
STANDARD_PLAN = "standard"
FALLBACK_PLAN = "fallback"


@dataclass(frozen=True)
class GenerationPlan:
    """System prompt, active tools, and step budget for one generation.

    Attributes:
        name: "automation", "standard", or "fallback".
        system_prompt: Full system prompt for the run.
        active_tools: Names of the tools the model may call.
        max_steps: Maximum model requests in the run.
    """

    name: str
    system_prompt: str
    active_tools: tuple[str, ...]
    max_steps: int = DEFAULT_MAX_STEPS

    @property
    def is_automation(self) -> bool:
        return self.name == AUTOMATION_PLAN


def matches_automation(text: str, keywords: Sequence[str] = AUTOMATION_KEYWORDS) -> bool:
    """Case-insensitive substring match of text against the keywords."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def standard_plan(base_prompt: str, selected_chat_model: str) -> GenerationPlan:
    """All tools, or none for the reasoning model."""
    tools = () if selected_chat_model == REASONING_MODEL_ID else ALL_TOOL_NAMES
    return GenerationPlan(name=STANDARD_PLAN, system_prompt=base_prompt, active_tools=tools)


def fallback_plan(base_prompt: str) -> GenerationPlan:
    """Plan used once when the automation plan fails mid-stream."""
    return GenerationPlan(
        name=FALLBACK_PLAN,
        system_prompt=f"{base_prompt}\n\n{AUTOMATION_UNAVAILABLE_NOTE}",
        active_tools=(),
    )


def select_plan(
    latest_user_text: Optional[str],
    base_prompt: str,
    selected_chat_model: str,
    keywords: Sequence[str] = AUTOMATION_KEYWORDS,
) -> GenerationPlan:
    """
    Pick the generation plan for the latest user message.

    Args:
        latest_user_text: Text of the latest user message's first text part
        base_prompt: System prompt for the selected chat model
        selected_chat_model: Client-facing chat model id
        keywords: Automation trigger keywords

    Returns:
        The automation plan on a keyword hit, else the standard plan
    """
    if latest_user_text and matches_automation(latest_user_text, keywords):
        logger.info("plan_selected: plan=%s, model=%s", AUTOMATION_PLAN, selected_chat_model)
        return GenerationPlan(
            name=AUTOMATION_PLAN,
            system_prompt=f"{base_prompt}\n\n{AUTOMATION_PREAMBLE}",
            active_tools=(WEB_AUTOMATION,),
        )

    plan = standard_plan(base_prompt, selected_chat_model)
    logger.info(
        "plan_selected: plan=%s, model=%s, tools=%d",
        plan.name,
        selected_chat_model,
        len(plan.active_tools),
    )
    return plan
