"""Unit tests for per-message plan selection."""

import pytest

from autochat.prompts import (
    AUTOMATION_PREAMBLE,
    AUTOMATION_UNAVAILABLE_NOTE,
    RequestHints,
    system_prompt,
)
from autochat.providers import CHAT_MODEL_ID, REASONING_MODEL_ID
from autochat.routing import (
    AUTOMATION_KEYWORDS,
    DEFAULT_MAX_STEPS,
    fallback_plan,
    matches_automation,
    select_plan,
)
from autochat.tools.registry import ALL_TOOL_NAMES, WEB_AUTOMATION

BASE_PROMPT = "You are a friendly assistant!"


class TestMatchesAutomation:
    """Tests for keyword matching."""

    @pytest.mark.parametrize("keyword", AUTOMATION_KEYWORDS)
    def test_every_keyword_matches(self, keyword: str) -> None:
        assert matches_automation(f"please {keyword} for me") is True

    def test_match_is_case_insensitive(self) -> None:
        assert matches_automation("Take a SCREENSHOT of the homepage") is True

    def test_match_is_substring(self) -> None:
        """'web' inside another word still triggers automation."""
        assert matches_automation("My webcam is broken") is True

    def test_no_keyword(self) -> None:
        assert matches_automation("What is the capital of France?") is False

    def test_custom_keywords(self) -> None:
        assert matches_automation("open the portal", keywords=("portal",)) is True
        assert matches_automation("open the website", keywords=("portal",)) is False


class TestSelectPlan:
    """Tests for select_plan()."""

    def test_keyword_selects_automation_plan(self) -> None:
        plan = select_plan("Take a screenshot of example.com", BASE_PROMPT, CHAT_MODEL_ID)

        assert plan.is_automation is True
        assert plan.active_tools == (WEB_AUTOMATION,)
        assert plan.system_prompt == f"{BASE_PROMPT}\n\n{AUTOMATION_PREAMBLE}"
        assert plan.max_steps == DEFAULT_MAX_STEPS

    def test_automation_plan_ignores_selected_model(self) -> None:
        plan = select_plan("navigate to the docs", BASE_PROMPT, REASONING_MODEL_ID)

        assert plan.is_automation is True
        assert plan.active_tools == (WEB_AUTOMATION,)

    def test_no_keyword_selects_standard_plan(self) -> None:
        plan = select_plan("Tell me a joke", BASE_PROMPT, CHAT_MODEL_ID)

        assert plan.is_automation is False
        assert plan.name == "standard"
        assert plan.system_prompt == BASE_PROMPT
        assert plan.active_tools == ALL_TOOL_NAMES
        assert plan.max_steps == DEFAULT_MAX_STEPS

    def test_reasoning_model_gets_no_tools(self) -> None:
        plan = select_plan("Tell me a joke", BASE_PROMPT, REASONING_MODEL_ID)

        assert plan.name == "standard"
        assert plan.active_tools == ()

    @pytest.mark.parametrize("text", [None, ""])
    def test_missing_text_selects_standard_plan(self, text) -> None:
        plan = select_plan(text, BASE_PROMPT, CHAT_MODEL_ID)

        assert plan.is_automation is False


class TestFallbackPlan:
    """Tests for the plan used after an automation failure."""

    def test_fallback_appends_note_and_disables_tools(self) -> None:
        plan = fallback_plan(BASE_PROMPT)

        assert plan.name == "fallback"
        assert plan.is_automation is False
        assert plan.active_tools == ()
        assert plan.system_prompt.startswith(BASE_PROMPT)
        assert plan.system_prompt.endswith(AUTOMATION_UNAVAILABLE_NOTE)


class TestSystemPrompt:
    """Tests for base prompt assembly."""

    def test_reasoning_model_prompt_has_no_document_instructions(self) -> None:
        hints = RequestHints(city="Berlin", country="DE")

        regular = system_prompt(CHAT_MODEL_ID, hints)
        reasoning = system_prompt(REASONING_MODEL_ID, hints)

        assert "city: Berlin" in regular
        assert "city: Berlin" in reasoning
        assert "Documents" in regular
        assert "Documents" not in reasoning
