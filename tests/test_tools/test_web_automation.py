"""Unit tests for the web-automation tool."""

import json

import httpx
import pytest
import respx

from autochat.tools.web_automation import EMPTY_RESULT_TEXT, build_instruction, web_automation

AGENT_URL = "http://automation.test/api/agents/webAutomationAgent/stream"


def test_build_instruction() -> None:
    assert build_instruction("Take a screenshot") == "Take a screenshot"
    assert (
        build_instruction("Take a screenshot", "https://example.com")
        == "Take a screenshot on https://example.com"
    )


class TestWebAutomation:
    """Tests for web_automation()."""

    @respx.mock
    async def test_success_returns_decoded_text(self, ctx) -> None:
        respx.post(AGENT_URL).mock(
            return_value=httpx.Response(
                200,
                content=b'0:"Screenshot "\n0:"saved."\ne:{"finishReason":"stop"}\n',
            )
        )

        result = await web_automation(ctx, "Take a screenshot")

        assert result.is_error is False
        assert result.result == "Screenshot saved."

    @respx.mock
    async def test_request_body_and_headers(self, ctx, chat_id, user_id) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["json"] = json.loads(request.content.decode("utf-8"))
            captured["headers"] = request.headers
            return httpx.Response(200, content=b'e:{"finishReason":"stop"}\n')

        respx.post(AGENT_URL).mock(side_effect=handler)

        await web_automation(ctx, "Take a screenshot", url="https://example.com")

        assert captured["json"] == {
            "messages": "Take a screenshot on https://example.com",
            "memory": {"thread": {"id": f"chat-{chat_id}"}, "resource": str(user_id)},
            "temperature": 0.1,
            "maxSteps": 10,
        }
        assert captured["headers"]["x-mastra-dev-playground"] == "true"
        assert captured["headers"]["content-type"] == "application/json"

    @respx.mock
    async def test_anonymous_resource(self, ctx) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["json"] = json.loads(request.content.decode("utf-8"))
            return httpx.Response(200, content=b"")

        respx.post(AGENT_URL).mock(side_effect=handler)
        ctx.deps.user_id = None

        await web_automation(ctx, "click the button")

        assert captured["json"]["memory"]["resource"] == "anonymous"

    @respx.mock
    async def test_empty_output_uses_fixed_text(self, ctx) -> None:
        respx.post(AGENT_URL).mock(
            return_value=httpx.Response(200, content=b'e:{"finishReason":"stop"}\n')
        )

        result = await web_automation(ctx, "Take a screenshot")

        assert result.is_error is False
        assert result.result == EMPTY_RESULT_TEXT

    @respx.mock
    async def test_non_success_status(self, ctx) -> None:
        respx.post(AGENT_URL).mock(return_value=httpx.Response(502, content=b"bad gateway"))

        result = await web_automation(ctx, "Take a screenshot")

        assert result.is_error is True
        assert "HTTP 502 Bad Gateway" in result.result
        assert result.result.startswith("Web automation is currently unavailable.")

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (httpx.ConnectError("Connection refused"), "Connection refused"),
            (httpx.ReadTimeout("read timed out"), "Request timed out"),
        ],
    )
    async def test_transport_errors(self, ctx, error: Exception, expected: str) -> None:
        with respx.mock:
            respx.post(AGENT_URL).mock(side_effect=error)

            result = await web_automation(ctx, "Take a screenshot")

        assert result.is_error is True
        assert expected in result.result

    @respx.mock
    async def test_malformed_lines_are_skipped(self, ctx) -> None:
        respx.post(AGENT_URL).mock(
            return_value=httpx.Response(200, content=b'f:{"messageId":"x"}\n0:"ok"\ngarbage\n')
        )

        result = await web_automation(ctx, "navigate home")

        assert result.result == "ok"
