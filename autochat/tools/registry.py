"""Fixed mapping from tool name to its pydantic-ai tool definition."""

from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic_ai import Tool

from autochat.dependencies import ChatDependencies
from autochat.tools.documents import create_document, request_suggestions, update_document
from autochat.tools.weather import get_weather
from autochat.tools.web_automation import web_automation

WEB_AUTOMATION = "web-automation"

TOOL_REGISTRY: Mapping[str, Tool[ChatDependencies]] = MappingProxyType(
    {
        "getWeather": Tool(get_weather, takes_ctx=True, name="getWeather"),
        "createDocument": Tool(create_document, takes_ctx=True, name="createDocument"),
        "updateDocument": Tool(update_document, takes_ctx=True, name="updateDocument"),
        "requestSuggestions": Tool(
            request_suggestions, takes_ctx=True, name="requestSuggestions"
        ),
        WEB_AUTOMATION: Tool(web_automation, takes_ctx=True, name=WEB_AUTOMATION),
    }
)

ALL_TOOL_NAMES: tuple[str, ...] = tuple(TOOL_REGISTRY)


def get_tools(names: Iterable[str]) -> list[Tool[ChatDependencies]]:
    """
    Resolve tool names to tool definitions.

    Args:
        names: Tool names to activate

    Returns:
        Tools in the order requested

    Raises:
        KeyError: If a name is not registered
    """
    return [TOOL_REGISTRY[name] for name in names]
