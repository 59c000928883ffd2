"""Chat tools and the registry that exposes them to generation."""

from autochat.tools.registry import ALL_TOOL_NAMES, TOOL_REGISTRY, WEB_AUTOMATION, get_tools
from autochat.tools.result import ToolInvocationResult

__all__ = [
    "ALL_TOOL_NAMES",
    "TOOL_REGISTRY",
    "ToolInvocationResult",
    "WEB_AUTOMATION",
    "get_tools",
]
