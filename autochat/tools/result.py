"""Uniform return type for chat tools."""

from dataclasses import dataclass


@dataclass
class ToolInvocationResult:
    """Outcome of one tool call.

    Never persisted on its own; it becomes the ``output`` of the tool part
    in the assistant message.

    Attributes:
        result: Text handed back to the model.
        is_error: Whether the tool failed and ``result`` explains why.
    """

    result: str
    is_error: bool = False
