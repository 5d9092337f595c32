"""Scene authoring tools for Claude: package barrel exports."""

from .context import ToolContext
from .definitions import get_tool_definitions
from .registry import ToolHandler, ToolRegistry, build_tool_registry

__all__ = [
    "ToolContext",
    "ToolHandler",
    "ToolRegistry",
    "build_tool_registry",
    "get_tool_definitions",
]
