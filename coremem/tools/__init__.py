from .framework import Tool, ToolResult, generate_schema, tool
from .memory_tools import (
    MEMORY_TOOLS,
    memory_append,
    memory_guidelines,
    memory_list,
    memory_prompt,
    memory_replace,
)
from .toolbox import Toolbox

__all__ = [
    "MEMORY_TOOLS",
    "Tool",
    "ToolResult",
    "Toolbox",
    "generate_schema",
    "memory_append",
    "memory_guidelines",
    "memory_list",
    "memory_prompt",
    "memory_replace",
    "tool",
]
