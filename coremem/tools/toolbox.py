"""Dispatch of tool calls issued by the agent."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from coremem.context import AgentContext
from coremem.tools.framework import Tool, ToolResult
from coremem.tools.memory_tools import MEMORY_TOOLS, memory_guidelines

logger = logging.getLogger(__name__)


class Toolbox:
    """The set of tools available to one agent context.

    Args:
        context: Context passed to every tool call.
        tools: Tools to expose. Defaults to the memory tools when the
            context has a memory manager, and to no tools otherwise.
    """

    def __init__(self, context: AgentContext, tools: Optional[Sequence[Tool]] = None):
        self.context = context
        if tools is None:
            tools = MEMORY_TOOLS if context.memory_manager is not None else []
        self.agent_tools: List[Tool] = list(tools)
        self._by_name: Dict[str, Tool] = {t.name: t for t in self.agent_tools}

    def names(self) -> List[str]:
        return [t.name for t in self.agent_tools]

    def schemas(self) -> List[Dict[str, Any]]:
        return [t.schema() for t in self.agent_tools]

    def guidelines(self) -> List[str]:
        return memory_guidelines(self.names())

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Run a tool by name with raw arguments from the model."""
        selected = self._by_name.get(name)
        if selected is None:
            logger.warning("Agent requested unknown tool: %s", name)
            return ToolResult.failure(
                f"❌ Unknown tool: {name}. Available tools: {', '.join(self.names())}",
                "unknown_tool",
            )
        return selected.invoke(self.context, arguments)
