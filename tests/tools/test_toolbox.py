"""
Tests for Toolbox dispatch.
"""

import pytest

from coremem.context import AgentContext
from coremem.tools import MEMORY_TOOLS, Toolbox, ToolResult, tool


@tool
def echo(context: AgentContext, text: str) -> ToolResult:
    """Echo text back.

    Args:
        text: Text to echo
    """
    return ToolResult(text=text)


@pytest.fixture
def context(temp_manager):
    temp_manager.create_block({"label": "tasks", "description": "Work items"})
    return AgentContext(memory_manager=temp_manager)


class TestToolbox:
    """Tests for the Toolbox."""

    def test_memory_tools_by_default(self, context):
        """Test that a context with memory gets the memory tools."""
        toolbox = Toolbox(context)

        assert toolbox.names() == ["memory_list", "memory_append", "memory_replace"]
        assert toolbox.agent_tools == MEMORY_TOOLS

    def test_no_tools_without_memory(self):
        """Test that a context without memory gets no memory tools."""
        toolbox = Toolbox(AgentContext(memory_manager=None))

        assert toolbox.names() == []
        assert toolbox.schemas() == []
        assert toolbox.guidelines() == []

    def test_schemas(self, context):
        """Test that schemas are generated for every tool."""
        schemas = Toolbox(context).schemas()

        assert [s["name"] for s in schemas] == [
            "memory_list",
            "memory_append",
            "memory_replace",
        ]
        for schema in schemas:
            assert schema["description"]
            assert schema["input_schema"]["type"] == "object"

    def test_guidelines(self, context):
        """Test that guidelines cover the active tools."""
        assert len(Toolbox(context).guidelines()) > 0

    def test_invoke(self, context):
        """Test dispatching a call by name."""
        toolbox = Toolbox(context)

        result = toolbox.invoke("memory_append", {"label": "tasks", "content": "ship it"})

        assert result.is_error is False
        assert context.memory_manager.get_block("tasks").value == "ship it"

    def test_invoke_unknown_tool(self, context, caplog):
        """Test that an unknown tool name is an error result."""
        result = Toolbox(context).invoke("rm_rf", {})

        assert result.is_error is True
        assert result.details["error"] == "unknown_tool"
        assert "memory_list" in result.text
        assert "rm_rf" in caplog.text

    def test_custom_tools(self, context):
        """Test that an explicit tool list replaces the defaults."""
        toolbox = Toolbox(context, tools=[echo])

        assert toolbox.names() == ["echo"]
        assert toolbox.invoke("echo", {"text": "hi"}).text == "hi"
        assert toolbox.guidelines() == []
