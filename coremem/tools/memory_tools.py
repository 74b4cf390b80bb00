"""
Memory tools: let the agent list and edit its memory blocks.

Tools never raise. Every memory failure becomes a ToolResult carrying a
short message for the model and a machine-readable error tag, so one bad
tool call cannot break the agent loop.
"""

import logging
from typing import Dict, Iterable, List, Optional

from coremem.context import AgentContext
from coremem.memory.exceptions import MemoryError, MemoryErrorKind
from coremem.memory.manager import MemoryManager
from coremem.memory.schema import Actor, MemoryBlock
from coremem.tools.framework import ToolResult, tool

logger = logging.getLogger(__name__)

# What the model should do next, for each failure kind
FAILURE_HINTS: Dict[MemoryErrorKind, str] = {
    MemoryErrorKind.NOT_FOUND: "Use memory_list to see available blocks.",
    MemoryErrorKind.DUPLICATE_LABEL: "Choose a different label.",
    MemoryErrorKind.READ_ONLY: "Read-only blocks cannot be changed with memory tools.",
    MemoryErrorKind.CHAR_LIMIT_EXCEEDED: (
        "Condense the block with memory_replace before adding more."
    ),
    MemoryErrorKind.CONTENT_NOT_FOUND: (
        "old_content must match the current block text exactly."
    ),
    MemoryErrorKind.BLOCK_LIMIT_REACHED: "Reuse or consolidate existing blocks.",
    MemoryErrorKind.STORAGE_ERROR: "The change was not saved.",
}


def memory_guidelines(tool_names: Iterable[str]) -> List[str]:
    """Prompt guideline lines for whichever memory tools are active."""
    names = set(tool_names)
    has_list = "memory_list" in names
    has_append = "memory_append" in names
    has_replace = "memory_replace" in names

    if not (has_list or has_append or has_replace):
        return []

    guidelines = []
    if has_list:
        guidelines.append(
            "Use memory_list to review current project context and what information is persisted"
        )
    if has_append:
        guidelines.append(
            "Use memory_append to persist important information across sessions: "
            "project context, technical decisions, user preferences, ongoing tasks"
        )
        guidelines.append("Project block: Tech stack, architecture, patterns, constraints")
        guidelines.append("Tasks block: TODOs, work items, follow-up actions")
    if has_replace:
        guidelines.append(
            "Use memory_replace sparingly - only for complete updates to a block "
            "(use memory_append for additions)"
        )
    guidelines.append(
        "Remember information that would be useful in future conversations about this project"
    )
    guidelines.append(
        "Memory persists across sessions and is automatically included in your context"
    )
    return guidelines


def memory_prompt(context: AgentContext) -> str:
    """Compiled memory section for the prompt assembler ("" without memory)."""
    if context.memory_manager is None:
        return ""
    try:
        return context.memory_manager.compile(context.compile_options)
    except MemoryError as e:
        logger.warning("Leaving memory out of the prompt: %s", e)
        return ""


def _failure(action: str, label: Optional[str], error: MemoryError) -> ToolResult:
    kind = error.kind
    if kind is MemoryErrorKind.NOT_FOUND:
        text = f"❌ Memory block '{label}' not found."
    else:
        text = f"❌ Error {action} memory: {error}"
    text += f"\n\n{FAILURE_HINTS[kind]}"

    if kind is MemoryErrorKind.STORAGE_ERROR:
        logger.warning("Memory tool failed while %s memory: %s", action, error)

    return ToolResult.failure(text, kind.value, label=label, message=str(error))


def _disabled() -> ToolResult:
    return ToolResult.failure("❌ Memory is disabled for this session.", "memory_disabled")


def _get_manager(context: AgentContext) -> Optional[MemoryManager]:
    return getattr(context, "memory_manager", None)


def _listed(block: MemoryBlock) -> bool:
    # Hidden read-only blocks are internal bookkeeping
    return not (block.hidden and block.read_only)


def _summary_line(block: MemoryBlock) -> str:
    parts = [f"{block.label}:"]
    if block.description:
        parts.append(block.description)
    parts.append(f"({len(block.value)}/{block.char_limit} chars)")
    if block.read_only:
        parts.append("[read-only]")
    return " ".join(parts)


@tool
def memory_list(context: AgentContext) -> ToolResult:
    """List all available memory blocks with their current content size and limits.

    Returns a summary of each block including label, description, current
    character count, and limit. Use the labels shown here with memory_append
    and memory_replace.
    """
    manager = _get_manager(context)
    if manager is None:
        return _disabled()

    try:
        blocks = [block for block in manager.get_blocks() if _listed(block)]
    except MemoryError as e:
        return _failure("listing", None, e)

    summary = "\n".join(_summary_line(block) for block in blocks)
    return ToolResult(
        text=summary or "No memory blocks available.",
        details={
            "blocks": [
                {
                    "label": block.label,
                    "description": block.description,
                    "current": len(block.value),
                    "limit": block.char_limit,
                    "read_only": block.read_only,
                }
                for block in blocks
            ]
        },
    )


@tool
def memory_append(context: AgentContext, label: str, content: str) -> ToolResult:
    """Append content to a memory block.

    Creates a new line at the end of the block with the provided content.
    Use this to add new information to memory. The block must have room for
    the new content; nothing is truncated.

    Args:
        label: The label of the memory block to append to (e.g., 'persona', 'project', 'tasks')
        content: The content to append to the memory block. Will be added on a new line.
    """
    manager = _get_manager(context)
    if manager is None:
        return _disabled()

    try:
        block = manager.append_block(label, content, actor=Actor.AGENT)
    except MemoryError as e:
        return _failure("appending to", label, e)

    return ToolResult(
        text=(
            f"✅ Successfully appended to '{label}'. Block now contains "
            f"{len(block.value)}/{block.char_limit} characters."
        ),
        details={
            "label": label,
            "new_length": len(block.value),
            "limit": block.char_limit,
            "version": block.version,
        },
    )


@tool
def memory_replace(
    context: AgentContext,
    label: str,
    new_content: str,
    old_content: Optional[str] = None,
) -> ToolResult:
    """Replace content in a memory block.

    Use this to update or delete information. Only the first occurrence of
    old_content is replaced. To delete content, use an empty string for
    new_content. Omit old_content to replace the whole block.

    Args:
        label: The label of the memory block to edit (e.g., 'persona', 'project', 'tasks')
        new_content: The new content to write. If empty string, the old_content will be deleted.
        old_content: The exact text to replace. Must match exactly. If empty or omitted, replaces the entire block value with new_content.
    """
    manager = _get_manager(context)
    if manager is None:
        return _disabled()

    try:
        block = manager.replace_block(label, old_content or "", new_content, actor=Actor.AGENT)
    except MemoryError as e:
        return _failure("updating", label, e)

    return ToolResult(
        text=(
            f"✅ Successfully updated '{label}'. Block now contains "
            f"{len(block.value)}/{block.char_limit} characters."
        ),
        details={
            "label": label,
            "new_length": len(block.value),
            "limit": block.char_limit,
            "version": block.version,
        },
    )


MEMORY_TOOLS = [memory_list, memory_append, memory_replace]
