"""
Rendering of memory blocks into the text injected before each model call.

The output format is consumed verbatim by the prompt assembler and by the
model, which edits blocks using the ``chars_current`` / ``chars_limit``
metadata and, for line-numbered rendering, the ``N→ `` prefixes. Changes
here are format changes.
"""

import math
from typing import List, Optional, Sequence

from .schema import (
    CompiledMemoryBlock,
    MemoryBlock,
    MemoryBlockMetadata,
    MemoryCompileOptions,
)

MEMORY_BLOCKS_OPEN = "<memory_blocks>"
MEMORY_BLOCKS_CLOSE = "</memory_blocks>"
MEMORY_BLOCKS_INTRO = (
    "The following memory blocks are currently engaged in your core memory unit:\n"
)

LINE_NUMBER_ARROW = "→"

CORE_MEMORY_LINE_NUMBER_WARNING = (
    "IMPORTANT: The <value> field below contains a line-numbered memory block. "
    "When editing this block, you must preserve all line numbers exactly as they "
    "appear. Do not remove, renumber, or modify the line number prefixes "
    "(e.g., '1→ ', '2→ ', '3→ '). Only modify the content after the arrow and space."
)


def compile_memory(
    blocks: Sequence[MemoryBlock], options: Optional[MemoryCompileOptions] = None
) -> str:
    """
    Compile memory blocks into a prompt string.

    Blocks are rendered in the order given; hidden blocks are skipped
    entirely. An empty sequence compiles to an empty string.

    Args:
        blocks: Blocks to render
        options: Rendering options; line numbers are used only when the
                 options name the anthropic endpoint family

    Returns:
        The compiled memory text
    """
    if not blocks:
        return ""

    use_line_numbers = options is not None and options.use_line_numbers
    visible = [block for block in blocks if not block.hidden]

    s: List[str] = [MEMORY_BLOCKS_OPEN, MEMORY_BLOCKS_INTRO]

    for idx, block in enumerate(visible):
        s.append(f"<{block.label}>")
        s.append("<description>")
        s.append(block.description or "")
        s.append("</description>")
        s.append("<metadata>")
        if block.read_only:
            s.append("- read_only=true")
        s.append(f"- chars_current={len(block.value)}")
        s.append(f"- chars_limit={block.char_limit}")
        s.append("</metadata>")

        if use_line_numbers:
            s.append(f"<warning>\n{CORE_MEMORY_LINE_NUMBER_WARNING}\n</warning>")

        s.append("<value>")
        if use_line_numbers:
            s.extend(render_with_line_numbers(block.value))
        else:
            s.append(block.value)
        s.append("</value>")
        s.append(f"</{block.label}>")

        if idx < len(visible) - 1:
            s.append("")

    s.append(MEMORY_BLOCKS_CLOSE)

    return "\n".join(s)


def render_with_line_numbers(text: str) -> List[str]:
    """Prefix each line with its 1-based number, e.g. ``"1→ first line"``."""
    if not text:
        return []
    return [
        f"{number}{LINE_NUMBER_ARROW} {line}"
        for number, line in enumerate(text.split("\n"), start=1)
    ]


def get_compiled_memory_blocks(
    blocks: Sequence[MemoryBlock],
) -> List[CompiledMemoryBlock]:
    """Structured view of the blocks compile_memory would render."""
    return [
        CompiledMemoryBlock(
            label=block.label,
            description=block.description or "",
            metadata=MemoryBlockMetadata(
                chars_current=len(block.value),
                chars_limit=block.char_limit,
                read_only=block.read_only,
            ),
            value=block.value,
        )
        for block in blocks
        if not block.hidden
    ]


def estimate_compiled_memory_tokens(
    blocks: Sequence[MemoryBlock], options: Optional[MemoryCompileOptions] = None
) -> int:
    """Rough token count of the compiled text (about 4 chars per token)."""
    return math.ceil(len(compile_memory(blocks, options)) / 4)
