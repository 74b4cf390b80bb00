"""
Tests for rendering memory blocks into prompt text.
"""

from datetime import datetime, timezone

from coremem.memory import (
    MemoryBlock,
    MemoryCompileOptions,
    compile_memory,
    estimate_compiled_memory_tokens,
    get_compiled_memory_blocks,
)
from coremem.memory.compiler import (
    CORE_MEMORY_LINE_NUMBER_WARNING,
    render_with_line_numbers,
)

ANTHROPIC = MemoryCompileOptions(model_endpoint_type="anthropic")


def make_block(label, value="", **kwargs):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return MemoryBlock(
        id=f"id-{label}",
        label=label,
        value=value,
        created_at=now,
        updated_at=now,
        **kwargs,
    )


class TestCompileMemory:
    """Tests for compile_memory."""

    def test_empty_blocks(self):
        """Test that no blocks compile to an empty string."""
        assert compile_memory([]) == ""
        assert compile_memory([], ANTHROPIC) == ""

    def test_single_block_format(self):
        """Test the exact text for a single block."""
        block = make_block(
            "persona",
            "hello",
            description="Who I am",
            char_limit=2000,
            read_only=True,
        )

        expected = (
            "<memory_blocks>\n"
            "The following memory blocks are currently engaged in your core memory unit:\n"
            "\n"
            "<persona>\n"
            "<description>\n"
            "Who I am\n"
            "</description>\n"
            "<metadata>\n"
            "- read_only=true\n"
            "- chars_current=5\n"
            "- chars_limit=2000\n"
            "</metadata>\n"
            "<value>\n"
            "hello\n"
            "</value>\n"
            "</persona>\n"
            "</memory_blocks>"
        )
        assert compile_memory([block]) == expected

    def test_writable_block_omits_read_only_line(self):
        """Test that the read_only line only appears for read-only blocks."""
        compiled = compile_memory([make_block("tasks", "x")])

        assert "read_only" not in compiled
        assert "- chars_current=1\n- chars_limit=4000" in compiled

    def test_missing_description_renders_empty(self):
        """Test that a block without description gets an empty description element."""
        compiled = compile_memory([make_block("tasks")])

        assert "<description>\n\n</description>" in compiled
        assert "<value>\n\n</value>" in compiled

    def test_blocks_separated_by_blank_line(self):
        """Test that consecutive blocks are separated by one blank line."""
        compiled = compile_memory([make_block("a", "1"), make_block("b", "2")])

        assert "</a>\n\n<b>" in compiled
        assert compiled.endswith("</b>\n</memory_blocks>")

    def test_blocks_rendered_in_given_order(self):
        """Test that the compiler does not reorder blocks."""
        compiled = compile_memory([make_block("zeta"), make_block("alpha")])

        assert compiled.index("<zeta>") < compiled.index("<alpha>")

    def test_hidden_blocks_skipped(self):
        """Test that hidden blocks do not appear in the output at all."""
        blocks = [
            make_block("a", "1"),
            make_block("secret", "do not show", hidden=True),
            make_block("b", "2"),
        ]

        compiled = compile_memory(blocks)

        assert "secret" not in compiled
        assert "do not show" not in compiled
        assert "</a>\n\n<b>" in compiled

    def test_trailing_hidden_block_leaves_no_separator(self):
        """Test that a hidden last block does not leave a dangling blank line."""
        compiled = compile_memory([make_block("a", "1"), make_block("z", hidden=True)])

        assert compiled.endswith("</a>\n</memory_blocks>")

    def test_value_is_verbatim_without_line_numbers(self):
        """Test that the value is rendered byte-for-byte when line numbers are off."""
        value = "line one\n  indented\n\ttab\n"
        compiled = compile_memory([make_block("notes", value)])

        assert f"<value>\n{value}\n</value>" in compiled

    def test_other_endpoints_do_not_number_lines(self):
        """Test that only the anthropic endpoint family gets line numbers."""
        block = make_block("notes", "a\nb")

        plain = compile_memory([block])
        openai = compile_memory([block], MemoryCompileOptions(model_endpoint_type="openai"))

        assert openai == plain
        assert "→" not in plain


class TestLineNumbers:
    """Tests for line-numbered rendering."""

    def test_line_numbered_value(self):
        """Test that each line is prefixed with its number and an arrow."""
        compiled = compile_memory([make_block("tasks", "a\nb")], ANTHROPIC)

        assert "<value>\n1→ a\n2→ b\n</value>" in compiled

    def test_warning_precedes_value(self):
        """Test that the line number warning is emitted before the value."""
        compiled = compile_memory([make_block("tasks", "a")], ANTHROPIC)

        warning = f"<warning>\n{CORE_MEMORY_LINE_NUMBER_WARNING}\n</warning>\n<value>"
        assert warning in compiled

    def test_empty_value_has_no_lines(self):
        """Test that an empty value renders no numbered lines."""
        compiled = compile_memory([make_block("tasks")], ANTHROPIC)

        assert "<value>\n</value>" in compiled

    def test_render_with_line_numbers(self):
        """Test numbering of blank and trailing lines."""
        assert render_with_line_numbers("") == []
        assert render_with_line_numbers("x") == ["1→ x"]
        assert render_with_line_numbers("x\n\ny\n") == ["1→ x", "2→ ", "3→ y", "4→ "]


class TestCompiledBlocks:
    """Tests for the structured view and token estimate."""

    def test_compiled_blocks(self):
        """Test the structured view of visible blocks."""
        blocks = [
            make_block("persona", "abc", read_only=True, char_limit=10),
            make_block("hidden", "x", hidden=True),
        ]

        compiled = get_compiled_memory_blocks(blocks)

        assert len(compiled) == 1
        assert compiled[0].label == "persona"
        assert compiled[0].description == ""
        assert compiled[0].metadata.chars_current == 3
        assert compiled[0].metadata.chars_limit == 10
        assert compiled[0].metadata.read_only is True
        assert compiled[0].value == "abc"

    def test_estimate_tokens(self):
        """Test that the estimate is the compiled length over four, rounded up."""
        blocks = [make_block("tasks", "buy milk")]

        length = len(compile_memory(blocks))

        assert estimate_compiled_memory_tokens(blocks) == (length + 3) // 4

    def test_estimate_tokens_empty(self):
        """Test that nothing to compile costs nothing."""
        assert estimate_compiled_memory_tokens([]) == 0
