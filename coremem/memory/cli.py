"""
CLI commands for inspecting and editing memory blocks.

Edits made here are recorded in block history as made by the user.
"""

import contextlib
from pathlib import Path
from typing import Iterator, Optional

from cyclopts import App
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from coremem.config import load_settings
from coremem.memory.bootstrap import open_memory
from coremem.memory.exceptions import MemoryError
from coremem.memory.manager import MemoryManager
from coremem.memory.schema import Actor, CreateMemoryBlock, MemoryCompileOptions

app = App(name="memory", help="Inspect and edit persistent memory blocks")
console = Console()


@contextlib.contextmanager
def _open_manager(database: Optional[str]) -> Iterator[Optional[MemoryManager]]:
    settings = load_settings(project_root=Path.cwd())
    update = {"enabled": True}
    if database:
        update["database_path"] = Path(database).expanduser()
    settings = settings.model_copy(update=update)

    manager = open_memory(settings)
    if manager is None:
        console.print(
            f"[red]❌ Could not open memory database:[/red] {settings.database_path}"
        )
        yield None
        return

    try:
        yield manager
    finally:
        manager.close()


def _report(error: MemoryError) -> int:
    console.print(f"[red]❌ {escape(str(error))}[/red]")
    return 1


@app.command(name="list")
def list_blocks(database: Optional[str] = None) -> int:
    """List all memory blocks.

    Args:
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            blocks = manager.get_blocks()
        except MemoryError as e:
            return _report(e)

        if not blocks:
            console.print("📭 No memory blocks found.")
            return 0

        table = Table(title="Memory Blocks")
        table.add_column("Label", style="cyan")
        table.add_column("Description")
        table.add_column("Chars", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Version", justify="right")
        table.add_column("Flags")

        for block in blocks:
            flags = []
            if block.read_only:
                flags.append("read-only")
            if block.hidden:
                flags.append("hidden")
            table.add_row(
                block.label,
                block.description or "",
                str(len(block.value)),
                str(block.char_limit),
                str(block.version),
                ", ".join(flags),
            )

        console.print(table)
        return 0


@app.command
def show(label: str, database: Optional[str] = None) -> int:
    """Show the value and metadata of a memory block.

    Args:
        label: Label of the block to show
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            block = manager.get_block(label)
        except MemoryError as e:
            return _report(e)

        if block is None:
            console.print(f"[red]❌ Memory block not found:[/red] {escape(label)}")
            return 1

        console.print(f"[bold cyan]{block.label}[/bold cyan] (version {block.version})")
        if block.description:
            console.print(f"[dim]{escape(block.description)}[/dim]")
        console.print(
            f"📊 {len(block.value)}/{block.char_limit} chars"
            + (" | read-only" if block.read_only else "")
            + (" | hidden" if block.hidden else "")
        )
        console.print(f"📅 updated {block.updated_at:%Y-%m-%d %H:%M:%S}")
        console.print()
        console.print(block.value, markup=False, highlight=False)
        return 0


@app.command
def history(label: str, database: Optional[str] = None) -> int:
    """Show every recorded version of a memory block, newest first.

    Args:
        label: Label of the block
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            entries = manager.get_block_history(label)
        except MemoryError as e:
            return _report(e)

        if not entries:
            console.print(f"📭 No history for memory block: {label}")
            return 0

        for entry in entries:
            console.print(
                f"[bold]v{entry.version}[/bold] "
                f"[dim]{entry.created_at:%Y-%m-%d %H:%M:%S} by {entry.created_by.value}[/dim]"
            )
            console.print(entry.value, markup=False, highlight=False)
            console.print()
        return 0


@app.command
def create(
    label: str,
    value: str = "",
    description: Optional[str] = None,
    char_limit: int = 4000,
    read_only: bool = False,
    hidden: bool = False,
    database: Optional[str] = None,
) -> int:
    """Create a new memory block.

    Args:
        label: Label of the new block
        value: Initial content
        description: What the block is for (shown to the agent)
        char_limit: Maximum number of characters
        read_only: Prevent all changes to the block
        hidden: Leave the block out of the compiled prompt
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            block = manager.create_block(
                CreateMemoryBlock(
                    label=label,
                    value=value,
                    description=description,
                    char_limit=char_limit,
                    read_only=read_only,
                    hidden=hidden,
                ),
                actor=Actor.USER,
            )
        except ValidationError as e:
            console.print(f"[red]❌ Invalid memory block:[/red] {escape(str(e))}")
            return 1
        except MemoryError as e:
            return _report(e)

        console.print(f"✅ Created memory block: {block.label}")
        return 0


@app.command
def append(label: str, content: str, database: Optional[str] = None) -> int:
    """Append a line to a memory block.

    Args:
        label: Label of the block
        content: Text to append
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            block = manager.append_block(label, content, actor=Actor.USER)
        except MemoryError as e:
            return _report(e)

        console.print(
            f"✅ Appended to {label} ({len(block.value)}/{block.char_limit} chars)"
        )
        return 0


@app.command
def replace(
    label: str,
    new: str,
    old: Optional[str] = None,
    database: Optional[str] = None,
) -> int:
    """Replace text in a memory block.

    Args:
        label: Label of the block
        new: Replacement text
        old: Text to replace (first occurrence). Omit to replace the whole value.
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            block = manager.replace_block(label, old, new, actor=Actor.USER)
        except MemoryError as e:
            return _report(e)

        console.print(
            f"✅ Updated {label} ({len(block.value)}/{block.char_limit} chars)"
        )
        return 0


@app.command
def delete(label: str, database: Optional[str] = None) -> int:
    """Delete a memory block and its history.

    Args:
        label: Label of the block
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            deleted = manager.delete_block(label)
        except MemoryError as e:
            return _report(e)

        if not deleted:
            console.print(f"[red]❌ Memory block not found:[/red] {escape(label)}")
            return 1

        console.print(f"🗑️  Deleted memory block: {label}")
        return 0


@app.command(name="compile")
def compile_blocks(provider: Optional[str] = None, database: Optional[str] = None) -> int:
    """Print the memory text exactly as it is injected into the prompt.

    Args:
        provider: Model endpoint type (e.g. "anthropic" for line-numbered values)
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            compiled = manager.compile(
                MemoryCompileOptions(model_endpoint_type=provider)
            )
        except MemoryError as e:
            return _report(e)

        console.print(compiled, markup=False, highlight=False, soft_wrap=True)
        return 0


@app.command
def tokens(provider: Optional[str] = None, database: Optional[str] = None) -> int:
    """Estimate how many prompt tokens the compiled memory uses.

    Args:
        provider: Model endpoint type (e.g. "anthropic")
        database: Path to the memory database (default from settings)
    """
    with _open_manager(database) as manager:
        if manager is None:
            return 1

        try:
            estimate = manager.estimate_tokens(
                MemoryCompileOptions(model_endpoint_type=provider)
            )
        except MemoryError as e:
            return _report(e)

        console.print(f"~{estimate} tokens")
        return 0
