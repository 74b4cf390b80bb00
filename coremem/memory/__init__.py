"""
Memory blocks: durable, labeled, versioned text that an agent reads and
edits across sessions, compiled into a fixed text format before every
model call.
"""

from .bootstrap import open_memory, seed_default_blocks
from .compiler import (
    compile_memory,
    estimate_compiled_memory_tokens,
    get_compiled_memory_blocks,
)
from .exceptions import (
    BlockLimitReachedError,
    CharLimitExceededError,
    ContentNotFoundError,
    DuplicateLabelError,
    MemoryError,
    MemoryErrorKind,
    MemoryNotFoundError,
    MemoryStorageError,
    ReadOnlyViolationError,
)
from .manager import BlockCache, MemoryManager
from .schema import (
    Actor,
    CompiledMemoryBlock,
    CreateMemoryBlock,
    MemoryBlock,
    MemoryBlockHistory,
    MemoryCompileOptions,
    MemorySnapshot,
    UpdateMemoryBlock,
)
from .storage import BlockStore, SQLiteBlockStore

__all__ = [
    "Actor",
    "BlockCache",
    "BlockLimitReachedError",
    "BlockStore",
    "CharLimitExceededError",
    "CompiledMemoryBlock",
    "ContentNotFoundError",
    "CreateMemoryBlock",
    "DuplicateLabelError",
    "MemoryBlock",
    "MemoryBlockHistory",
    "MemoryCompileOptions",
    "MemoryError",
    "MemoryErrorKind",
    "MemoryManager",
    "MemoryNotFoundError",
    "MemorySnapshot",
    "MemoryStorageError",
    "ReadOnlyViolationError",
    "SQLiteBlockStore",
    "UpdateMemoryBlock",
    "compile_memory",
    "estimate_compiled_memory_tokens",
    "get_compiled_memory_blocks",
    "open_memory",
    "seed_default_blocks",
]
