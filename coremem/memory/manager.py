"""
Memory Manager for the memory block system.

The MemoryManager is the only interface other components use to read and
mutate memory blocks. It enforces block rules (size limits, read-only
protection, unique labels, block count) before delegating to the store,
and keeps an in-process read cache that every successful mutation updates
before returning.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

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
    MemoryNotFoundError,
    ReadOnlyViolationError,
)
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

logger = logging.getLogger(__name__)


class BlockCache:
    """
    In-memory mirror of the blocks in a store, keyed by block id.

    Owned by a single MemoryManager; nothing is shared between instances.
    """

    def __init__(self):
        self._blocks: Optional[Dict[str, MemoryBlock]] = None

    @property
    def loaded(self) -> bool:
        return self._blocks is not None

    def load(self, blocks: List[MemoryBlock]) -> None:
        self._blocks = {block.id: block for block in blocks}

    def invalidate(self) -> None:
        self._blocks = None

    def put(self, block: MemoryBlock) -> None:
        """Insert or replace a block by id."""
        if self._blocks is None:
            return
        self._blocks[block.id] = block

    def remove(self, label: str) -> None:
        if self._blocks is None:
            return
        self._blocks = {
            block_id: block
            for block_id, block in self._blocks.items()
            if block.label != label
        }

    def find(self, label: str) -> Optional[MemoryBlock]:
        for block in self._blocks.values():
            if block.label == label:
                return block
        return None

    def blocks(self) -> List[MemoryBlock]:
        """All cached blocks, sorted by label (the store's order)."""
        return sorted(self._blocks.values(), key=lambda b: b.label)

    def __len__(self) -> int:
        return len(self._blocks) if self._blocks is not None else 0


class MemoryManager:
    """
    Manager for memory blocks.

    Wraps a BlockStore with validation and caching. Labels are unique
    within the store's scope, which is user-global: memory outlives and
    is shared across sessions.
    """

    def __init__(
        self,
        database_path: Optional[Union[str, Path]] = None,
        store: Optional[BlockStore] = None,
        max_blocks: Optional[int] = None,
    ):
        """
        Initialize the memory manager.

        Args:
            database_path: Path of the SQLite database. Ignored when a store
                          is given.
            store: Optional custom store backend.
            max_blocks: Maximum number of blocks allowed in the scope.
                        None means unlimited.
        """
        if store is None:
            if database_path is None:
                raise ValueError("Either database_path or store is required")
            store = SQLiteBlockStore(database_path)

        self.store = store
        self.max_blocks = max(1, max_blocks) if max_blocks is not None else None
        self._cache = BlockCache()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_all(self) -> MemorySnapshot:
        """Populate the cache from the store."""
        snapshot = self.store.get_snapshot()
        self._cache.load(snapshot.blocks)
        logger.info("Loaded memory: %d blocks", len(snapshot.blocks))
        return snapshot

    def _ensure_loaded(self) -> None:
        if not self._cache.loaded:
            self.load_all()

    def get_block(self, label: str) -> Optional[MemoryBlock]:
        self._ensure_loaded()
        return self._cache.find(label)

    def get_blocks(self) -> List[MemoryBlock]:
        self._ensure_loaded()
        return self._cache.blocks()

    def list_labels(self) -> List[str]:
        return [block.label for block in self.get_blocks()]

    def get_block_history(self, label: str) -> List[MemoryBlockHistory]:
        return self.store.get_history(label)

    def clear_cache(self) -> None:
        """Drop the cache so the next read reloads from the store."""
        self._cache.invalidate()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_writable(self, label: str, action: str = "modified") -> MemoryBlock:
        block = self.get_block(label)
        if block is None:
            raise MemoryNotFoundError(f'Memory block "{label}" not found', label)
        if block.read_only:
            raise ReadOnlyViolationError(
                f'Block "{label}" is read-only and cannot be {action}', label
            )
        return block

    def create_block(
        self,
        block: Union[CreateMemoryBlock, Dict[str, Any]],
        actor: Actor = Actor.AGENT,
    ) -> MemoryBlock:
        """
        Create a new block.

        Raises:
            DuplicateLabelError: If a block with the same label exists
            CharLimitExceededError: If the value is longer than the limit
            BlockLimitReachedError: If the scope is full
        """
        if not isinstance(block, CreateMemoryBlock):
            block = CreateMemoryBlock.model_validate(block)

        if self.get_block(block.label) is not None:
            raise DuplicateLabelError(
                f'Block with label "{block.label}" already exists', block.label
            )

        if len(block.value) > block.char_limit:
            raise CharLimitExceededError(
                f"Value length ({len(block.value)}) exceeds charLimit "
                f'({block.char_limit}) for block "{block.label}"',
                block.label,
                length=len(block.value),
                limit=block.char_limit,
            )

        if self.max_blocks is not None and len(self._cache) >= self.max_blocks:
            raise BlockLimitReachedError(
                f"Cannot create block \"{block.label}\": memory already holds "
                f"the maximum of {self.max_blocks} blocks",
                block.label,
            )

        created = self.store.create(block, actor=actor)
        self._cache.put(created)
        return created

    def update_block(
        self,
        label: str,
        updates: Union[UpdateMemoryBlock, Dict[str, Any]],
        actor: Actor = Actor.AGENT,
    ) -> MemoryBlock:
        """
        Apply a partial update to a block.

        The resulting value must fit within the resulting limit, whether the
        update changes the value, the limit, or both.

        Raises:
            MemoryNotFoundError: If no block has this label
            ReadOnlyViolationError: If the block is read-only
            CharLimitExceededError: If the resulting value would be too long
        """
        if not isinstance(updates, UpdateMemoryBlock):
            updates = UpdateMemoryBlock.model_validate(updates)

        existing = self._require_writable(label)

        new_value = updates.value if updates.changes_value else existing.value
        new_limit = (
            updates.char_limit
            if updates.char_limit is not None
            else existing.char_limit
        )
        if len(new_value) > new_limit:
            raise CharLimitExceededError(
                f"Value length ({len(new_value)}) exceeds charLimit ({new_limit}) "
                f'for block "{label}"',
                label,
                length=len(new_value),
                limit=new_limit,
            )

        updated = self.store.update(label, updates, actor=actor)
        if updated is None:
            # Another process removed the block since we cached it
            self._cache.remove(label)
            raise MemoryNotFoundError(f'Memory block "{label}" not found', label)

        self._cache.put(updated)
        return updated

    def delete_block(self, label: str) -> bool:
        """
        Delete a block and its history.

        Returns:
            True if a block was deleted, False if none had this label

        Raises:
            ReadOnlyViolationError: If the block is read-only
        """
        block = self.get_block(label)
        if block is None:
            return False
        if block.read_only:
            raise ReadOnlyViolationError(
                f'Block "{label}" is read-only and cannot be deleted', label
            )

        deleted = self.store.delete(label)
        self._cache.remove(label)
        return deleted

    def append_block(
        self, label: str, content: str, actor: Actor = Actor.AGENT
    ) -> MemoryBlock:
        """
        Append content to a block on a new line.

        The separator is only added when the block already has content.
        The combined value must fit the block's limit; nothing is truncated.
        """
        block = self._require_writable(label)

        logger.debug(
            "Appending to block %s: %s",
            label,
            content[:50] + ("..." if len(content) > 50 else ""),
        )
        new_value = block.value + ("\n" if block.value else "") + content
        return self.update_block(label, UpdateMemoryBlock(value=new_value), actor=actor)

    def replace_block(
        self,
        label: str,
        old_content: Optional[str],
        new_content: str,
        actor: Actor = Actor.AGENT,
    ) -> MemoryBlock:
        """
        Replace content in a block.

        With a non-empty ``old_content``, its first occurrence is replaced by
        ``new_content``. With an empty or missing ``old_content``, the whole
        value becomes ``new_content``.

        Raises:
            ContentNotFoundError: If old_content does not occur in the value
        """
        block = self._require_writable(label)

        if old_content:
            if old_content not in block.value:
                raise ContentNotFoundError(
                    f'Old content not found in block "{label}"', label
                )
            new_value = block.value.replace(old_content, new_content, 1)
        else:
            new_value = new_content

        logger.debug(
            "Replacing in block %s: %d -> %d chars",
            label,
            len(block.value),
            len(new_value),
        )
        return self.update_block(label, UpdateMemoryBlock(value=new_value), actor=actor)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def compile(self, options: Optional[MemoryCompileOptions] = None) -> str:
        """Render the current blocks into prompt text."""
        return compile_memory(self.get_blocks(), options)

    def get_compiled_blocks(self) -> List[CompiledMemoryBlock]:
        return get_compiled_memory_blocks(self.get_blocks())

    def estimate_tokens(self, options: Optional[MemoryCompileOptions] = None) -> int:
        return estimate_compiled_memory_tokens(self.get_blocks(), options)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._cache.invalidate()
        self.store.close()

    def __enter__(self) -> "MemoryManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"MemoryManager(store={self.store!r})"
