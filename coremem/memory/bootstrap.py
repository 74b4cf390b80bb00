"""
Opening the memory system for a run of the agent.
"""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

from .exceptions import MemoryError, MemoryStorageError
from .manager import MemoryManager
from .schema import Actor, CreateMemoryBlock, MemoryBlock
from .storage import SQLiteBlockStore

if TYPE_CHECKING:
    from coremem.config import MemorySettings

logger = logging.getLogger(__name__)


def seed_default_blocks(
    manager: MemoryManager, blocks: Iterable[CreateMemoryBlock]
) -> List[MemoryBlock]:
    """
    Create the default blocks in a fresh store.

    Nothing is created when the store already holds any block, so a block
    the user deleted on purpose does not come back on the next start.

    Returns:
        The blocks that were created
    """
    if manager.get_blocks():
        return []

    created = []
    for spec in blocks:
        try:
            created.append(manager.create_block(spec, actor=Actor.SYSTEM))
        except MemoryStorageError:
            raise
        except MemoryError as e:
            logger.warning("Skipping default memory block %s: %s", spec.label, e)

    if created:
        logger.info(
            "Seeded memory with default blocks: %s",
            ", ".join(block.label for block in created),
        )
    return created


def open_memory(settings: "MemorySettings") -> Optional[MemoryManager]:
    """
    Create the memory manager described by the settings.

    Returns:
        A ready MemoryManager, or None when memory is disabled or the store
        cannot be opened (the failure is logged as a warning).
    """
    if not settings.enabled:
        logger.debug("Memory is disabled")
        return None

    try:
        store = SQLiteBlockStore(settings.database_path, scope=settings.scope)
    except MemoryStorageError as e:
        logger.warning("Memory unavailable for this session: %s", e)
        return None

    manager = MemoryManager(store=store, max_blocks=settings.max_blocks)
    try:
        seed_default_blocks(manager, settings.default_blocks)
    except MemoryStorageError as e:
        logger.warning("Memory unavailable for this session: %s", e)
        manager.close()
        return None

    return manager
