import tempfile
from pathlib import Path

import pytest

from coremem.memory import MemoryManager, SQLiteBlockStore


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_store(temp_dir):
    """Store backed by a fresh SQLite file."""
    store = SQLiteBlockStore(temp_dir / "memory.db")
    yield store
    store.close()


@pytest.fixture
def temp_manager(temp_dir):
    """Manager backed by a fresh SQLite file."""
    manager = MemoryManager(temp_dir / "memory.db")
    yield manager
    manager.close()
