"""
Storage backends for memory blocks.

This module provides an abstract block store interface and a SQLite
implementation. The store owns persistence and history tracking only;
business rules (read-only protection, size limits, block counts) live in
the ``MemoryManager``.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union
from uuid import uuid4

from sqlalchemy import create_engine, delete, event, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .exceptions import (
    CharLimitExceededError,
    DuplicateLabelError,
    MemoryError,
    MemoryStorageError,
)
from .models import Base, MemoryBlockHistoryRow, MemoryBlockRow
from .schema import (
    DEFAULT_SCOPE,
    Actor,
    CreateMemoryBlock,
    MemoryBlock,
    MemoryBlockHistory,
    MemorySnapshot,
    UpdateMemoryBlock,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BlockStore(ABC):
    """
    Abstract base class for memory block stores.

    Lookups signal absence with ``None``, ``False`` or an empty list.
    Constraint violations the store alone can detect are raised.
    """

    @abstractmethod
    def create(
        self, block: CreateMemoryBlock, actor: Actor = Actor.AGENT
    ) -> MemoryBlock:
        """
        Persist a new block at version 1 together with its first history row.

        Args:
            block: Specification of the block to create
            actor: Who is creating the block (recorded in history)

        Returns:
            The stored block, with id and timestamps assigned

        Raises:
            DuplicateLabelError: If the label is already used in this scope
            MemoryStorageError: If writing fails
        """

    @abstractmethod
    def get_by_label(self, label: str) -> Optional[MemoryBlock]:
        """
        Look up a block by label.

        Returns:
            The block, or None if there is no block with that label
        """

    @abstractmethod
    def get_all(self) -> List[MemoryBlock]:
        """
        Return every block in the scope, sorted by label.
        """

    @abstractmethod
    def update(
        self,
        label: str,
        updates: UpdateMemoryBlock,
        actor: Actor = Actor.AGENT,
    ) -> Optional[MemoryBlock]:
        """
        Merge the provided fields into a stored block.

        Fields not provided are left unchanged. Providing ``value``
        increments the version and records a history row in the same
        transaction.

        Args:
            label: Label of the block to update
            updates: Fields to change
            actor: Who is making the change (recorded in history)

        Returns:
            The updated block, or None if no block has that label
        """

    @abstractmethod
    def delete(self, label: str) -> bool:
        """
        Delete a block and all of its history.

        Returns:
            True if a block was removed, False otherwise
        """

    @abstractmethod
    def get_history(self, label: str) -> List[MemoryBlockHistory]:
        """
        Return the history of a block, newest version first.
        """

    def get_snapshot(self) -> MemorySnapshot:
        """Return all blocks plus the earliest creation and latest update times."""
        blocks = self.get_all()
        now = _utc_now()
        if not blocks:
            return MemorySnapshot(blocks=[], created_at=now, updated_at=now)
        return MemorySnapshot(
            blocks=blocks,
            created_at=min(b.created_at for b in blocks),
            updated_at=max(b.updated_at for b in blocks),
        )

    @abstractmethod
    def delete_all(self) -> int:
        """
        Delete every block in the scope.

        Returns:
            Number of blocks removed
        """

    def close(self) -> None:
        """Release any resources held by the store."""


class SQLiteBlockStore(BlockStore):
    """
    SQLite block store.

    Uses write-ahead logging so readers in other processes are not blocked
    by a writer. Every operation that touches more than one row commits as
    a single transaction.
    """

    def __init__(
        self, database_path: Union[str, Path], scope: str = DEFAULT_SCOPE
    ):
        """
        Open (and create if needed) the database.

        Args:
            database_path: Path to the SQLite file, or ":memory:"
            scope: Logical scope that labels are unique within

        Raises:
            MemoryStorageError: If the database cannot be created or opened
        """
        self.scope = scope
        self._closed = False

        if str(database_path) == ":memory:":
            self.database_path = None
            self.engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.database_path = Path(database_path).expanduser()
            try:
                self.database_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise MemoryStorageError(
                    f"Failed to create memory directory {self.database_path.parent}: {e}"
                )
            self.engine = create_engine(
                f"sqlite:///{self.database_path}",
                connect_args={"check_same_thread": False},
            )

        event.listen(self.engine, "connect", _configure_sqlite_connection)

        logger.debug("Opening memory database: %s", self.database_path or ":memory:")
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            self.engine.dispose()
            raise MemoryStorageError(
                f"Failed to open memory database {self.database_path}: {e}"
            )

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, label: Optional[str] = None) -> Iterator[Session]:
        """Run a unit of work, translating database errors."""
        if self._closed:
            raise MemoryStorageError("Memory store is closed", label)

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except MemoryError:
            session.rollback()
            raise
        except IntegrityError as e:
            session.rollback()
            raise _translate_integrity_error(e, label)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Memory database operation failed: %s", e)
            raise MemoryStorageError(f"Memory database operation failed: {e}", label)
        except (UnicodeError, ValueError, TypeError) as e:
            # Raised by the sqlite3 driver while binding values it cannot store
            session.rollback()
            logger.error("Memory database rejected a value: %s", e)
            raise MemoryStorageError(f"Memory database rejected a value: {e}", label)
        finally:
            session.close()

    def _find_row(self, session: Session, label: str) -> Optional[MemoryBlockRow]:
        stmt = select(MemoryBlockRow).where(
            MemoryBlockRow.scope == self.scope, MemoryBlockRow.label == label
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _history_row(
        row: MemoryBlockRow, timestamp: str, actor: Actor
    ) -> MemoryBlockHistoryRow:
        return MemoryBlockHistoryRow(
            id=str(uuid4()),
            block_id=row.id,
            label=row.label,
            value=row.value,
            version=row.version,
            created_at=timestamp,
            created_by=Actor(actor).value,
        )

    # ------------------------------------------------------------------
    # BlockStore interface
    # ------------------------------------------------------------------

    def create(
        self, block: CreateMemoryBlock, actor: Actor = Actor.AGENT
    ) -> MemoryBlock:
        if not isinstance(block, CreateMemoryBlock):
            block = CreateMemoryBlock.model_validate(block)

        now = _utc_now().isoformat()

        with self._transaction(block.label) as session:
            if self._find_row(session, block.label) is not None:
                raise DuplicateLabelError(
                    f'Block with label "{block.label}" already exists', block.label
                )

            row = MemoryBlockRow(
                id=str(uuid4()),
                scope=self.scope,
                label=block.label,
                value=block.value,
                description=block.description,
                char_limit=block.char_limit,
                read_only=block.read_only,
                hidden=block.hidden,
                metadata_json=_dump_metadata(block.metadata),
                created_at=now,
                updated_at=now,
                version=1,
            )
            session.add(row)
            session.add(self._history_row(row, now, actor))
            session.flush()
            created = _to_block(row)

        logger.debug("Created block %s (%d chars)", created.label, len(created.value))
        return created

    def get_by_label(self, label: str) -> Optional[MemoryBlock]:
        with self._transaction(label) as session:
            row = self._find_row(session, label)
            if row is None:
                logger.debug("Retrieved block %s: not found", label)
                return None
            block = _to_block(row)

        logger.debug(
            "Retrieved block %s: found (%d chars, version %d)",
            label,
            len(block.value),
            block.version,
        )
        return block

    def get_all(self) -> List[MemoryBlock]:
        with self._transaction() as session:
            stmt = (
                select(MemoryBlockRow)
                .where(MemoryBlockRow.scope == self.scope)
                .order_by(MemoryBlockRow.label)
            )
            return [_to_block(row) for row in session.execute(stmt).scalars()]

    def update(
        self,
        label: str,
        updates: UpdateMemoryBlock,
        actor: Actor = Actor.AGENT,
    ) -> Optional[MemoryBlock]:
        if not isinstance(updates, UpdateMemoryBlock):
            updates = UpdateMemoryBlock.model_validate(updates)

        provided = updates.provided()

        with self._transaction(label) as session:
            row = self._find_row(session, label)
            if row is None:
                return None
            if not provided:
                return _to_block(row)

            logger.debug("Updating block %s: %s", label, sorted(provided))
            now = _utc_now().isoformat()

            if "description" in provided:
                row.description = provided["description"]
            if "metadata" in provided:
                row.metadata_json = _dump_metadata(provided["metadata"])
            for name in ("char_limit", "read_only", "hidden"):
                if provided.get(name) is not None:
                    setattr(row, name, provided[name])

            row.updated_at = now

            if updates.changes_value:
                row.value = updates.value
                row.version = row.version + 1
                session.add(self._history_row(row, now, actor))

            session.flush()
            return _to_block(row)

    def delete(self, label: str) -> bool:
        with self._transaction(label) as session:
            result = session.execute(
                delete(MemoryBlockRow).where(
                    MemoryBlockRow.scope == self.scope, MemoryBlockRow.label == label
                )
            )
            removed = result.rowcount > 0

        logger.debug("Deleted block %s: %s", label, removed)
        return removed

    def get_history(self, label: str) -> List[MemoryBlockHistory]:
        with self._transaction(label) as session:
            stmt = (
                select(MemoryBlockHistoryRow)
                .join(MemoryBlockRow, MemoryBlockHistoryRow.block_id == MemoryBlockRow.id)
                .where(MemoryBlockRow.scope == self.scope, MemoryBlockRow.label == label)
                .order_by(MemoryBlockHistoryRow.version.desc())
            )
            return [_to_history(row) for row in session.execute(stmt).scalars()]

    def delete_all(self) -> int:
        with self._transaction() as session:
            result = session.execute(
                delete(MemoryBlockRow).where(MemoryBlockRow.scope == self.scope)
            )
            return result.rowcount

    def close(self) -> None:
        """Checkpoint the write-ahead log into the main file and release the engine."""
        if self._closed:
            return
        self._closed = True

        try:
            with self.engine.connect() as connection:
                connection.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")
        except SQLAlchemyError as e:
            logger.warning("Failed to checkpoint memory database: %s", e)
        finally:
            self.engine.dispose()

    def __enter__(self) -> "SQLiteBlockStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SQLiteBlockStore(path='{self.database_path}', scope='{self.scope}')"


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _translate_integrity_error(error: IntegrityError, label: Optional[str]) -> MemoryError:
    message = str(error.orig)
    if "UNIQUE" in message:
        return DuplicateLabelError(
            f'Block with label "{label}" already exists', label
        )
    if "ck_memory_blocks_value_length" in message:
        return CharLimitExceededError(
            f'Value exceeds charLimit for block "{label}"', label
        )
    logger.error("Memory database integrity error: %s", message)
    return MemoryStorageError(f"Memory database integrity error: {message}", label)


def _dump_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    return json.dumps(metadata) if metadata is not None else None


def _to_block(row: MemoryBlockRow) -> MemoryBlock:
    return MemoryBlock(
        id=row.id,
        label=row.label,
        value=row.value,
        description=row.description,
        char_limit=row.char_limit,
        read_only=bool(row.read_only),
        hidden=bool(row.hidden),
        created_at=datetime.fromisoformat(row.created_at),
        updated_at=datetime.fromisoformat(row.updated_at),
        version=row.version,
        metadata=json.loads(row.metadata_json) if row.metadata_json else None,
    )


def _to_history(row: MemoryBlockHistoryRow) -> MemoryBlockHistory:
    return MemoryBlockHistory(
        id=row.id,
        block_id=row.block_id,
        label=row.label,
        value=row.value,
        version=row.version,
        created_at=datetime.fromisoformat(row.created_at),
        created_by=Actor(row.created_by),
    )
