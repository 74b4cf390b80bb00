"""Database tables for memory blocks and their history."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class MemoryBlockRow(Base):
    """Persisted memory block."""

    __tablename__ = "memory_blocks"
    __table_args__ = (
        UniqueConstraint("scope", "label", name="uq_memory_blocks_scope_label"),
        CheckConstraint("length(value) <= char_limit", name="ck_memory_blocks_value_length"),
        CheckConstraint("char_limit > 0", name="ck_memory_blocks_char_limit"),
        Index("idx_memory_blocks_scope", "scope"),
        Index("idx_memory_blocks_created_at", "created_at"),
    )

    id = Column(String(36), primary_key=True)
    scope = Column(String(64), nullable=False)
    label = Column(String(64), nullable=False)
    value = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=True)
    char_limit = Column(Integer, nullable=False)
    read_only = Column(Boolean, nullable=False, default=False)
    hidden = Column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", Text, nullable=True)
    created_at = Column(String(32), nullable=False)
    updated_at = Column(String(32), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    history = relationship(
        "MemoryBlockHistoryRow",
        back_populates="block",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class MemoryBlockHistoryRow(Base):
    """One version of a block's value."""

    __tablename__ = "memory_block_history"
    __table_args__ = (
        Index("idx_memory_block_history_block_id", "block_id"),
    )

    id = Column(String(36), primary_key=True)
    block_id = Column(
        String(36),
        ForeignKey("memory_blocks.id", ondelete="CASCADE"),
        nullable=False,
    )
    label = Column(String(64), nullable=False)
    value = Column(Text, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(String(32), nullable=False)
    created_by = Column(String(16), nullable=False)

    block = relationship("MemoryBlockRow", back_populates="history")
