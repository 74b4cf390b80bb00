"""
Exceptions for the memory block system.

Every failure mode has a distinct ``MemoryErrorKind`` so callers at the
tool boundary can map errors to results without inspecting messages.
"""

from enum import Enum
from typing import Optional


class MemoryErrorKind(str, Enum):
    """Closed set of memory failure modes."""

    NOT_FOUND = "not_found"
    DUPLICATE_LABEL = "duplicate_label"
    READ_ONLY = "read_only"
    CHAR_LIMIT_EXCEEDED = "char_limit_exceeded"
    CONTENT_NOT_FOUND = "content_not_found"
    BLOCK_LIMIT_REACHED = "block_limit_reached"
    STORAGE_ERROR = "storage_error"


class MemoryError(Exception):
    """Base exception for memory operations."""

    kind: MemoryErrorKind = MemoryErrorKind.STORAGE_ERROR

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label


class MemoryNotFoundError(MemoryError):
    """Raised when no block with the requested label exists."""

    kind = MemoryErrorKind.NOT_FOUND


class DuplicateLabelError(MemoryError):
    """Raised when creating a block whose label is already taken."""

    kind = MemoryErrorKind.DUPLICATE_LABEL


class ReadOnlyViolationError(MemoryError):
    """Raised when a mutation targets a read-only block."""

    kind = MemoryErrorKind.READ_ONLY


class CharLimitExceededError(MemoryError):
    """Raised when a value would be longer than the block's char limit."""

    kind = MemoryErrorKind.CHAR_LIMIT_EXCEEDED

    def __init__(self, message: str, label: Optional[str] = None, length: int = 0, limit: int = 0):
        super().__init__(message, label)
        self.length = length
        self.limit = limit


class ContentNotFoundError(MemoryError):
    """Raised when replace's old content does not occur in the block."""

    kind = MemoryErrorKind.CONTENT_NOT_FOUND


class BlockLimitReachedError(MemoryError):
    """Raised when the scope already holds the maximum number of blocks."""

    kind = MemoryErrorKind.BLOCK_LIMIT_REACHED


class MemoryStorageError(MemoryError):
    """Raised when a storage operation fails."""

    kind = MemoryErrorKind.STORAGE_ERROR
