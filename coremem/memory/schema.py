"""
Records exchanged between the memory store, manager, compiler and tools.

Blocks handed out by the store are frozen; the compiler and tools may read
them freely without affecting the cached copies.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CHAR_LIMIT = 4000
DEFAULT_SCOPE = "global"

# Labels become tag names in the compiled memory text
LABEL_PATTERN = r"^[A-Za-z][A-Za-z0-9_-]{0,63}$"


class Actor(str, Enum):
    """Who made a change recorded in block history."""

    AGENT = "agent"
    USER = "user"
    SYSTEM = "system"


class MemoryBlock(BaseModel):
    """A labeled, versioned block of text persisted across sessions."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    value: str = ""
    description: Optional[str] = None
    char_limit: int = DEFAULT_CHAR_LIMIT
    read_only: bool = False
    hidden: bool = False
    created_at: datetime
    updated_at: datetime
    version: int = 1
    metadata: Optional[Dict[str, Any]] = None

    @property
    def chars_current(self) -> int:
        return len(self.value)


class MemoryBlockHistory(BaseModel):
    """One row of a block's append-only audit trail."""

    model_config = ConfigDict(frozen=True)

    id: str
    block_id: str
    label: str
    value: str
    version: int
    created_at: datetime
    created_by: Actor


class CreateMemoryBlock(BaseModel):
    """Specification for a new block."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    label: str = Field(pattern=LABEL_PATTERN)
    value: str = ""
    description: Optional[str] = None
    char_limit: int = Field(default=DEFAULT_CHAR_LIMIT, ge=1, alias="charLimit")
    read_only: bool = Field(default=False, alias="readOnly")
    hidden: bool = False
    metadata: Optional[Dict[str, Any]] = None


class UpdateMemoryBlock(BaseModel):
    """Partial update of a block.

    Only fields that were explicitly given are applied. ``provided()``
    distinguishes an omitted field from one set to ``""`` or ``None``.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    value: Optional[str] = None
    description: Optional[str] = None
    char_limit: Optional[int] = Field(default=None, ge=1, alias="charLimit")
    read_only: Optional[bool] = Field(default=None, alias="readOnly")
    hidden: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None

    def provided(self) -> Dict[str, Any]:
        """Return only the fields the caller set."""
        return self.model_dump(exclude_unset=True)

    def is_set(self, field_name: str) -> bool:
        return field_name in self.model_fields_set

    @property
    def changes_value(self) -> bool:
        return self.is_set("value") and self.value is not None


class MemorySnapshot(BaseModel):
    """All blocks in a scope plus the scope's overall timestamps."""

    blocks: List[MemoryBlock]
    created_at: datetime
    updated_at: datetime


class MemoryCompileOptions(BaseModel):
    """Options for rendering memory into prompt text.

    ``model_endpoint_type`` names the provider family of the model the
    prompt is built for. Line-numbered values are rendered only for
    ``"anthropic"``.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_endpoint_type: Optional[str] = None

    @property
    def use_line_numbers(self) -> bool:
        return self.model_endpoint_type == "anthropic"


class MemoryBlockMetadata(BaseModel):
    chars_current: int
    chars_limit: int
    read_only: bool


class CompiledMemoryBlock(BaseModel):
    """Structured view of a visible block, for inspection and display."""

    label: str
    description: str
    metadata: MemoryBlockMetadata
    value: str
