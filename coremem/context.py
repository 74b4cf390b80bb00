from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

from coremem.memory.manager import MemoryManager
from coremem.memory.schema import MemoryCompileOptions


@dataclass
class AgentContext:
    """State handed to every tool call.

    ``memory_manager`` is None when memory is disabled for the run.
    ``compile_options`` describes the model the prompt is being built for.
    """

    memory_manager: Optional[MemoryManager]
    session_id: str = field(default_factory=lambda: str(uuid4()))
    compile_options: MemoryCompileOptions = field(default_factory=MemoryCompileOptions)
