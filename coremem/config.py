"""Memory configuration.

Settings are read from (in increasing precedence):
1. Defaults
2. Global settings file: ~/.coremem/settings.json
3. Project settings file: {project_root}/.coremem/settings.json
4. Environment variables (COREMEM_*) and .env
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from coremem.memory.schema import DEFAULT_SCOPE, CreateMemoryBlock

SETTINGS_FILENAME = "settings.json"


def get_default_coremem_dir() -> Path:
    """Get the default ~/.coremem directory."""
    return Path.home() / ".coremem"


def default_memory_blocks() -> List[CreateMemoryBlock]:
    return [
        CreateMemoryBlock(
            label="persona",
            value="You are an AI coding assistant with expertise in software development.",
            description="Your role and capabilities",
            char_limit=2000,
            read_only=True,
        ),
        CreateMemoryBlock(
            label="project",
            value="",
            description="Information about the current project",
            char_limit=4000,
        ),
        CreateMemoryBlock(
            label="tasks",
            value="",
            description="Tasks and action items for the project",
            char_limit=4000,
        ),
    ]


class MemorySettings(BaseSettings):
    """Settings for the memory subsystem."""

    model_config = SettingsConfigDict(
        env_prefix="COREMEM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    enabled: bool = True
    database_path: Path = Field(
        default_factory=lambda: get_default_coremem_dir() / "memory.db"
    )
    scope: str = DEFAULT_SCOPE
    max_blocks: int = 10
    default_blocks: List[CreateMemoryBlock] = Field(
        default_factory=default_memory_blocks
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("max_blocks")
    @classmethod
    def _clamp_max_blocks(cls, value: int) -> int:
        return max(1, value)

    @field_validator("database_path")
    @classmethod
    def _expand_database_path(cls, value: Path) -> Path:
        return value.expanduser()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Environment beats .env, which beats values loaded from settings files."""
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Accept camelCase keys (``maxBlocks``) as well as snake_case."""
    return {_snake_case(key): value for key, value in data.items()}


def merge_settings(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge: nested dicts merge recursively, anything else is replaced."""
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_settings(result[key], value)
        else:
            result[key] = value
    return result


def read_settings_file(path: Path) -> Dict[str, Any]:
    """Read the "memory" object of a settings file.

    Raises:
        json.JSONDecodeError: If the file contains invalid JSON.
        OSError: If the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    memory = data.get("memory", {}) if isinstance(data, dict) else {}
    return _normalize_keys(memory) if isinstance(memory, dict) else {}


def load_settings(
    project_root: Optional[Path] = None,
    coremem_dir: Optional[Path] = None,
) -> MemorySettings:
    """Load and merge memory settings from all sources.

    Args:
        project_root: Project directory for project-specific settings.
        coremem_dir: Override for the ~/.coremem directory (for testing).

    Returns:
        MemorySettings with environment > project > global > defaults precedence.
    """
    if coremem_dir is None:
        coremem_dir = get_default_coremem_dir()

    candidates = [coremem_dir / SETTINGS_FILENAME]
    if project_root:
        candidates.append(Path(project_root) / ".coremem" / SETTINGS_FILENAME)

    merged: Dict[str, Any] = {}
    for path in candidates:
        if not path.exists():
            continue
        try:
            merged = merge_settings(merged, read_settings_file(path))
        except (json.JSONDecodeError, OSError) as e:
            # Log warning but continue - don't fail on bad config
            logging.warning(f"Failed to load memory settings from {path}: {e}")

    return MemorySettings(**merged)


def save_settings(settings: MemorySettings, path: Path) -> None:
    """Write the memory settings into a settings file, keeping other keys."""
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logging.warning(f"Overwriting unreadable settings file {path}: {e}")
            data = {}

    data["memory"] = settings.model_dump(mode="json", exclude={"log_level"})
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
