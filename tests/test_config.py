"""
Tests for memory settings loading.
"""

import json
import logging

import pytest

from coremem.config import (
    MemorySettings,
    load_settings,
    merge_settings,
    save_settings,
)


@pytest.fixture
def dirs(temp_dir, monkeypatch):
    """Global and project directories, with no stray .env or COREMEM_ variables."""
    monkeypatch.chdir(temp_dir)
    for name in ["ENABLED", "DATABASE_PATH", "SCOPE", "MAX_BLOCKS", "LOG_LEVEL"]:
        monkeypatch.delenv(f"COREMEM_{name}", raising=False)

    coremem_dir = temp_dir / "home" / ".coremem"
    project_root = temp_dir / "project"
    coremem_dir.mkdir(parents=True)
    (project_root / ".coremem").mkdir(parents=True)
    return coremem_dir, project_root


def write_settings(path, memory):
    path.write_text(json.dumps({"memory": memory}))


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self, dirs):
        """Test the settings when no file exists."""
        coremem_dir, project_root = dirs

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.enabled is True
        assert settings.scope == "global"
        assert settings.max_blocks == 10
        assert settings.database_path.name == "memory.db"
        assert [b.label for b in settings.default_blocks] == ["persona", "project", "tasks"]
        assert settings.default_blocks[0].read_only is True

    def test_global_file(self, dirs):
        """Test that the global file overrides defaults."""
        coremem_dir, project_root = dirs
        write_settings(coremem_dir / "settings.json", {"maxBlocks": 4, "enabled": False})

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.max_blocks == 4
        assert settings.enabled is False

    def test_project_overrides_global(self, dirs):
        """Test that project settings win over global settings."""
        coremem_dir, project_root = dirs
        write_settings(coremem_dir / "settings.json", {"maxBlocks": 4, "scope": "team"})
        write_settings(project_root / ".coremem" / "settings.json", {"max_blocks": 6})

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.max_blocks == 6
        assert settings.scope == "team"

    def test_environment_overrides_files(self, dirs, monkeypatch):
        """Test that COREMEM_ variables win over settings files."""
        coremem_dir, project_root = dirs
        write_settings(coremem_dir / "settings.json", {"maxBlocks": 4})
        monkeypatch.setenv("COREMEM_MAX_BLOCKS", "7")

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.max_blocks == 7

    def test_custom_default_blocks(self, dirs):
        """Test that default blocks can be configured with camelCase keys."""
        coremem_dir, project_root = dirs
        write_settings(
            coremem_dir / "settings.json",
            {"defaultBlocks": [{"label": "notes", "charLimit": 100, "readOnly": False}]},
        )

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert len(settings.default_blocks) == 1
        assert settings.default_blocks[0].label == "notes"
        assert settings.default_blocks[0].char_limit == 100

    def test_invalid_json_is_skipped(self, dirs, caplog):
        """Test that a broken settings file is logged and ignored."""
        coremem_dir, project_root = dirs
        (coremem_dir / "settings.json").write_text("{not json")
        write_settings(project_root / ".coremem" / "settings.json", {"maxBlocks": 3})

        with caplog.at_level(logging.WARNING):
            settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.max_blocks == 3
        assert "Failed to load memory settings" in caplog.text

    def test_file_without_memory_section(self, dirs):
        """Test that other keys in the settings file are ignored."""
        coremem_dir, project_root = dirs
        (coremem_dir / "settings.json").write_text(json.dumps({"theme": "dark"}))

        settings = load_settings(project_root=project_root, coremem_dir=coremem_dir)

        assert settings.max_blocks == 10


class TestMemorySettings:
    """Tests for MemorySettings validation."""

    def test_max_blocks_clamped(self, dirs):
        """Test that a non-positive block limit becomes 1."""
        assert MemorySettings(max_blocks=0).max_blocks == 1

    def test_database_path_expanded(self, dirs):
        """Test that ~ in the database path is expanded."""
        settings = MemorySettings(database_path="~/somewhere/memory.db")

        assert "~" not in str(settings.database_path)


class TestSaveSettings:
    """Tests for save_settings."""

    def test_round_trip(self, dirs):
        """Test that saved settings load back unchanged."""
        coremem_dir, project_root = dirs
        settings = MemorySettings(max_blocks=5, scope="work")

        save_settings(settings, coremem_dir / "settings.json")
        loaded = load_settings(coremem_dir=coremem_dir)

        assert loaded.max_blocks == 5
        assert loaded.scope == "work"
        assert loaded.default_blocks == settings.default_blocks

    def test_keeps_other_keys(self, dirs):
        """Test that unrelated keys in the file survive a save."""
        coremem_dir, _ = dirs
        path = coremem_dir / "settings.json"
        path.write_text(json.dumps({"theme": "dark"}))

        save_settings(MemorySettings(), path)

        data = json.loads(path.read_text())
        assert data["theme"] == "dark"
        assert data["memory"]["max_blocks"] == 10
        assert "log_level" not in data["memory"]


class TestMergeSettings:
    """Tests for merge_settings."""

    def test_nested_merge(self):
        """Test that nested dicts merge and scalars are replaced."""
        base = {"a": 1, "nested": {"x": 1, "y": 2}}
        overrides = {"a": 2, "nested": {"y": 3}}

        assert merge_settings(base, overrides) == {"a": 2, "nested": {"x": 1, "y": 3}}
        assert base == {"a": 1, "nested": {"x": 1, "y": 2}}
