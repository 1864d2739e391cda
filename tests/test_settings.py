"""
Tests for image_installer.config.settings module.

This test suite covers:
- Default settings initialization
- Overrides loaded from a JSON file
- Error handling for corrupted settings files
- Path helpers
"""

import json
from pathlib import Path

import pytest

from image_installer.config import settings


class TestLoadSettings:
    """Tests for load_settings() function."""

    def test_load_defaults_when_no_file(self, tmp_path):
        settings.load_settings(tmp_path / "nonexistent" / "settings.json")

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS

    def test_overrides_merge_with_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"container_mountpoint": "/run/cd", "extra": 1}))

        settings.load_settings(path)

        assert settings.get_setting("container_mountpoint") == "/run/cd"
        assert settings.get_setting("rootfs_mountpoint") == "/mnt/squashfs"
        assert settings.get_setting("extra") == 1

    def test_corrupted_file_uses_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{invalid json")

        settings.load_settings(path)

        assert settings.get_setting("minisign_command") == "minisign"

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps(["not", "a", "dict"]))

        settings.load_settings(path)

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS

    def test_reload_drops_previous_overrides(self, tmp_path):
        settings.set_setting("postinstall_mode", "custom")

        settings.load_settings(tmp_path / "missing.json")

        assert settings.get_setting("postinstall_mode") == "union"


class TestAccessors:
    def test_get_setting_default(self):
        assert settings.get_setting("nonexistent", "fallback") == "fallback"

    def test_get_path(self):
        assert settings.get_path("container_mountpoint") == Path("/mnt/cdrom")

    def test_get_path_unknown_key(self):
        with pytest.raises(KeyError):
            settings.get_path("nonexistent")

    def test_defaults_are_not_mutated(self):
        settings.set_setting("container_mountpoint", "/elsewhere")
        assert settings.DEFAULT_SETTINGS["container_mountpoint"] == "/mnt/cdrom"
