"""Settings storage for installer configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "IMAGE_INSTALLER_SETTINGS_PATH",
        "/etc/image-installer/settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_CONTAINER_MOUNTPOINT = "/mnt/cdrom"
DEFAULT_ROOTFS_MOUNTPOINT = "/mnt/squashfs"
DEFAULT_KEYS_DIR = "/usr/share/image-installer/keys"

DEFAULT_SETTINGS: dict[str, Any] = {
    # Mount sequencer
    "container_mountpoint": DEFAULT_CONTAINER_MOUNTPOINT,
    "rootfs_mountpoint": DEFAULT_ROOTFS_MOUNTPOINT,
    "rootfs_image_path": "live/filesystem.squashfs",
    "package_manifest_path": "live/filesystem.packages",
    "distribution_package": "vyatta-version",
    # Live medium
    "live_medium_root": "/lib/live/mount/medium",
    "live_rootfs_root": "/lib/live/mount/rootfs/filesystem.squashfs",
    # Signature verification
    "minisign_command": "minisign",
    "minisign_primary_key": f"{DEFAULT_KEYS_DIR}/release.minisign.pub",
    "minisign_backup_key": f"{DEFAULT_KEYS_DIR}/backup.minisign.pub",
    "gpg_command": "gpg",
    "gpg_keyring": "/etc/apt/trusted.gpg",
    # External collaborators
    "fetch_command": "/usr/libexec/image-installer/fetch-remote",
    "vrf_exec_command": ["ip", "vrf", "exec"],
    "partition_resolver_command": "install-get-partition",
    "install_new_command": "install-image-new",
    "postinstall_new_command": "install-postinst-new",
    "postinstall_mode": "union",
    "install_existing_command": "install-image-existing",
    "workspace_dir": None,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings(path: Path | None = None) -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    path = path or SETTINGS_PATH
    if not path.exists():
        return
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def set_setting(key: str, value: Any) -> None:
    settings_store.values[key] = value


def get_path(key: str) -> Path:
    """Settings value as a Path; raises KeyError for unknown keys."""
    value = settings_store.values[key]
    return Path(value)


load_settings()
