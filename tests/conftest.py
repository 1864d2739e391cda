"""
Pytest configuration and shared fixtures for image-installer tests.

This module provides common fixtures and utilities used across all test modules.
"""

import hashlib
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from image_installer.config import settings
from image_installer.domain.models import DelegateResult
from image_installer.logging import logger
from image_installer.storage.mount import ISO9660_MAGIC, ISO9660_MAGIC_OFFSET, SQUASHFS_MAGIC


# ==============================================================================
# Settings / Logging Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path):
    """Reset settings to defaults for every test, with a private workspace dir."""
    settings.load_settings(tmp_path / "missing-settings.json")
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    settings.set_setting("workspace_dir", str(workspace))
    yield settings.settings_store.values
    settings.load_settings(tmp_path / "missing-settings.json")


@pytest.fixture
def log_messages() -> List[str]:
    """Capture loguru messages (formatted as '<LEVEL> <message>')."""
    messages: List[str] = []
    handler_id = logger.add(
        lambda message: messages.append(
            f"{message.record['level'].name} {message.record['message']}"
        ),
        level="TRACE",
        enqueue=False,
    )
    yield messages
    logger.remove(handler_id)


# ==============================================================================
# Image Fixtures
# ==============================================================================


def write_iso(path: Path, payload: bytes = b"") -> Path:
    """Write a file carrying the ISO-9660 volume descriptor identifier."""
    data = bytearray(ISO9660_MAGIC_OFFSET + 2048)
    data[ISO9660_MAGIC_OFFSET:ISO9660_MAGIC_OFFSET + len(ISO9660_MAGIC)] = ISO9660_MAGIC
    path.write_bytes(bytes(data) + payload)
    return path


@pytest.fixture
def iso_file(tmp_path) -> Path:
    return write_iso(tmp_path / "image.iso")


@pytest.fixture
def not_iso_file(tmp_path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"plain text, not an image\n" * 2000)
    return path


def build_image_tree(
    root: Path,
    *,
    files: Dict[str, bytes] = None,
    algorithm: str = "sha256",
    package: str = "vyatta-version",
    with_squashfs: bool = True,
) -> Path:
    """Lay out an ISO container tree under ``root``."""
    files = dict(files or {"live/vmlinuz": b"kernel", "live/initrd.img": b"initrd"})
    if with_squashfs:
        files.setdefault("live/filesystem.squashfs", SQUASHFS_MAGIC + b"\0" * 96)
    if package:
        files.setdefault("live/filesystem.packages", f"{package}\t1.4.0\n".encode())

    for name, content in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    if algorithm:
        lines = [
            f"{hashlib.new(algorithm, content).hexdigest()}  ./{name}"
            for name, content in sorted(files.items())
        ]
        (root / f"{algorithm}sum.txt").write_text("\n".join(lines) + "\n")
    return root


@pytest.fixture
def image_tree(tmp_path) -> Path:
    return build_image_tree(tmp_path / "cdrom")


# ==============================================================================
# Delegate Fixtures
# ==============================================================================


class RecordingRunner:
    """Stand-in for run_delegate that records argv and replays exit codes.

    ``results`` maps the program name (argv[0]) to an exit status, or to a
    callable receiving the argv and returning one.
    """

    def __init__(self, results: Dict[str, object] = None):
        self.results = dict(results or {})
        self.calls: List[tuple] = []
        self.envs: List[dict] = []

    def __call__(self, argv, *, env=None, cwd=None, capture=False):
        argv = tuple(str(arg) for arg in argv)
        self.calls.append(argv)
        self.envs.append(dict(env or {}))
        outcome = self.results.get(argv[0], 0)
        returncode = outcome(argv) if callable(outcome) else outcome
        return DelegateResult(argv=argv, returncode=returncode)

    def programs(self) -> List[str]:
        return [argv[0] for argv in self.calls]


@pytest.fixture
def recording_runner() -> Callable[..., RecordingRunner]:
    return RecordingRunner


@pytest.fixture
def make_iso() -> Callable[..., Path]:
    return write_iso


@pytest.fixture
def make_image_tree() -> Callable[..., Path]:
    return build_image_tree
