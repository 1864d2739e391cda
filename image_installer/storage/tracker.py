"""Process-wide record of everything an installer run has to undo.

Usage:
    from image_installer.storage.tracker import ResourceTracker

    with ResourceTracker() as tracker:
        if try_mount(iso, "/mnt/cdrom", fstype="iso9660"):
            tracker.register_mount(iso, "/mnt/cdrom")
        ...
    # every mount is gone and every temporary path deleted here, whatever
    # happened inside the block

``release_all`` is one-shot: a second call returns without doing anything.
``cleanup_started`` lets a signal handler tell that a release is under way.
"""

from __future__ import annotations

import shutil
import threading
from enum import Enum
from pathlib import Path
from typing import Callable

from image_installer.domain.models import MountEntry
from image_installer.exceptions import InstallerError
from image_installer.logging import LoggerFactory
from image_installer.storage import mount as mount_ops


log = LoggerFactory.for_mount()


class TrackerState(Enum):
    ACTIVE = "active"
    RELEASING = "releasing"
    RELEASED = "released"


class ResourceTracker:
    """Owns the MountSet and the temporary paths of one run."""

    def __init__(self, unmount: Callable[[str], bool] | None = None):
        self._unmount = unmount
        self._mounts: list[MountEntry] = []
        self._temp_paths: list[Path] = []
        self._guard = threading.Lock()
        self._state = TrackerState.ACTIVE

    def __enter__(self) -> ResourceTracker:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.release_all()
        finally:
            # A cancel signal can land before release_all() takes the guard.
            if self._state is TrackerState.ACTIVE:
                self.release_all()

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def cleanup_started(self) -> bool:
        """True from the moment release_all() takes the guard."""
        return self._guard.locked() or self._state is not TrackerState.ACTIVE

    @property
    def mounts(self) -> tuple[MountEntry, ...]:
        return tuple(self._mounts)

    @property
    def temp_paths(self) -> tuple[Path, ...]:
        return tuple(self._temp_paths)

    def _ensure_active(self) -> None:
        if self._state is not TrackerState.ACTIVE:
            raise InstallerError("Cannot register resources after cleanup started")

    def register_mount(self, source: Path | str, mountpoint: Path | str) -> MountEntry:
        """Record a mount that has just succeeded."""
        self._ensure_active()
        entry = MountEntry(source=str(source), mountpoint=str(mountpoint))
        self._mounts.append(entry)
        return entry

    def register_temp_path(self, path: Path | str) -> Path:
        """Record a temporary file or directory to delete on release."""
        self._ensure_active()
        path = Path(path)
        self._temp_paths.append(path)
        return path

    def release_all(self) -> None:
        """Unmount everything in reverse order, then delete temporary paths.

        Best effort: each step is attempted on its own and failures are
        logged, never raised.
        """
        # Non-blocking: a re-entrant call must not deadlock on the guard.
        if not self._guard.acquire(blocking=False):
            return
        try:
            if self._state is not TrackerState.ACTIVE:
                return
            self._state = TrackerState.RELEASING
        finally:
            self._guard.release()

        try:
            if self._mounts:
                log.info("Unmounting image filesystems")
            while self._mounts:
                entry = self._mounts.pop()
                self._release_mount(entry)

            if self._temp_paths:
                log.debug("Removing temporary files")
            while self._temp_paths:
                path = self._temp_paths.pop()
                self._release_path(path)
        finally:
            self._state = TrackerState.RELEASED

    def _release_mount(self, entry: MountEntry) -> None:
        try:
            unmount = self._unmount or mount_ops.unmount
            if not unmount(entry.mountpoint):
                log.warning(f"Failed to unmount {entry.mountpoint}")
            else:
                log.debug(f"Unmounted {entry.mountpoint}")
        except Exception as error:
            log.warning(f"Failed to unmount {entry.mountpoint}: {error}")

    def _release_path(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
            else:
                return
            log.debug(f"Removed {path}")
        except OSError as error:
            log.warning(f"Failed to remove {path}: {error}")
