"""Mount primitives and the two-stage image mount sequence.

An installable image is an ISO-9660 container holding a squashfs root
filesystem. ``mount_image`` exposes both trees read-only:

1. the ISO is mounted (loop, read-only) at the container mountpoint;
2. the squashfs found inside it is mounted at the rootfs mountpoint.

Each mount is registered with the resource tracker as soon as it succeeds,
so a failure at stage 2 still unmounts stage 1.

Functions:
    - is_iso9660(): Check for the ISO-9660 volume descriptor
    - is_squashfs(): Check for the squashfs superblock magic
    - read_mount_table(): Parse /proc/mounts
    - is_mountpoint_active(): Whether a path is currently a mountpoint
    - try_mount(): The single retry-free mount primitive
    - unmount(): Unmount a mountpoint
    - mount_image(): Validate and mount both stages
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from image_installer.config import settings
from image_installer.domain.models import MountedImage
from image_installer.exceptions import (
    InvalidImageError,
    MountFailedError,
    NotAnIsoImageError,
)
from image_installer.logging import LoggerFactory
from image_installer.storage.command_runners import run_delegate

if TYPE_CHECKING:
    from image_installer.storage.tracker import ResourceTracker


log = LoggerFactory.for_mount()

# The primary volume descriptor lives in sector 16 (2048-byte sectors); its
# standard identifier follows the one-byte descriptor type.
ISO9660_MAGIC = b"CD001"
ISO9660_MAGIC_OFFSET = 16 * 2048 + 1
SQUASHFS_MAGIC = b"hsqs"

READ_ONLY_LOOP = ("ro", "loop")

PROC_MOUNTS = "/proc/mounts"


def _read_magic(path: Path | str, offset: int, length: int) -> bytes:
    try:
        with open(path, "rb") as handle:
            handle.seek(offset)
            return handle.read(length)
    except OSError:
        return b""


def is_iso9660(path: Path | str) -> bool:
    return _read_magic(path, ISO9660_MAGIC_OFFSET, len(ISO9660_MAGIC)) == ISO9660_MAGIC


def is_squashfs(path: Path | str) -> bool:
    return _read_magic(path, 0, len(SQUASHFS_MAGIC)) == SQUASHFS_MAGIC


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts octal-escapes whitespace and backslashes.
    return (
        value.replace("\\040", " ")
        .replace("\\011", "\t")
        .replace("\\012", "\n")
        .replace("\\134", "\\")
    )


def read_mount_table(path: str = PROC_MOUNTS) -> list[tuple[str, str, str]]:
    """Return (device, mountpoint, fstype) for every active mount.

    Returns an empty list when the table cannot be read.
    """
    entries = []
    try:
        with open(path, "r", encoding="utf-8") as mounts_file:
            for line in mounts_file:
                parts = line.split()
                if len(parts) < 3:
                    continue
                entries.append(
                    (
                        _unescape_mount_field(parts[0]),
                        _unescape_mount_field(parts[1]),
                        parts[2],
                    )
                )
    except OSError:
        return []
    return entries


def is_mountpoint_active(mountpoint: Path | str) -> bool:
    """Check if a mountpoint is currently active."""
    target = os.path.normpath(str(mountpoint))
    if not os.path.exists(PROC_MOUNTS):
        return os.path.ismount(target)
    return any(entry[1] == target for entry in read_mount_table())


def try_mount(
    source: Path | str,
    target: Path | str,
    *,
    fstype: str,
    options: Sequence[str] = READ_ONLY_LOOP,
) -> bool:
    """Mount ``source`` at ``target``; no retries.

    Creates the mountpoint directory if needed.

    Returns:
        True if mount exited successfully
    """
    try:
        Path(target).mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as error:
        log.error(f"Cannot create mountpoint {target}: {error}")
        return False
    argv = ["mount", "-t", fstype]
    if options:
        argv += ["-o", ",".join(options)]
    argv += [str(source), str(target)]
    return run_delegate(argv, capture=True).succeeded


def unmount(target: Path | str) -> bool:
    """Unmount ``target``.

    Returns:
        True if umount exited successfully
    """
    return run_delegate(["umount", str(target)], capture=True).succeeded


def _mount_stage(
    source: Path,
    target: Path,
    fstype: str,
    tracker: ResourceTracker,
) -> None:
    if is_mountpoint_active(target):
        raise MountFailedError(source, target, "mountpoint is already in use")
    if not try_mount(source, target, fstype=fstype):
        raise MountFailedError(source, target)
    tracker.register_mount(source, target)
    log.debug(f"Mounted {source} at {target} ({fstype})")


def _lists_distribution_package(manifest: Path, package: str) -> bool:
    try:
        lines = manifest.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return False
    for line in lines:
        fields = line.split()
        if fields and fields[0].split(":")[0] == package:
            return True
    return False


def mount_image(
    image_path: Path | str,
    tracker: ResourceTracker,
    *,
    container_mountpoint: Path | None = None,
    rootfs_mountpoint: Path | None = None,
) -> MountedImage:
    """Validate an image and mount its container and root filesystem.

    Args:
        image_path: Local path to the ISO file
        tracker: Resource tracker that will own both mounts
        container_mountpoint: Override the configured ISO mountpoint
        rootfs_mountpoint: Override the configured squashfs mountpoint

    Returns:
        MountedImage with both roots

    Raises:
        NotAnIsoImageError: File is not ISO-9660 (nothing is mounted)
        InvalidImageError: Container lacks the root filesystem or the
            distribution package entry
        MountFailedError: The mount mechanism failed
    """
    image_path = Path(image_path)
    container = container_mountpoint or settings.get_path("container_mountpoint")
    rootfs = rootfs_mountpoint or settings.get_path("rootfs_mountpoint")

    if not is_iso9660(image_path):
        raise NotAnIsoImageError(image_path)

    log.info(f"Mounting {image_path.name}")
    _mount_stage(image_path, container, "iso9660", tracker)

    squashfs = container / settings.get_setting("rootfs_image_path")
    packages = container / settings.get_setting("package_manifest_path")
    package = settings.get_setting("distribution_package")

    if not squashfs.is_file() or not is_squashfs(squashfs):
        raise InvalidImageError(image_path, f"missing root filesystem {squashfs}")
    if not _lists_distribution_package(packages, package):
        raise InvalidImageError(
            image_path, f"package manifest does not list {package}"
        )

    _mount_stage(squashfs, rootfs, "squashfs", tracker)
    return MountedImage(container_root=container, rootfs_root=rootfs)
