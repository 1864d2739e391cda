"""Boot-mode and privilege probes."""

from __future__ import annotations

import os
from pathlib import Path

from image_installer.config import settings
from image_installer.domain.models import MountedImage
from image_installer.exceptions import PrivilegeError
from image_installer.storage.mount import read_mount_table


def is_live_cd_boot() -> bool:
    """True when the running system booted from removable install media.

    An installed system also carries a live medium mount, but it is backed
    by a disk filesystem rather than by the ISO-9660 image itself.
    """
    medium = os.path.normpath(settings.get_setting("live_medium_root"))
    for _, mountpoint, fstype in read_mount_table():
        if mountpoint == medium:
            return fstype == "iso9660"
    return False


def live_image_roots() -> MountedImage:
    return MountedImage(
        container_root=Path(settings.get_setting("live_medium_root")),
        rootfs_root=Path(settings.get_setting("live_rootfs_root")),
    )


def require_root() -> None:
    euid = os.geteuid()
    if euid != 0:
        raise PrivilegeError(euid)
