"""Custom exceptions for image installation.

This module defines a hierarchy of exceptions for the installer so that the
top-level run can report a human-readable cause and pick an exit status
without inspecting where the failure came from.

Exception Hierarchy:
    InstallerError (base)
        ├── ConfigurationError
        │   ├── InvalidArgumentsError
        │   ├── PrivilegeError
        │   └── OperatorDeclinedError
        ├── FetchError
        ├── ImageError
        │   ├── NotAnIsoImageError
        │   ├── InvalidImageError
        │   └── CorruptImageError
        ├── MountError
        │   └── MountFailedError
        ├── ChecksumMismatchError
        ├── InstallError
        │   ├── PartitionResolutionError
        │   ├── UnknownPartitionTypeError
        │   ├── DeviceNotFoundError
        │   └── DelegateFailedError
        └── InterruptedRunError

Configuration errors are raised before anything is acquired. Everything else
may be raised after mounts or temporary files exist; the resource tracker
releases them on the way out.

Usage:
    from image_installer.exceptions import NotAnIsoImageError

    if not is_iso9660(image_path):
        raise NotAnIsoImageError(image_path)
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class InstallerError(Exception):
    """Base exception for all installer failures."""

    exit_code: int = 1


class ConfigurationError(InstallerError):
    """Bad inputs or unmet preconditions, detected before any side effect."""


class InvalidArgumentsError(ConfigurationError):
    """The combination of command-line inputs is not allowed."""


class PrivilegeError(ConfigurationError):
    """The installer is not running with administrative privilege."""

    def __init__(self, euid: int):
        self.euid = euid
        super().__init__("Must be root to install a system image")


class OperatorDeclinedError(ConfigurationError):
    """The operator answered a confirmation prompt negatively."""

    def __init__(self, question: str):
        self.question = question
        super().__init__("Exiting installation")


class FetchError(InstallerError):
    """The image could not be resolved into a local file."""

    def __init__(self, reference: str, reason: str = ""):
        self.reference = reference
        self.reason = reason
        msg = f"The image cannot be fetched from: {reference}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ImageError(InstallerError):
    """Base exception for image content validation failures."""


class NotAnIsoImageError(ImageError):
    """The supplied file does not carry an ISO-9660 filesystem."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"{self.path} is not an ISO-9660 image file")


class InvalidImageError(ImageError):
    """The ISO is mountable but is not a valid distribution image."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path} is not a valid distribution image: {reason}")


class CorruptImageError(ImageError):
    """No checksum manifest could be found in the image."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        super().__init__(
            f"No checksum manifest under {self.root}: "
            "image is corrupt or not a recognized image"
        )


class MountError(InstallerError):
    """Base exception for mount-related errors."""


class MountFailedError(MountError):
    """The mount mechanism itself failed."""

    def __init__(self, source: Path | str, mountpoint: Path | str, reason: str = ""):
        self.source = str(source)
        self.mountpoint = str(mountpoint)
        self.reason = reason
        msg = f"Failed to mount {self.source} at {self.mountpoint}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ChecksumMismatchError(InstallerError):
    """One or more files in the image did not match the manifest."""

    def __init__(self, failures: Sequence[str], algorithm: str):
        self.failures = tuple(failures)
        self.algorithm = algorithm
        super().__init__(
            f"Found {len(self.failures)} {algorithm} checksum failure(s); "
            "the image is corrupt"
        )


class InstallError(InstallerError):
    """Base exception for the partition and install stages."""


class PartitionResolutionError(InstallError):
    """The partition resolver failed or returned an unusable plan."""


class UnknownPartitionTypeError(InstallError):
    """The resolver returned a category with no install strategy."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown partition type: {category!r}")


class DeviceNotFoundError(InstallError):
    """A device named by the partition plan is not an addressable block device."""

    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(f"Device not found: {device_name}")


class DelegateFailedError(InstallError):
    """An external installer program exited non-zero."""

    def __init__(self, step: str, returncode: int):
        self.step = step
        self.returncode = returncode
        super().__init__(f"{step} failed (exit status {returncode})")


class InterruptedRunError(InstallerError):
    """The run was cancelled by a signal."""

    def __init__(self, signum: int, signame: str = ""):
        self.signum = signum
        self.signame = signame or str(signum)
        super().__init__(f"Installation interrupted by {self.signame}")
