"""Domain models for image installation.

This package contains the immutable value objects handed between the
installer stages.
"""

from __future__ import annotations

from .models import (
    AcquiredImage,
    ChecksumManifest,
    ChecksumReport,
    Credentials,
    DelegateResult,
    MountedImage,
    MountEntry,
    PartitionCategory,
    PartitionPlan,
    RunConfiguration,
    SignatureScheme,
)


__all__ = [
    "AcquiredImage",
    "ChecksumManifest",
    "ChecksumReport",
    "Credentials",
    "DelegateResult",
    "MountedImage",
    "MountEntry",
    "PartitionCategory",
    "PartitionPlan",
    "RunConfiguration",
    "SignatureScheme",
]
