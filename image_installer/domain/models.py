"""Domain model for image installation.

Type-safe value objects passed between the acquire, verify, mount and
install stages. Everything here is immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from image_installer.exceptions import (
    InvalidArgumentsError,
    PartitionResolutionError,
)


# ==============================================================================
# Run Configuration
# ==============================================================================


@dataclass(frozen=True)
class Credentials:
    """Username/password pair handed to the remote transport."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class RunConfiguration:
    """Inputs for one installer invocation."""

    image_ref: Optional[str] = None
    credentials: Optional[Credentials] = None
    routing_domain: Optional[str] = None
    assume_defaults: bool = False

    @classmethod
    def from_inputs(
        cls,
        *,
        image_ref: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        routing_domain: Optional[str] = None,
        assume_defaults: bool = False,
    ) -> RunConfiguration:
        """Build a configuration, enforcing the credential pairing rule.

        Raises:
            InvalidArgumentsError: If exactly one of username/password is set
        """
        if bool(username) != bool(password):
            raise InvalidArgumentsError(
                "Username and password must be given together"
            )
        credentials = Credentials(username, password) if username else None
        return cls(
            image_ref=image_ref or None,
            credentials=credentials,
            routing_domain=routing_domain or None,
            assume_defaults=assume_defaults,
        )


# ==============================================================================
# Image Domain
# ==============================================================================


class SignatureScheme(Enum):
    NONE = "none"
    MINISIGN = "minisig"
    OPENPGP = "asc"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


@dataclass(frozen=True)
class AcquiredImage:
    """A local image file, plus the detached signature fetched next to it."""

    path: Path
    signature_path: Optional[Path] = None
    signature_scheme: SignatureScheme = SignatureScheme.NONE
    remote: bool = False

    @property
    def has_signature(self) -> bool:
        return self.signature_scheme is not SignatureScheme.NONE


@dataclass(frozen=True)
class MountEntry:
    source: str
    mountpoint: str


@dataclass(frozen=True)
class MountedImage:
    """The two trees exposed by an image: the ISO root and the root filesystem."""

    container_root: Path
    rootfs_root: Path

    def as_env(self) -> dict[str, str]:
        """Environment handed to install delegates."""
        return {
            "IMAGE_CONTAINER_ROOT": str(self.container_root),
            "IMAGE_ROOTFS_ROOT": str(self.rootfs_root),
        }


@dataclass(frozen=True)
class ChecksumManifest:
    algorithm: str  # "sha256" or "md5"
    source: Path
    entries: Mapping[str, str]


@dataclass(frozen=True)
class ChecksumReport:
    algorithm: str
    checked: int
    failures: tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.failures


# ==============================================================================
# Partition / Install Domain
# ==============================================================================


class PartitionCategory(Enum):
    NEW = "new"
    UNION = "union"
    OLD = "old"


@dataclass(frozen=True)
class PartitionPlan:
    """What the partition resolver decided.

    ``category`` is kept as the raw string so an unrecognized value reaches
    the dispatcher and is reported there.
    """

    category: str
    partition: Optional[str] = None
    drive: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> PartitionPlan:
        """Parse ``<category> [<partition> [<drive>]]``.

        Raises:
            PartitionResolutionError: If the resolver wrote nothing
        """
        tokens = text.split()
        if not tokens:
            raise PartitionResolutionError("Partition resolver returned no result")
        padded = tokens + [None, None]
        return cls(category=tokens[0], partition=padded[1], drive=padded[2])


@dataclass(frozen=True)
class DelegateResult:
    """Outcome of an external program; the exit status is the only signal."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def failure_code(self) -> Optional[int]:
        return None if self.succeeded else self.returncode
