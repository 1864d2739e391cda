"""Checksum verification of a mounted image tree.

The container root carries a manifest in ``sha256sum``/``md5sum`` output
format. The sha256 manifest is preferred; md5 is accepted for older images.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from image_installer.domain.models import ChecksumManifest, ChecksumReport
from image_installer.exceptions import ChecksumMismatchError, CorruptImageError
from image_installer.logging import LoggerFactory


log = LoggerFactory.for_verify()

# Preference order.
MANIFESTS = (
    ("sha256", "sha256sum.txt"),
    ("md5", "md5sum.txt"),
)

CHUNK_SIZE = 1024 * 1024


def parse_manifest(text: str, algorithm: str, source: Path) -> ChecksumManifest:
    entries: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        digest, _, name = line.partition(" ")
        # "<digest>  <name>" (text mode) or "<digest> *<name>" (binary mode)
        name = name.lstrip(" ")
        if name.startswith("*"):
            name = name[1:]
        if name.startswith("./"):
            name = name[2:]
        if not name:
            log.debug(f"Skipping malformed manifest line: {line}")
            continue
        entries[name] = digest.lower()
    return ChecksumManifest(algorithm=algorithm, source=source, entries=entries)


def load_manifest(container_root: Path | str) -> ChecksumManifest:
    """Load the strongest manifest available under ``container_root``.

    Raises:
        CorruptImageError: Neither manifest exists
    """
    root = Path(container_root)
    for algorithm, filename in MANIFESTS:
        path = root / filename
        if path.is_file():
            if algorithm != MANIFESTS[0][0]:
                log.warning(f"No {MANIFESTS[0][1]} found, falling back to {filename}")
            return parse_manifest(
                path.read_text(encoding="utf-8", errors="replace"), algorithm, path
            )
    raise CorruptImageError(root)


def file_digest(path: Path, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_manifest(manifest: ChecksumManifest, root: Path | str) -> ChecksumReport:
    """Hash every listed file relative to ``root``.

    Missing or unreadable files count as failures. Entries resolving outside
    ``root`` (absolute names or ``..`` components) are failures too and are
    never read.
    """
    root = Path(root)
    resolved_root = root.resolve()
    failures = []
    for name, expected in manifest.entries.items():
        path = (root / name).resolve()
        if not path.is_relative_to(resolved_root):
            log.debug(f"{name}: outside the image, not checked")
            failures.append(name)
            continue
        try:
            actual = file_digest(path, manifest.algorithm)
        except OSError as error:
            log.debug(f"{name}: cannot read ({error})")
            failures.append(name)
            continue
        if actual != expected:
            log.debug(f"{name}: FAILED")
            failures.append(name)
    return ChecksumReport(
        algorithm=manifest.algorithm,
        checked=len(manifest.entries),
        failures=tuple(failures),
    )


def verify_image_checksums(container_root: Path | str) -> ChecksumReport:
    """Verify the image tree under ``container_root`` against its manifest.

    Raises:
        CorruptImageError: No manifest
        ChecksumMismatchError: One or more files failed
    """
    manifest = load_manifest(container_root)
    log.info(f"Checking {manifest.algorithm} checksums of files on the image")
    report = verify_manifest(manifest, container_root)
    if not report.passed:
        for name in report.failures:
            log.error(f"Checksum failed: {name}")
        raise ChecksumMismatchError(report.failures, report.algorithm)
    log.success(f"Done! All {report.checked} files verified")
    return report
