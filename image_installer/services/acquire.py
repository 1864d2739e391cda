"""Resolve an image reference into a local file.

Remote references (``http``, ``https``, ``ftp``, ``tftp``, ``scp``,
``sftp``) are downloaded by the external transport into a temporary
workspace, together with a detached signature when one is published next to
the image. Anything else is a local path and is used as it is: no signature
is fetched or checked for local images.
"""

from __future__ import annotations

import posixpath
import shlex
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from image_installer.config import settings
from image_installer.domain.models import (
    AcquiredImage,
    Credentials,
    RunConfiguration,
    SignatureScheme,
)
from image_installer.exceptions import FetchError
from image_installer.logging import LoggerFactory
from image_installer.storage.command_runners import run_delegate
from image_installer.storage.tracker import ResourceTracker


log = LoggerFactory.for_fetch()

REMOTE_SCHEMES = frozenset({"http", "https", "ftp", "tftp", "scp", "sftp"})
DEFAULT_IMAGE_NAME = "image.iso"

# Tried in order; the second is only fetched when the first is unavailable.
SIGNATURE_SCHEMES = (SignatureScheme.MINISIGN, SignatureScheme.OPENPGP)


def is_remote_reference(reference: str) -> bool:
    scheme, sep, _ = reference.partition("://")
    return bool(sep) and scheme.lower() in REMOTE_SCHEMES


def image_filename(reference: str) -> str:
    """Final path segment of a URL, used as the download file name."""
    name = posixpath.basename(urlparse(reference).path.rstrip("/"))
    return name or DEFAULT_IMAGE_NAME


def signature_url(reference: str, scheme: SignatureScheme) -> str:
    """URL of the detached signature published next to the image."""
    parts = urlparse(reference)
    return parts._replace(path=parts.path + scheme.suffix).geturl()


def vrf_exec_prefix(routing_domain: str) -> list[str]:
    """Command prefix running the transport inside ``routing_domain``.

    The configured command may be a list or a shell-style string.
    """
    command = settings.get_setting("vrf_exec_command")
    if isinstance(command, str):
        command = shlex.split(command)
    return [*command, routing_domain]


def fetch(
    destination: Path | str,
    source: str,
    credentials: Optional[Credentials] = None,
    routing_domain: Optional[str] = None,
) -> bool:
    """Download ``source`` to ``destination`` with the external transport.

    Credentials are passed in the environment of this one subprocess only;
    the routing domain runs the transport inside that VRF.

    Returns:
        True if the transport exited successfully
    """
    argv = [
        settings.get_setting("fetch_command"),
        "--local-file",
        str(destination),
        "--remote-path",
        source,
    ]
    if routing_domain:
        argv = [*vrf_exec_prefix(routing_domain), *argv]

    env = None
    if credentials is not None:
        env = {
            "REMOTE_USERNAME": credentials.username,
            "REMOTE_PASSWORD": credentials.password,
        }
    return run_delegate(argv, env=env).succeeded


def create_workspace(tracker: ResourceTracker) -> Path:
    workspace = Path(
        tempfile.mkdtemp(
            prefix="image-installer-",
            dir=settings.get_setting("workspace_dir"),
        )
    )
    return tracker.register_temp_path(workspace)


def _fetch_signature(
    image_path: Path, reference: str, config: RunConfiguration
) -> tuple[Optional[Path], SignatureScheme]:
    for scheme in SIGNATURE_SCHEMES:
        signature_path = image_path.with_name(image_path.name + scheme.suffix)
        if fetch(
            signature_path,
            signature_url(reference, scheme),
            config.credentials,
            config.routing_domain,
        ):
            log.info(f"Found {scheme.value} signature")
            return signature_path, scheme
        log.info(f"{scheme.value} signature is not available")
    return None, SignatureScheme.NONE


def acquire_image(config: RunConfiguration, tracker: ResourceTracker) -> AcquiredImage:
    """Turn ``config.image_ref`` into an AcquiredImage.

    Raises:
        FetchError: The download failed, or a local path is not a file
    """
    reference = config.image_ref
    if not reference:
        raise FetchError("(none)", "no image reference given")

    if not is_remote_reference(reference):
        local_path = Path(reference)
        if not local_path.is_file():
            raise FetchError(reference, "no such file")
        log.info(f"Using local image {local_path}")
        return AcquiredImage(path=local_path)

    workspace = create_workspace(tracker)
    image_path = workspace / image_filename(reference)

    log.info(f"Trying to fetch image from {reference}")
    if not fetch(image_path, reference, config.credentials, config.routing_domain):
        raise FetchError(reference, "download failed")
    if not image_path.is_file():
        raise FetchError(reference, "transport produced no file")
    log.info("Download complete")

    signature_path, scheme = _fetch_signature(image_path, reference, config)
    return AcquiredImage(
        path=image_path,
        signature_path=signature_path,
        signature_scheme=scheme,
        remote=True,
    )
