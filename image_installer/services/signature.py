"""Authenticity check of a downloaded image.

Policy, in order:

* no signature artifact: ask to continue, default yes;
* minisign artifact: verify with the primary release key, then with the
  backup key;
* OpenPGP artifact (only when there is no minisign artifact): verify
  against the trusted keyring;
* verification failed: ask to continue, default no.

Declining either question aborts the run. The default answers are the
safety posture; ``--no-prompt`` takes them as given.
"""

from __future__ import annotations

from typing import Callable

from image_installer.config import settings
from image_installer.domain.models import AcquiredImage, SignatureScheme
from image_installer.exceptions import OperatorDeclinedError
from image_installer.logging import LoggerFactory
from image_installer.storage.command_runners import run_delegate
from image_installer.ui import prompt


log = LoggerFactory.for_verify()

MSG_SIGNATURE_UNAVAILABLE = (
    "Signature is not available. Do you want to continue with installation?"
)
MSG_SIGNATURE_INVALID = (
    "Signature is not valid. Do you want to continue with installation?"
)


def verify_minisign(image: AcquiredImage, public_key: str) -> bool:
    argv = [
        settings.get_setting("minisign_command"),
        "-V",
        "-q",
        "-p",
        public_key,
        "-m",
        str(image.path),
        "-x",
        str(image.signature_path),
    ]
    return run_delegate(argv, capture=True).succeeded


def verify_openpgp(image: AcquiredImage, keyring: str) -> bool:
    argv = [
        settings.get_setting("gpg_command"),
        "--batch",
        "--no-default-keyring",
        "--keyring",
        keyring,
        "--verify",
        str(image.signature_path),
        str(image.path),
    ]
    return run_delegate(argv, capture=True).succeeded


def _check(image: AcquiredImage) -> bool:
    if image.signature_scheme is SignatureScheme.MINISIGN:
        if verify_minisign(image, settings.get_setting("minisign_primary_key")):
            return True
        log.info("Primary key did not verify the image, trying the backup key")
        return verify_minisign(image, settings.get_setting("minisign_backup_key"))
    if image.signature_scheme is SignatureScheme.OPENPGP:
        return verify_openpgp(image, settings.get_setting("gpg_keyring"))
    return False


def verify_signature(
    image: AcquiredImage,
    *,
    assume_defaults: bool = False,
    confirm: Callable[..., bool] = prompt.confirm,
) -> bool:
    """Apply the signature policy to a fetched image.

    Returns:
        True if the signature verified, False if the operator chose to go on
        without a valid signature

    Raises:
        OperatorDeclinedError: The operator declined to continue
    """
    if not image.has_signature:
        if not confirm(
            MSG_SIGNATURE_UNAVAILABLE, default=True, assume_default=assume_defaults
        ):
            raise OperatorDeclinedError(MSG_SIGNATURE_UNAVAILABLE)
        log.warning("Continuing without signature verification")
        return False

    log.info("Validating signature")
    if _check(image):
        log.success("Signature is valid")
        return True

    if not confirm(MSG_SIGNATURE_INVALID, default=False, assume_default=assume_defaults):
        raise OperatorDeclinedError(MSG_SIGNATURE_INVALID)
    log.warning("Proceeding despite failed signature verification")
    return False
