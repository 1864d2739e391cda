"""Top-level installer run.

Control flow:
    live-boot probe -> operator confirmation (live boot) -> boot mode /
    image reference check -> acquire -> signature (remote only) -> mount ->
    checksums -> partition resolver -> install dispatcher

Everything acquired along the way is owned by the ResourceTracker passed in
by the caller, which releases it on every exit path.
"""

from __future__ import annotations

from image_installer.domain.models import (
    MountedImage,
    PartitionCategory,
    RunConfiguration,
)
from image_installer.exceptions import InvalidArgumentsError, OperatorDeclinedError
from image_installer.logging import LoggerFactory, operation_context
from image_installer.services import acquire, dispatch, partition, signature, system
from image_installer.storage import checksum, mount
from image_installer.storage.tracker import ResourceTracker
from image_installer.ui import prompt


log = LoggerFactory.for_install()

MSG_LIVE_WELCOME = (
    "This command will install the system image to permanent storage.\n"
    "Would you like to continue?"
)
MSG_ERR_LIVE_WITH_IMAGE = (
    "The system is in live-boot mode; install from the boot medium "
    "without specifying an image"
)
MSG_ERR_INSTALLED_WITHOUT_IMAGE = (
    "The system is already installed; an image path or URL is required"
)


def _prepare_external_image(
    config: RunConfiguration, tracker: ResourceTracker
) -> MountedImage:
    with operation_context("fetch", reference=config.image_ref):
        image = acquire.acquire_image(config, tracker)

    # Local images are assumed vetted by whoever supplied them.
    if image.remote:
        with operation_context("signature"):
            signature.verify_signature(image, assume_defaults=config.assume_defaults)
    else:
        log.info("Local image: skipping signature verification")

    with operation_context("mount", image=str(image.path)):
        return mount.mount_image(image.path, tracker)


def run_install(config: RunConfiguration, tracker: ResourceTracker) -> PartitionCategory:
    """Install an image according to ``config``.

    Returns:
        The partition category that was installed

    Raises:
        InstallerError: Any fatal condition; resources stay registered with
            ``tracker`` for the caller to release
    """
    live = system.is_live_cd_boot()
    log.debug(f"Live boot: {live}")

    if live:
        if config.image_ref:
            raise InvalidArgumentsError(MSG_ERR_LIVE_WITH_IMAGE)
        if not prompt.confirm(
            MSG_LIVE_WELCOME, default=True, assume_default=config.assume_defaults
        ):
            raise OperatorDeclinedError(MSG_LIVE_WELCOME)
        image_roots = system.live_image_roots()
    else:
        if not config.image_ref:
            raise InvalidArgumentsError(MSG_ERR_INSTALLED_WITHOUT_IMAGE)
        image_roots = _prepare_external_image(config, tracker)

    with operation_context("checksum"):
        checksum.verify_image_checksums(image_roots.container_root)

    delegate_env = image_roots.as_env()
    with operation_context("partition"):
        plan = partition.resolve_partition(tracker, env=delegate_env)

    with operation_context("install", category=plan.category):
        category = dispatch.dispatch_install(plan, env=delegate_env)

    log.success(f"Installation complete ({category.value})")
    return category
