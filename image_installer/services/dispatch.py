"""Route a partition plan to its install strategy.

Three terminal outcomes, one per category, and one failure state reachable
from every branch:

* ``new``: install onto the new partition, then run the post-install step;
* ``union`` / ``old``: install onto the existing system;
* anything else: unknown partition type.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Sequence

from image_installer.config import settings
from image_installer.domain.models import PartitionCategory, PartitionPlan
from image_installer.exceptions import (
    DelegateFailedError,
    DeviceNotFoundError,
    PartitionResolutionError,
    UnknownPartitionTypeError,
)
from image_installer.logging import LoggerFactory
from image_installer.storage.command_runners import run_delegate


log = LoggerFactory.for_install()


def device_path(name: str) -> Path:
    return Path(name if name.startswith("/dev/") else f"/dev/{name}")


def validate_block_device(name: Optional[str]) -> None:
    """
    Raises:
        DeviceNotFoundError: If ``name`` is not an existing block device
    """
    if not name or not device_path(name).is_block_device():
        raise DeviceNotFoundError(name or "(empty name)")


def _run_step(step: str, argv: Sequence[str], env: Mapping[str, str] | None) -> None:
    log.info(f"Running {step}")
    failure = run_delegate(argv, env=env).failure_code
    if failure is not None:
        raise DelegateFailedError(step, failure)


def _install_new(plan: PartitionPlan, env: Mapping[str, str] | None) -> None:
    if not plan.partition or not plan.drive:
        raise PartitionResolutionError(
            "A new-partition install needs both a target partition and an install drive"
        )
    validate_block_device(plan.partition)
    validate_block_device(plan.drive)

    _run_step(
        "install onto new partition",
        [settings.get_setting("install_new_command"), plan.partition, plan.drive],
        env,
    )
    _run_step(
        "post-install",
        [
            settings.get_setting("postinstall_new_command"),
            plan.drive,
            plan.partition,
            settings.get_setting("postinstall_mode"),
        ],
        env,
    )


def dispatch_install(
    plan: PartitionPlan, *, env: Mapping[str, str] | None = None
) -> PartitionCategory:
    """Run the install strategy for ``plan``.

    Returns:
        The category that was installed

    Raises:
        UnknownPartitionTypeError: No strategy for the category
        DeviceNotFoundError: A device of a ``new`` plan does not exist
        DelegateFailedError: An install program failed
    """
    try:
        category = PartitionCategory(plan.category)
    except ValueError:
        raise UnknownPartitionTypeError(plan.category) from None

    if category is PartitionCategory.NEW:
        _install_new(plan, env)
    else:
        _run_step(
            "install onto existing system",
            [settings.get_setting("install_existing_command"), category.value],
            env,
        )
    return category
