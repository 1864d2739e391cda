"""Interface to the external partition resolver.

The resolver is interactive: it asks the operator where to install, then
writes its decision as one line to a file it is given, e.g.::

    new sda1 sda
    union
    old
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Mapping

from image_installer.config import settings
from image_installer.domain.models import PartitionPlan
from image_installer.exceptions import PartitionResolutionError
from image_installer.logging import LoggerFactory
from image_installer.storage.command_runners import run_delegate
from image_installer.storage.tracker import ResourceTracker


log = LoggerFactory.for_install()


def _create_channel(tracker: ResourceTracker) -> Path:
    fd, name = tempfile.mkstemp(
        prefix="inst_partition.", dir=settings.get_setting("workspace_dir")
    )
    os.close(fd)
    return tracker.register_temp_path(name)


def resolve_partition(
    tracker: ResourceTracker, *, env: Mapping[str, str] | None = None
) -> PartitionPlan:
    """Run the resolver and read its decision exactly once.

    Raises:
        PartitionResolutionError: The resolver failed or wrote nothing
    """
    channel = _create_channel(tracker)
    failure = run_delegate(
        [settings.get_setting("partition_resolver_command"), str(channel)], env=env
    ).failure_code
    if failure is not None:
        raise PartitionResolutionError(
            f"Partition resolver failed (exit status {failure})"
        )
    try:
        text = channel.read_text(encoding="utf-8")
    except OSError as error:
        raise PartitionResolutionError(
            f"Cannot read partition resolver output: {error}"
        ) from error
    channel.unlink()

    plan = PartitionPlan.parse(text)
    log.debug(f"Partition plan: {plan}")
    return plan
