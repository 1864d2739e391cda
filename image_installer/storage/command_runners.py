"""Execution of external delegate programs.

Every collaborator the installer drives (transport, minisign, gpg, mount,
the partition resolver and the installers) is a blocking subprocess whose
exit status is its only error signal. ``run_delegate`` wraps that into a
``DelegateResult`` so callers never look at raw return codes.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from typing import Mapping, Sequence

from image_installer.domain.models import DelegateResult
from image_installer.logging import LoggerFactory


log = LoggerFactory.for_command()

# Shell convention for "command not found".
COMMAND_NOT_FOUND = 127


def format_command(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(arg)) for arg in argv)


def run_delegate(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    capture: bool = False,
) -> DelegateResult:
    """Run a program to completion and report its exit status.

    Args:
        argv: Program and arguments
        env: Variables added to the current environment for this call only
        cwd: Working directory
        capture: Capture stdout/stderr instead of passing them through to
            the terminal (installers are interactive, so the default is to
            pass through)

    Returns:
        DelegateResult with the exit status; a missing program reports 127
    """
    argv = tuple(str(arg) for arg in argv)
    log.debug(f"Running command: {format_command(argv)}")

    run_env = None
    if env:
        run_env = dict(os.environ)
        run_env.update(env)

    try:
        if capture:
            result = subprocess.run(
                argv,
                env=run_env,
                cwd=cwd,
                text=True,
                capture_output=True,
            )
        else:
            result = subprocess.run(argv, env=run_env, cwd=cwd)
    except FileNotFoundError:
        log.warning(f"Command not found: {argv[0]}")
        return DelegateResult(argv=argv, returncode=COMMAND_NOT_FOUND)

    stdout = (result.stdout or "") if capture else ""
    if capture and result.returncode != 0:
        stderr = (result.stderr or "").strip()
        if stderr:
            log.debug(f"stderr: {stderr}")
    log.debug(f"Command exited with status {result.returncode}: {argv[0]}")
    return DelegateResult(argv=argv, returncode=result.returncode, stdout=stdout)
