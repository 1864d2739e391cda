from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get("IMAGE_INSTALLER_LOG_DIR", "/var/log/image-installer")
)


def _is_command_echo(record) -> bool:
    """Command lines are DEBUG detail; keep them off the operator console."""
    return "command" not in record["extra"].get("tags", [])


def _console_filter(record) -> bool:
    if record["level"].no >= logger.level("WARNING").no:
        return True
    return _is_command_echo(record)


def setup_logging(
    *,
    debug: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup logging sinks for an installer run.

    Sinks:
    - console (stderr): what the operator sees, INFO+ (DEBUG+ with --debug)
    - operations.log: INFO+ events (30 day retention)
    - debug.log: DEBUG+ events when --debug is enabled (3 day retention)
    - structured.jsonl: structured JSON logs for analysis (30 day retention)

    If the log directory cannot be created the run continues with the
    console sink only.

    Args:
        debug: Enable DEBUG level logging
        log_dir: Custom log directory (defaults to /var/log/image-installer)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "installer"})

    console_level = "DEBUG" if debug else "INFO"

    # SINK 1: Console (stderr) - operator-facing
    logger.add(
        sys.stderr,
        level=console_level,
        backtrace=False,
        diagnose=False,
        filter=None if debug else _console_filter,
        colorize=True,
        format="<level>{level: <8}</level> | {message}",
    )

    log_dir = log_dir or DEFAULT_LOG_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        logger.warning(f"Cannot write logs to {log_dir}: {error}")
        return logger

    # SINK 2: Operations Log - Important events only (INFO+)
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="30 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <10} | "
            "{extra[job_id]: <18} | "
            "{message}"
        ),
    )

    # SINK 3: Debug Log - Detailed diagnostics (DEBUG+ when debug=True)
    if debug:
        logger.add(
            log_dir / "debug.log",
            level="DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <10} | "
                "{extra[job_id]: <18} | "
                "{extra[tags]} | "
                "{message}"
            ),
        )

    # SINK 4: Structured JSON Log - For analysis tools (INFO+)
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        serialize=True,
        format="{message}",
    )

    return logger


@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking an installer stage with automatic timing.

    Logs stage start, completion, and failure with duration tracking.

    Args:
        operation: Stage name (e.g., "fetch", "mount", "checksum")
        **details: Stage-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("mount", image="/tmp/x/image.iso") as log:
            log.debug("Mounting container")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.debug(f"{operation.capitalize()} started", **details)

        try:
            yield log
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.

    Each factory method returns a logger pre-configured with appropriate
    source and tags for the stage.
    """

    @staticmethod
    def for_install(job_id: str | None = None) -> Logger:
        """Logger for the top-level run and the install dispatcher."""
        if job_id is None:
            job_id = f"install-{uuid.uuid4().hex[:8]}"
        return logger.bind(job_id=job_id, source="install", tags=["install"])

    @staticmethod
    def for_fetch() -> Logger:
        """Logger for image acquisition."""
        return logger.bind(source="fetch", tags=["fetch", "network"])

    @staticmethod
    def for_verify() -> Logger:
        """Logger for signature and checksum verification."""
        return logger.bind(source="verify", tags=["verify"])

    @staticmethod
    def for_mount() -> Logger:
        """Logger for mounts and resource release."""
        return logger.bind(source="mount", tags=["mount", "storage"])

    @staticmethod
    def for_command() -> Logger:
        """Logger for delegate program execution."""
        return logger.bind(source="command", tags=["command"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for system probes, signals and startup."""
        return logger.bind(source="system", tags=["system"])
