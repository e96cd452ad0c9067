from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

ENV_LOG_DIR = "BOOT_DEVICE_LOG_DIR"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]: <15}</cyan> | "
    "{message}"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[source]: <15} | "
    "{extra[job_id]: <15} | "
    "{message}"
)


def resolve_log_dir(log_dir: Path | str | None) -> Path | None:
    if log_dir:
        return Path(log_dir)
    env_dir = os.environ.get(ENV_LOG_DIR)
    if env_dir:
        return Path(env_dir)
    return None


def setup_logging(
    *,
    debug: bool = False,
    trace: bool = False,
    log_dir: Path | str | None = None,
) -> Logger:
    """
    Setup console logging and, when a log directory is known, file sinks.

    Logging Tiers:
    - ERROR: detection failures the operator has to act on
    - WARNING: recovered failures (fallback disk, missing privileges)
    - SUCCESS/INFO: platform, chosen device, written value
    - DEBUG: every heuristic step and probe command
    - TRACE: raw probe output

    Log Files (only with log_dir or $BOOT_DEVICE_LOG_DIR):
    - operations.log: INFO+ events (7 day retention)
    - debug.log: DEBUG+ events when --debug or --trace is enabled (3 day retention)

    Args:
        debug: Enable DEBUG level logging
        trace: Enable TRACE level logging (very verbose)
        log_dir: Directory for log files
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    if trace:
        console_level = "TRACE"
    elif debug:
        console_level = "DEBUG"
    else:
        console_level = "INFO"

    # SINK 1: Console (stderr) - stdout is reserved for the computed value
    logger.add(
        sys.stderr,
        level=console_level,
        backtrace=False,
        diagnose=False,
        colorize=None,
        format=CONSOLE_FORMAT,
    )

    resolved_dir = resolve_log_dir(log_dir)
    if resolved_dir is None:
        return logger
    resolved_dir.mkdir(parents=True, exist_ok=True)

    # SINK 2: Operations Log - Important events only (INFO+)
    logger.add(
        resolved_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=FILE_FORMAT,
    )

    # SINK 3: Debug Log - Detailed diagnostics
    if debug or trace:
        logger.add(
            resolved_dir / "debug.log",
            level="TRACE" if trace else "DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=FILE_FORMAT,
        )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking a run
        tags: Tags for filtering (e.g., ["probe"])
        source: Source component (e.g., "esp", "writer")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Track an operation with automatic timing.

    Logs operation start, completion and failure with the duration.

    Example:
        with operation_context("detect", firmware="UEFI") as log:
            log.debug("Scanning vfat partitions")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])
        log.debug(f"{operation.capitalize()} started")
        try:
            yield log
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} completed in {duration:.2f}s",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} failed: {type(e).__name__}",
                error=str(e),
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating component loggers with automatic context.
    """

    @staticmethod
    def for_probe() -> Logger:
        """Logger for system introspection commands."""
        return logger.bind(source="probe", tags=["probe"])

    @staticmethod
    def for_detection(component: str = "detect") -> Logger:
        """Logger for the platform/ESP/disk heuristics."""
        return logger.bind(source=component, tags=["detect"])

    @staticmethod
    def for_writer() -> Logger:
        """Logger for the device file writer."""
        return logger.bind(source="writer", tags=["writer"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup, settings and privilege checks."""
        return logger.bind(source="system", tags=["system"])
