"""
Logging setup for the analytics pipeline.

Uses loguru with:
- Environment-based level (LOG_LEVEL, falling back to settings)
- A compact console format carrying the analyzer stage
- An optional rotating file sink for batch runs
"""

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_settings

_configured = False


def _get_console_format() -> str:
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[stage]: <12}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )


def _get_file_format() -> str:
    return (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
        "{level: <8} | "
        "{extra[stage]} | "
        "{name}:{function}:{line} | "
        "{thread.name} | "
        "{message}"
    )


def resolve_log_level(level: Optional[str] = None) -> str:
    """Explicit level, else $LOG_LEVEL, else the log_level setting."""
    return (level or os.getenv("LOG_LEVEL") or get_settings().log_level).upper()


def setup_logging(level: Optional[str] = None, log_file: Optional[Path | str] = None) -> None:
    """
    (Re)configure loguru sinks.

    Args:
        level: Console level; defaults to $LOG_LEVEL, then the
            log_level setting (SUPPLYOPS_LOG_LEVEL).
        log_file: When given, also write DEBUG logs there (rotated at 10 MB).
    """
    global _configured
    level = resolve_log_level(level)

    logger.remove()
    logger.configure(extra={"stage": "pipeline"})
    logger.add(
        sys.stderr,
        format=_get_console_format(),
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=_get_file_format(),
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
        )

    _configured = True


def get_logger(stage: str):
    """Logger bound to an analyzer stage name."""
    if not _configured:
        setup_logging()
    return logger.bind(stage=stage)


@contextmanager
def log_duration(log, operation: str):
    """Log how long a block took."""
    started = time.perf_counter()
    try:
        yield
    finally:
        log.debug(f"{operation} completed in {time.perf_counter() - started:.3f}s")
