"""
Logging utilities for the neurostore package.

This module provides consistent logging configuration across the package
using the loguru library. Nothing here runs on import: the process calls
``configure_logger`` once at start-up with its own settings.
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

DEFAULT_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
DEFAULT_LOG_LEVEL = "INFO"


def _plain_format(format_string: str) -> str:
    for tag in ("green", "level", "cyan"):
        format_string = format_string.replace(f"<{tag}>", "").replace(f"</{tag}>", "")
    return format_string


def configure_logger(
    console_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = None,
    file_level: str = "DEBUG",
    format_string: str = DEFAULT_FORMAT,
    rotation: str = "10 MB",
    retention: str = "1 week"
) -> None:
    """
    Configure the logger for the neurostore package.

    Args:
        console_level: Log level for console output
        log_file: Optional path to a log file; no file sink when omitted
        file_level: Log level for file output
        format_string: Log message format
        rotation: When to rotate log files (e.g., "10 MB", "1 day")
        retention: How long to keep log files (e.g., "1 week", "10 days")
    """
    logger.remove()
    logger.add(sys.stderr, level=console_level.upper(), format=format_string)

    if log_file is None:
        return

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level=file_level.upper(),
        rotation=rotation,
        retention=retention,
        format=_plain_format(format_string)
    )


def configure_from_settings(settings) -> None:
    """Configure logging from a ``LoggingSettings`` instance."""
    configure_logger(
        console_level=settings.level,
        log_file=settings.log_file,
        file_level=settings.file_level,
        rotation=settings.rotation,
        retention=settings.retention
    )


def truncate_vector_for_display(vector, max_items: int = 3) -> str:
    """Render an embedding for log output without dumping every component."""
    if not vector:
        return "[]"
    head = ", ".join(f"{v:.4f}" for v in vector[:max_items])
    if len(vector) > max_items:
        return f"[{head}, ... ({len(vector)} dims)]"
    return f"[{head}]"


__all__ = [
    'logger',
    'configure_logger',
    'configure_from_settings',
    'truncate_vector_for_display'
]
