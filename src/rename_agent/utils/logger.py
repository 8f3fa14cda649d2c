"""Logging configuration for the rename agent.

Console output stays quiet by default so it never interleaves with the
preview and confirmation prompt; the file sink under ``.agentcli/logs``
keeps the full record of every transaction.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

# Remove default handler
logger.remove()

_logger_configured = False


def setup_logging(
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    *,
    console: bool = True,
    console_level: str = "WARNING",
    file: bool = True,
    force: bool = False,
) -> None:
    """Configure logging for the application.

    Args:
        log_dir: Directory for log files (default: ./.agentcli/logs)
        level: Minimum level written to the log file
        console: Enable stderr output
        console_level: Minimum level written to stderr
        file: Enable file output
        force: Drop existing handlers and configure again
    """
    global _logger_configured

    if _logger_configured and not force:
        return

    logger.remove()

    if console:
        logger.add(
            sys.stderr,
            format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
            level=console_level,
            colorize=True,
        )

    if file:
        log_dir = log_dir or Path(".agentcli") / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"rename_{datetime.now():%Y%m%d}.log"
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )

    _logger_configured = True


def reset_logging() -> None:
    """Remove every handler so the next setup_logging call starts fresh."""
    global _logger_configured

    logger.remove()
    _logger_configured = False


def get_logger(name: str = "rename_agent"):
    """Get a logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance
    """
    return logger.bind(name=name)
