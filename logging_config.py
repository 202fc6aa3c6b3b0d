"""Logging configuration for mapitout."""

import os
from pathlib import Path

from loguru import logger

DEFAULT_LOG_PATH = Path("mapitout.log")


def configure_logging(log_path: Path | None = None, *, verbose: bool = False) -> Path:
    """Send loguru output to a file; the terminal belongs to the TUI."""
    target = Path(log_path or os.getenv("MAPITOUT_LOG") or DEFAULT_LOG_PATH).expanduser()
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        target,
        level=level,
        format="{time:YYYY-MM-DDTHH:mm:ss}\t{level}\t{name}\t{message}",
        encoding="utf-8",
    )
    return target
