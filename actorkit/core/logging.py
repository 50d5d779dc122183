"""
Logging setup — console plus a dated log file under the actorkit home.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from actorkit.core.config import LoggingConfig


def setup_logging(
    log_dir: Path | None = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Setup actorkit logging.

    Args:
        log_dir: Directory for log files (default: ~/.actorkit/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured logger
    """
    log_dir = (log_dir or (Path.home() / ".actorkit" / "logs")).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("actorkit")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    log_file = log_dir / f"actorkit_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")

    return logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Same as setup_logging, driven by the [logging] config section."""
    level = logging.getLevelName(config.console_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    return setup_logging(log_dir=Path(config.log_dir), console_level=level)
