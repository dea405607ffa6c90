"""Simple centralized logging - configure once, use everywhere.

The entry point (main.py or the app factory) calls configure_logging() ONCE.
All other modules just import the loguru logger directly.
"""

import sys
from pathlib import Path
from loguru import logger

from catalog_engine.shared.config import LOG_DIR, LOG_LEVEL

_configured = False


def configure_logging(level: str = LOG_LEVEL, log_dir: str | None = LOG_DIR) -> None:
    """Configure loguru sinks. Safe to call more than once."""
    global _configured

    if _configured:
        return

    logger.remove()  # Remove default handler

    # Console output
    logger.add(
        sys.stdout,
        level=level,
        format="<green>{time}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )

    # File output (rotates daily), only when a directory is configured
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            str(Path(log_dir) / "catalog_engine_{time:YYYY-MM-DD}.log"),
            level=level,
            rotation="00:00",
            retention="30 days",
        )

    _configured = True
    logger.info("Logging configured (level={})", level)
