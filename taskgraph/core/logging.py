"""Loguru sink configuration for the command line."""

import sys

from loguru import logger

from taskgraph.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> None:
    """Enable taskgraph logging and install sinks based on settings.

    The package disables its own logger on import; this turns it back on
    for processes that want the diagnostics, such as the CLI.

    Args:
        settings: Optional settings override. Uses default if not provided.
    """
    settings = settings or get_settings()
    level = settings.effective_log_level

    logger.remove()  # Remove default handler
    logger.enable("taskgraph")

    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
        colorize=True,
    )

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.log_file),
            rotation="1 day",
            retention="7 days",
            level=level,
            format=LOG_FORMAT,
        )
