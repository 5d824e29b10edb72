"""
Logging configuration for Bitbucket Pull Request MCP Server.

Logs never go to stdout: the stdio transport owns it. Everything is written
to stderr, optionally mirrored as JSON lines into a log file.
"""

import sys
from typing import Optional

from loguru import logger


def setup_logging(
    log_level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure loguru sinks.

    Args:
        log_level: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: If True, serialize stderr records as JSON.
        log_file: Optional path of a JSON log file, e.g. "bitbucket-cloud.log".

    Example:
        >>> setup_logging("DEBUG", log_file="bitbucket-cloud.log")
    """
    # Remove default handler
    logger.remove()

    if structured:
        logger.add(
            sys.stderr,
            format="{message}",
            serialize=True,
            level=log_level,
            backtrace=True,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | {extra}"
            ),
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_file:
        logger.add(
            log_file,
            serialize=True,
            level=log_level,
            enqueue=True,
        )

    logger.bind(level=log_level, structured=structured, log_file=log_file).info(
        "Logging configured"
    )
