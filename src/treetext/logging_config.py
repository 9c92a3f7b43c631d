"""Logging configuration for treetext."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False) -> None:
    """Send loguru output to stderr, DEBUG when verbose else INFO.

    The MCP server speaks over stdout, so nothing may ever log there.
    """
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
