"""Observability module for storyframe.

Provides structured logging for the engine core and its command line.
"""

from storyframe.observability.logging import (
    LOG_FILENAME,
    close_file_logging,
    configure_logging,
    frame_context,
    get_logger,
)

__all__ = [
    "LOG_FILENAME",
    "close_file_logging",
    "configure_logging",
    "frame_context",
    "get_logger",
]
