"""Logging configuration."""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

_handler_id: int | None = None


def setup_logging(level: str = "INFO", sink: Any = sys.stderr) -> int:
    """
    Enable dank's log messages and route them to `sink`.

    The library is silent by default (`logger.disable("dank")` on import); call this
    from an application to see cache hits, loads and writes at DEBUG level. Calling it
    again replaces the sink added by the previous call.

    Returns:
        int: The loguru handler id, for `logger.remove()`.
    """
    global _handler_id
    if _handler_id is not None:
        try:
            logger.remove(_handler_id)
        except ValueError:
            # Already removed by the application.
            pass
    logger.enable("dank")
    _handler_id = logger.add(
        sink,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <level>{message}</level>",
        level=level,
        filter="dank",
    )
    return _handler_id
