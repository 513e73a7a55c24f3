import asyncio
import sys
from typing import Any

from loguru import logger

from blog_gateway.monitoring.health import HealthMonitor


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with one at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def install_exception_handler(
    health: HealthMonitor, loop: asyncio.AbstractEventLoop | None = None
) -> None:
    """
    Capture errors nobody awaited: log them, keep them in the health error
    history, and let the process keep serving.
    """
    loop = loop or asyncio.get_running_loop()

    def handle(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        message = context.get("message", "Unhandled error in event loop")
        if exc is not None:
            message = f"{message}: {type(exc).__name__}: {exc}"
            logger.opt(exception=exc).error(message)
        else:
            logger.error(message)
        health.record_error(message)

    loop.set_exception_handler(handle)
