"""Logging for shipwright.

Diagnostics go to stderr through loguru.  Relayed engine output (build steps,
container logs) is printed to stdout by ``echo_event``, so piping a build into
another tool never mixes the two.  When relayed text is routed through
``log_event`` instead, the record carries ``relayed=True`` and is rendered
without a call site: the line came from the engine, not from our code.

The docker SDK and urllib3 log through the standard library; an intercept
handler hands those records to loguru.  Both log each HTTP round trip to the
daemon, so they are held at WARNING unless the level is TRACE.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from loguru import logger

ENGINE_LOGGERS = ("docker", "urllib3")

_DIAGNOSTIC_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>\n{exception}"
)
_RELAYED_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> | <magenta>engine  </magenta> | {message}\n"


class _InterceptHandler(logging.Handler):
    """Forward stdlib records (docker SDK, urllib3) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the call site is the SDK's
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _format(record: dict[str, Any]) -> str:
    return _RELAYED_FORMAT if record["extra"].get("relayed") else _DIAGNOSTIC_FORMAT


def setup_logging(level: str = "INFO") -> None:
    """Send all shipwright and engine-client logging to stderr via loguru.

    Call once, before the first engine call.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=_format)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    engine_level = logging.NOTSET if level == "TRACE" else logging.WARNING
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(engine_level)

    logger.debug("Logging initialised (level={}, engine client level={})", level, logging.getLevelName(engine_level))
