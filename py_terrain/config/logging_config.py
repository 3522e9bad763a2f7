"""Structured logging setup."""

import logging
import sys
from typing import Optional

import structlog

from .config import EngineSettings


def configure_logging(engine_settings: Optional[EngineSettings] = None) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        engine_settings: Source of ``log_level`` and ``log_format``; a fresh
            ``EngineSettings`` is read from the environment when omitted
    """
    engine_settings = engine_settings or EngineSettings()
    level = getattr(logging, engine_settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    if engine_settings.log_format.lower() == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
