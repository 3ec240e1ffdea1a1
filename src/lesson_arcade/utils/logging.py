from __future__ import annotations

import logging
from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars

__all__ = ["bound_contextvars", "configure_logging", "get_logger"]


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Initialize stdlib logging and structlog at one shared level.

    Context bound with ``bound_contextvars`` (e.g. the video URL while a lesson
    is generated) is merged into every structlog event, so gateway retry and
    fallback events can be traced back to the call that caused them.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(resolved),
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: Optional[str] = None):
    """Return a structlog logger that inherits the global configuration."""
    return structlog.get_logger(name)
