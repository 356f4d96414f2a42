"""
Structured logging setup.

Usage:
    from togglekit.utils.logging import configure_logging

    configure_logging(settings.log_level, settings.log_format)

    logger = structlog.get_logger()
    logger.info("bulk_toggle_completed", assignable_type="User", rows=120)
"""

import logging
from typing import Any

import structlog


def add_library_name(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor tagging every event with the emitting library."""
    event_dict.setdefault("library", "togglekit")
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure structlog for togglekit.

    Args:
        level: Standard logging level name
        fmt: "json" for machine-readable output, "text" for the console renderer
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_library_name,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )
