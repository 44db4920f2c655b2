# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for the notification pipeline.

The service logs through structlog with key/value context; the pipeline
stages log through the standard library under the ``src`` namespace. Both
are routed to stdout, as JSON outside development.

Example:
    >>> from src.utils.logging import setup_logging, get_logger, log_context
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> with log_context(school_id="school-1"):
    ...     logger.info("Created notification", kind="new-grade")
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from structlog.typing import FilteringBoundLogger, Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Loggers of the database stack, kept at WARNING
_QUIET_LOGGERS = ("sqlalchemy", "asyncpg", "asyncio")


def _renderers(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and standard library logging.

    Args:
        settings: Application settings; log_level, environment and debug
            select the level and the renderer.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderers(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("src").setLevel(level)


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a structured logger that tags every entry with ``logger_name``.

    The logger is resolved lazily, so module-level loggers pick up the
    configuration applied later by setup_logging().

    Args:
        name: Usually __name__ of the calling module.
    """
    return structlog.get_logger(name, logger_name=name)


@contextmanager
def log_context(**values: object) -> Iterator[None]:
    """Bind values to every structlog entry emitted inside the block.

    Values bound outside the block are restored on exit.

    Args:
        **values: Key-value pairs such as school_id.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
