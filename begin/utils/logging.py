"""Structured logging built on structlog.

Call :func:`setup_logging` once from the host (the CLI does this) and
obtain loggers anywhere with :func:`get_logger`::

    logger = get_logger("engine.pipeline")
    logger.info("pipeline_start", task="scripts")
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(debug: bool = False, json_logs: bool = False) -> None:
    """Configure stdlib logging and structlog processors.

    Parameters
    ----------
    debug:
        Lower the level to ``DEBUG`` when ``True``.
    json_logs:
        Render events as JSON lines instead of the coloured console format.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    renderer: structlog.types.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_values) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger named *name*.

    Extra keyword arguments are bound to every event emitted by the logger
    (e.g. ``get_logger("supervisor", tag="[server]")``).
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger
