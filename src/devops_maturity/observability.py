"""Structured logging setup.

All modules obtain their logger through ``get_logger(__name__)`` and log
keyword-style events, e.g.::

    logger.info("Assessment completed", assessment_id=str(assessment_id))
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog and the standard-library root logger.

    Safe to call more than once; the last call wins.

    Args:
        level: Log level name, e.g. ``"INFO"`` or ``"DEBUG"``.
        json_logs: Render events as JSON lines when True, otherwise as
            human-readable console output.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    renderer: structlog.types.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A structlog bound logger.
    """
    return structlog.get_logger(name)
