"""structlog configuration.

Loggers everywhere are plain `structlog.get_logger()`; this wires the
processor chain once at startup. Request IDs bound by RequestIdMiddleware
show up through the contextvars merge.
"""

import logging

import structlog


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog for console (dev) or JSON (prod) output."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=False,
    )
