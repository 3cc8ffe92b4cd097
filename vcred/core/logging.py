"""structlog configuration for applications embedding vcred."""

import logging

import structlog

from vcred.core.settings import LoggingSettings


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog processors and the minimum log level.

    Args:
        settings: Output settings. Read from ``VCRED_LOG_*`` when omitted.
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.level!r}")

    renderer: structlog.typing.Processor
    if settings.json_output:
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
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
