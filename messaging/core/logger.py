"""structlog configuration."""

import logging
import sys

import structlog

from messaging.core.settings import AppConfig


def configure_logging(config: AppConfig) -> None:
    """Configure structlog once at process start.

    Logs go to stderr so the rendered conversation view on stdout stays
    readable. Development uses the console renderer, other environments
    emit one JSON object per line.
    """
    renderer: structlog.typing.Processor
    if config.is_development:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(app=config.name)
