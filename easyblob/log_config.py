import logging
import os

import structlog
from structlog_sentry import SentryProcessor


_configured = False

# chatty third-party loggers and the level they are held to
QUIET_LOGGERS = {
    # sqlalchemy echoes every statement at INFO
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.INFO,
    "aiohttp.access": logging.INFO,
}


def _render_processors(pretty: bool) -> list:
    if pretty:
        return [
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    return [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(pretty=True, additional_processors=None, level=logging.INFO):
    if additional_processors is None:
        additional_processors = []
    logging.basicConfig(
        level=level,
    )
    for name, logger_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(logger_level)

    # request handlers bind their context through structlog.contextvars
    processors = [structlog.contextvars.merge_contextvars] + additional_processors
    processors.append(structlog.stdlib.add_log_level)
    if "SENTRY_DSN" in os.environ:
        processors.append(SentryProcessor(event_level=logging.ERROR))
    processors += _render_processors(pretty)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    global _configured
    _configured = True


def get_logger(*args, **kwargs) -> structlog.stdlib.BoundLogger:
    if not _configured:
        configure_logging()
    return structlog.get_logger(*args, **kwargs)
