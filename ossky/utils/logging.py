"""Structured logging setup using structlog.

The bot runs either in a terminal (coloured ConsoleRenderer) or under a
process supervisor that ships stdout to a log collector (JSONRenderer).
Both share one processor chain, so an event such as ``janitor_orphan_found``
carries the same keys in either format.  JSON is chosen when
``json_output`` is set or ``APP_ENV`` is ``"production"``.

Standard-library ``logging`` is bridged through the same chain so that
boto3/botocore and httpx records come out in the bot's format, and the
chattiest of those libraries are clamped to INFO.
"""

import logging
import os
import sys

import structlog

# Libraries whose DEBUG output is request signing and connection pool noise.
_NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpcore")


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog for the bot process.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output. When False, JSON is still used if
                     ``APP_ENV`` is ``"production"``.

    Returns:
        A configured structlog BoundLogger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    level = logging.getLevelName(log_level.upper())

    # Runs for both renderers and for bridged stdlib records.
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,       # session-wide bindings (handle, bucket)
        structlog.processors.add_log_level,            # "level" key
        structlog.processors.StackInfoRenderer(),      # stack_info=True on a call
        structlog.dev.set_exc_info,                    # exc_info on .exception()
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if use_json:
        # Tracebacks must become a string before JSON serialization.
        renderers: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=[*shared_processors, *renderers],
        # Drops events below the level before any processor runs.
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()  # no duplicate lines from a default handler
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.INFO, level))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a named structlog logger.

    If structlog has not been configured yet, calls configure_logging() with defaults.

    Args:
        name: Logger name, typically the module name.

    Returns:
        A structlog BoundLogger bound with the given name.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


def log_error(logger: structlog.BoundLogger, event: str, exc: BaseException, **context: object) -> None:
    """Log *exc* at error level under *event*, keeping the message and type."""
    logger.error(event, error=str(exc), error_type=type(exc).__name__, **context)
