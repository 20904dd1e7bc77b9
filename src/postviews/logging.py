import logging
from typing import Literal

import structlog

# Driver loggers that report every pooled connection and command
NOISY_LOGGERS = ("pymongo", "pymongo.topology", "pymongo.connection", "pymongo.command", "pymongo.serverSelection")


def setup_logging(debug: bool, log_format: Literal["console", "json"] | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        debug: Log at DEBUG instead of INFO
        log_format: Renderer to use; defaults to console in debug and JSON otherwise
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_format is None:
        log_format = "console" if debug else "json"

    processors: list[structlog.types.Processor] = [
        # Host request handlers can bind request ids with structlog.contextvars
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
