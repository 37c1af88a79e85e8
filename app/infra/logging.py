"""structlog setup for the catalog service.

Outside dev every event is one JSON line on stdout, which Cloud Logging
ingests as a structured entry. Events emitted while serving a request carry
the request id and, once resolved, the acting user's ReferenceID.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from app.config import settings

SERVICE_NAME = "catalog-service"

# Libraries that log every request or watch event at INFO
_NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "google": logging.WARNING,
    "google.cloud.firestore_v1.watch": logging.ERROR,
}


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def build_processors(use_json: bool) -> list[Processor]:
    """Processor chain ending in the JSON or console renderer."""
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    return chain


def setup_logging() -> None:
    """Configure structlog and the stdlib root logger. Idempotent."""
    level = logging.getLevelName(settings.log_level.upper())

    structlog.configure(
        processors=build_processors(settings.log_json and settings.environment != "dev"),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name, noisy_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Logger for `name`, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def bind_request_context(**context: Any) -> None:
    """Attach fields to every event logged for the current request."""
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
