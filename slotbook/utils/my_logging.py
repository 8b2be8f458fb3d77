# slotbook/utils/my_logging.py
"""
Logging configuration.

Every line carries the correlation id of the request that produced it
(``-`` outside a request), so one booking attempt can be followed from
the HTTP layer through the commit path.
"""
import logging
import sys
from contextvars import ContextVar
from typing import Optional, TextIO

from slotbook.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"
HANDLER_NAME = "slotbook-console"

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "celery",
    "kombu",
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
]

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


def bind_correlation_id(correlation_id: str):
    """Set the id for the current context; pass the returned token to ``reset_correlation_id``"""
    return correlation_id_var.set(correlation_id)


def reset_correlation_id(token) -> None:
    correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamps ``correlation_id`` on records that were not given one via ``extra``"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Configure application logging.

    Safe to call more than once: the console handler installed by an
    earlier call is replaced, other root handlers are left alone.
    """
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    if not verbose:
        for name in NOISY_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False

    return handler
