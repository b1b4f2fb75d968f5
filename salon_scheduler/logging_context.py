"""Request ID logging context for tracing a booking attempt across modules.

Every log record passing through a handler carrying ``RequestIdFilter``
gets a ``request_id`` attribute, so one booking attempt can be followed
from pricing through the conditional insert to the notifier.

Usage:
    from salon_scheduler.logging_context import get_request_logger, set_request_id

    set_request_id("BOOK-1a2b3c")
    logger = get_request_logger(__name__)
    logger.info("Committing appointment")  # -> [BOOK-1a2b3c] Committing appointment
"""

import logging
import uuid
from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def set_request_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


def new_request_id(prefix: str = "REQ") -> str:
    """Generate and set a fresh correlation ID, returning it."""
    request_id = f"{prefix}-{uuid.uuid4().hex[:8]}"
    _request_id.set(request_id)
    return request_id


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter adds ``request_id`` to each record so formatters can
    include ``%(request_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
