"""User-id logging context for tracing a signed-in user across modules.

Provides a user_id-aware logger that attaches the current identity id to
every log message, making it easy to follow one customer's session
through the session store, booking repository and location sampler.

Usage:
    from urban_auto.logging_context import get_user_logger, set_user_id

    set_user_id("6f1c...")
    logger = get_user_logger(__name__)
    logger.info("Refreshing bookings")  # -> [user=6f1c...] Refreshing bookings
"""

import logging
from contextvars import ContextVar
from typing import Optional

ANONYMOUS = "anonymous"

_user_id: ContextVar[str] = ContextVar("user_id", default=ANONYMOUS)


def set_user_id(user_id: Optional[str]) -> None:
    """Set the user id for the current async context (None resets it)."""
    _user_id.set(user_id or ANONYMOUS)


def get_user_id() -> str:
    """Retrieve the current user id."""
    return _user_id.get()


class UserIdFilter(logging.Filter):
    """Injects user_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "user_id"):
            record.user_id = _user_id.get()  # type: ignore[attr-defined]
        return True


def get_user_logger(name: str) -> logging.Logger:
    """Return a logger with the UserIdFilter attached.

    The filter adds ``user_id`` to each record so formatters can
    include ``%(user_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, UserIdFilter) for f in logger.filters):
        logger.addFilter(UserIdFilter())
    return logger
