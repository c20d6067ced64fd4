"""Derivation of the normalized booking instant from free-text date/time.

Two explicit paths: ``try_parse_preferred_datetime`` returns None when the
text is not understood, and ``derive_booking_date`` falls back to "now" in
that case so a cosmetic format problem never blocks a booking.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

PREFERRED_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %I:%M%p",
    "%Y-%m-%dT%H:%M",
    "%d/%m/%Y %H:%M",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def try_parse_preferred_datetime(text: Optional[str]) -> Optional[datetime]:
    """Parse ``"<date> <time>"`` text into a UTC instant, or None.

    Naive values are read as local wall-clock time.
    """
    value = (text or "").strip()
    if not value:
        return None

    parsed: Optional[datetime] = None
    for fmt in PREFERRED_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc)


def derive_booking_date(
    text: Optional[str], now: Optional[Callable[[], datetime]] = None
) -> datetime:
    """Parsed instant for ``text``, or the current time when it cannot be parsed."""
    parsed = try_parse_preferred_datetime(text)
    if parsed is not None:
        return parsed
    logger.info("Unparseable preferred date/time %r; booking date set to now", text)
    return (now or _utcnow)()
