"""
Owner-scoped booking repository with a confirm-then-reconcile cache.

The cache is an immutable tuple replaced in a single assignment, so a
reader always sees one complete snapshot. No operation touches the cache
before the remote store has confirmed the change:

- add: insert remotely, then prepend the server-returned row (or refresh
  when the server returns nothing);
- cancel / reschedule: mutate remotely, then refresh;
- refresh: full replace with the owner's rows, newest first.

Cancellation sends the delete without checking ownership or
status locally; the remote store's policies decide.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from urban_auto.backend.interfaces import BookingTable
from urban_auto.bookings.dates import derive_booking_date
from urban_auto.config import settings
from urban_auto.errors import BackendError, BookingErrorCode, OperationResult, fail, ok
from urban_auto.logging_context import get_user_logger
from urban_auto.schemas.booking_schema import Booking, BookingDraft, BookingStatus
from urban_auto.schemas.identity_schema import Identity
from urban_auto.session.store import SessionStore
from urban_auto.utils import is_blank

logger = get_user_logger(__name__)


class BookingResult(OperationResult, total=False):
    """Result from add_booking, cancel_booking, or reschedule_booking."""

    booking_id: str


class BookingRepository:
    """Bookings of the current identity, kept consistent with the remote table."""

    def __init__(
        self,
        session: SessionStore,
        table: BookingTable,
        default_total_amount: float = settings.booking.default_total_amount,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session = session
        self._table = table
        self._default_total_amount = default_total_amount
        self._clock = clock
        self._bookings: tuple[Booking, ...] = ()
        self._owner_id: Optional[str] = session.identity.id if session.identity else None
        self._unsubscribe = session.subscribe(self._on_identity_change)

    @property
    def bookings(self) -> tuple[Booking, ...]:
        """Current snapshot, newest first."""
        return self._bookings

    def get(self, booking_id: str) -> Optional[Booking]:
        for booking in self._bookings:
            if booking.id == booking_id:
                return booking
        return None

    def count_by_status(self, status: BookingStatus) -> int:
        return sum(1 for b in self._bookings if b.status == status)

    def clear(self) -> None:
        self._bookings = ()

    def close(self) -> None:
        self._unsubscribe()

    def _on_identity_change(self, identity: Optional[Identity]) -> None:
        new_owner = identity.id if identity else None
        if new_owner != self._owner_id:
            self.clear()
            self._owner_id = new_owner
            logger.debug("Booking cache cleared for owner change")

    def _is_current_owner(self, owner_id: str) -> bool:
        identity = self._session.identity
        return identity is not None and identity.id == owner_id

    async def refresh(self) -> OperationResult:
        """Replace the cache with the owner's remote bookings. No-op when logged out."""
        identity = self._session.identity
        if identity is None:
            return ok("No active session")
        owner_id = identity.id

        try:
            rows = await self._table.select_by_owner(owner_id)
        except BackendError as exc:
            logger.error("Booking refresh failed: %s", exc.message)
            return fail(BookingErrorCode.PROVIDER_ERROR, exc.message)

        if not self._is_current_owner(owner_id):
            logger.info("Discarding booking snapshot for a previous session")
            return ok("Session changed during refresh")

        snapshot = sorted(
            (Booking.from_row(row) for row in rows if str(row["user_id"]) == owner_id),
            key=lambda b: b.created_at,
            reverse=True,
        )
        self._bookings = tuple(snapshot)
        logger.debug("Booking cache refreshed: %d booking(s)", len(snapshot))
        return ok(f"{len(snapshot)} booking(s) loaded")

    async def add_booking(self, draft: Union[BookingDraft, dict[str, Any]]) -> BookingResult:
        """Create a Pending booking for the current identity."""
        identity = self._session.identity
        if identity is None:
            return fail(BookingErrorCode.NOT_LOGGED_IN, "Please log in to book a service")
        if isinstance(draft, dict):
            try:
                draft = BookingDraft(**draft)
            except ValidationError as exc:
                fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
                return fail(
                    BookingErrorCode.VALIDATION_ERROR,
                    f"Invalid booking details: {', '.join(fields)}",
                )

        booking_date = derive_booking_date(draft.preferred_date_time, now=self._clock)
        row = {
            "user_id": identity.id,
            "service_name": draft.service_name,
            "vehicle_type": draft.vehicle_type,
            "vehicle_number": draft.vehicle_number or None,
            "address": draft.address,
            "preferred_date_time": draft.preferred_date_time,
            "booking_date": booking_date.isoformat(),
            "notes": draft.notes or None,
            "status": BookingStatus.PENDING.value,
            "total_amount": (
                draft.total_amount if draft.total_amount is not None else self._default_total_amount
            ),
        }

        try:
            created = await self._table.insert(row)
        except BackendError as exc:
            logger.error("Booking insert failed: %s", exc.message)
            return fail(BookingErrorCode.PROVIDER_ERROR, exc.message)

        if created is None:
            logger.info("Insert returned no row; reconciling with a full refresh")
            refreshed = await self.refresh()
            if not refreshed["success"]:
                logger.warning("Booking created but refresh failed: %s", refreshed["message"])
            return {"success": True, "message": "Booking confirmed!"}

        booking = Booking.from_row(created)
        if self._is_current_owner(booking.owner_id):
            self._bookings = (booking,) + tuple(b for b in self._bookings if b.id != booking.id)
        logger.info("Booking created: %s (%s)", booking.id, booking.service_name)
        return {"success": True, "message": "Booking confirmed!", "booking_id": booking.id}

    async def cancel_booking(self, booking_id: str) -> BookingResult:
        """Delete a booking remotely, then refresh from the remote store."""
        if self._session.identity is None:
            return fail(BookingErrorCode.NOT_LOGGED_IN, "Please log in to manage bookings")

        try:
            await self._table.delete(booking_id)
        except BackendError as exc:
            logger.error("Booking cancel failed for %s: %s", booking_id, exc.message)
            return fail(BookingErrorCode.PROVIDER_ERROR, exc.message)

        await self.refresh()
        logger.info("Booking cancelled: %s", booking_id)
        return {"success": True, "message": "Booking cancelled", "booking_id": booking_id}

    async def reschedule_booking(self, booking_id: str, new_date_time: str) -> BookingResult:
        """Move a booking to a new preferred date/time, then refresh."""
        if self._session.identity is None:
            return fail(BookingErrorCode.NOT_LOGGED_IN, "Please log in to manage bookings")
        if is_blank(new_date_time):
            return fail(BookingErrorCode.VALIDATION_ERROR, "A new date and time is required")

        values = {
            "preferred_date_time": new_date_time.strip(),
            "booking_date": derive_booking_date(new_date_time, now=self._clock).isoformat(),
        }
        try:
            await self._table.update(booking_id, values)
        except BackendError as exc:
            logger.error("Booking reschedule failed for %s: %s", booking_id, exc.message)
            return fail(BookingErrorCode.PROVIDER_ERROR, exc.message)

        await self.refresh()
        logger.info("Booking rescheduled: %s to %s", booking_id, values["preferred_date_time"])
        return {
            "success": True,
            "message": f"Booking rescheduled to {values['preferred_date_time']}",
            "booking_id": booking_id,
        }
