"""
Booking form controller: collect, validate, and submit a new booking.

Every field is validated independently and all violations are reported
together, keyed by field name, so a caller can mark every bad input at
once. Nothing reaches the booking repository until validation passes.

Usage:
    form = BookingForm(repository, service_id="car-wash")
    form.set_field("vehicle_type", "Sedan")
    ...
    result = await form.submit()
    if not result["success"]:
        print(result["errors"])
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, TypedDict

from urban_auto.bookings.repository import BookingRepository
from urban_auto.catalog import resolve_service_name
from urban_auto.schemas.booking_schema import BookingDraft, VehicleType
from urban_auto.schemas.location_schema import LocatedAddress

logger = logging.getLogger(__name__)

VEHICLE_TYPES: tuple[str, ...] = tuple(v.value for v in VehicleType)
DATE_FORMAT = "%Y-%m-%d"


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def _check_service(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Please select a service"
    return None


def _check_vehicle_type(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Please select vehicle type"
    if value.strip() not in VEHICLE_TYPES:
        return f"Vehicle type must be one of: {', '.join(VEHICLE_TYPES)}"
    return None


def _check_address(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Address is required"
    return None


def _check_date(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Please select a date"
    parsed = _parse_date(value)
    if parsed is None:
        return "Please select a valid date"
    if parsed < today:
        return "Date cannot be in the past"
    return None


def _check_time(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Please select a time"
    return None


@dataclass(frozen=True)
class FieldDefinition:
    """Schema for a single form field."""

    name: str
    display_name: str
    required: bool = True
    validator: Optional[Callable[[str, date], Optional[str]]] = None


class FormSubmission(TypedDict, total=False):
    """Result of BookingForm.submit."""

    success: bool
    message: str
    errors: dict[str, str]
    booking_id: str


class BookingForm:
    """
    Holds the user-entered booking fields and submits them.

    ``today`` supplies the local calendar date used for the not-in-the-past
    rule; the comparison is by date, not by timestamp.
    """

    FIELD_DEFINITIONS: list[FieldDefinition] = [
        FieldDefinition(name="service_id", display_name="service", validator=_check_service),
        FieldDefinition(
            name="vehicle_type", display_name="vehicle type", validator=_check_vehicle_type
        ),
        FieldDefinition(name="vehicle_number", display_name="vehicle number", required=False),
        FieldDefinition(name="address", display_name="address", validator=_check_address),
        FieldDefinition(name="date", display_name="date", validator=_check_date),
        FieldDefinition(name="time", display_name="time", validator=_check_time),
        FieldDefinition(name="notes", display_name="notes", required=False),
    ]

    def __init__(
        self,
        repository: BookingRepository,
        service_id: str = "",
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._repository = repository
        self._today = today or date.today
        self.values: dict[str, str] = {}
        self.errors: dict[str, str] = {}
        self.submitting = False
        self.reset()
        if service_id:
            self.values["service_id"] = service_id

    def _get_definition(self, name: str) -> FieldDefinition:
        for defn in self.FIELD_DEFINITIONS:
            if defn.name == name:
                return defn
        raise ValueError(f"Unknown field: {name}")

    def set_field(self, name: str, value: Optional[str]) -> None:
        """Set a field value and drop any stale error for it."""
        self._get_definition(name)
        self.values[name] = value or ""
        self.errors.pop(name, None)

    def prefill_address(self, located: LocatedAddress) -> None:
        """Fill the address from a geolocation result."""
        self.set_field("address", located.address.display_name)

    @property
    def service_name(self) -> str:
        return resolve_service_name(self.values["service_id"])

    @property
    def preferred_date_time(self) -> str:
        return f"{self.values['date'].strip()} {self.values['time'].strip()}"

    def validate(self) -> dict[str, str]:
        """Run every validator and return all errors keyed by field name."""
        today = self._today()
        errors: dict[str, str] = {}
        for defn in self.FIELD_DEFINITIONS:
            if defn.validator is None:
                continue
            message = defn.validator(self.values[defn.name], today)
            if message:
                errors[defn.name] = message
        self.errors = errors
        if errors:
            logger.debug("Booking form invalid: %s", sorted(errors))
        return dict(errors)

    def build_draft(self) -> BookingDraft:
        return BookingDraft(
            service_name=self.service_name,
            vehicle_type=self.values["vehicle_type"].strip(),
            vehicle_number=self.values["vehicle_number"].strip() or None,
            address=self.values["address"].strip(),
            preferred_date_time=self.preferred_date_time,
            notes=self.values["notes"].strip() or None,
        )

    async def submit(self) -> FormSubmission:
        """Validate, then create the booking through the repository.

        On success the form is cleared. On repository failure its message
        is returned unchanged and the entered values are kept.
        """
        errors = self.validate()
        if errors:
            return {
                "success": False,
                "message": "Please fix the highlighted fields",
                "errors": errors,
            }

        self.submitting = True
        try:
            result = await self._repository.add_booking(self.build_draft())
        finally:
            self.submitting = False

        if not result["success"]:
            return {"success": False, "message": result["message"], "errors": {}}

        self.reset()
        submission: FormSubmission = {"success": True, "message": result["message"], "errors": {}}
        if "booking_id" in result:
            submission["booking_id"] = result["booking_id"]
        return submission

    def reset(self) -> None:
        """Clear every field and error."""
        self.values = {defn.name: "" for defn in self.FIELD_DEFINITIONS}
        self.errors = {}
