from urban_auto.bookings.dates import derive_booking_date, try_parse_preferred_datetime
from urban_auto.bookings.form import BookingForm, VEHICLE_TYPES
from urban_auto.bookings.repository import BookingRepository

__all__ = [
    "BookingRepository",
    "BookingForm",
    "VEHICLE_TYPES",
    "derive_booking_date",
    "try_parse_preferred_datetime",
]
