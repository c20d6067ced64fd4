"""Tests for the booking form controller."""

import pytest

from urban_auto.bookings.form import BookingForm
from urban_auto.schemas.location_schema import AddressData, LocatedAddress, LocationSample

from tests.conftest import TODAY


def fill_valid(form: BookingForm) -> None:
    form.set_field("vehicle_type", "Sedan")
    form.set_field("vehicle_number", "KA 01 AB 1234")
    form.set_field("address", "42 MG Road, Bengaluru")
    form.set_field("date", "2026-10-20")
    form.set_field("time", "10:30")


class TestValidation:
    def test_reports_every_error_together(self, app):
        form = app.new_booking_form("car-wash")
        form.set_field("date", "2026-10-16")
        errors = form.validate()
        assert errors["vehicle_type"] == "Please select vehicle type"
        assert errors["date"] == "Date cannot be in the past"
        assert errors["address"] == "Address is required"
        assert errors["time"] == "Please select a time"
        assert "service_id" not in errors
        assert form.errors == errors

    def test_today_is_allowed(self, app):
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        form.set_field("date", TODAY.isoformat())
        assert form.validate() == {}

    def test_invalid_date_text(self, app):
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        form.set_field("date", "20/10/2026")
        assert form.validate() == {"date": "Please select a valid date"}

    def test_unknown_vehicle_type(self, app):
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        form.set_field("vehicle_type", "Tractor")
        assert "Vehicle type must be one of" in form.validate()["vehicle_type"]

    def test_missing_service(self, app):
        form = app.new_booking_form()
        fill_valid(form)
        assert form.validate() == {"service_id": "Please select a service"}

    def test_set_field_clears_stale_error(self, app):
        form = app.new_booking_form("car-wash")
        form.validate()
        assert "address" in form.errors
        form.set_field("address", "1 Road")
        assert "address" not in form.errors

    def test_unknown_field_rejected(self, app):
        form = app.new_booking_form("car-wash")
        with pytest.raises(ValueError, match="Unknown field"):
            form.set_field("colour", "red")


class TestDraft:
    def test_service_name_resolved_from_catalog(self, app):
        form = app.new_booking_form("oil-change")
        fill_valid(form)
        draft = form.build_draft()
        assert draft.service_name == "Oil Change"
        assert draft.preferred_date_time == "2026-10-20 10:30"
        assert draft.notes is None

    def test_unknown_service_id_kept(self, app):
        form = app.new_booking_form("ceramic-coating")
        assert form.service_name == "ceramic-coating"

    def test_prefill_address(self, app):
        form = app.new_booking_form("car-wash")
        located = LocatedAddress(
            address=AddressData(display_name="MG Road, Bengaluru", lat=1.0, lon=2.0),
            sample=LocationSample(latitude=1.0, longitude=2.0, accuracy=12),
        )
        form.prefill_address(located)
        assert form.values["address"] == "MG Road, Bengaluru"


class TestSubmit:
    @pytest.mark.asyncio
    async def test_invalid_form_never_reaches_repository(self, app, backend, signed_in):
        form = app.new_booking_form("car-wash")
        result = await form.submit()
        assert not result["success"]
        assert result["message"] == "Please fix the highlighted fields"
        assert result["errors"]
        assert backend.booking_rows == {}

    @pytest.mark.asyncio
    async def test_success_resets_form(self, app, signed_in):
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        result = await form.submit()
        assert result["success"], result
        assert result["message"] == "Booking confirmed!"
        assert app.bookings.get(result["booking_id"]).service_name == "Car Wash"
        assert all(value == "" for value in form.values.values())
        assert not form.submitting

    @pytest.mark.asyncio
    async def test_repository_failure_message_verbatim(self, app, backend, signed_in):
        backend.failures.add("bookings.insert")
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        result = await form.submit()
        assert not result["success"]
        assert result["message"] == "Simulated failure in bookings.insert"
        assert form.values["address"] == "42 MG Road, Bengaluru"

    @pytest.mark.asyncio
    async def test_logged_out_submit(self, app):
        form = app.new_booking_form("car-wash")
        fill_valid(form)
        result = await form.submit()
        assert result["message"] == "Please log in to book a service"
