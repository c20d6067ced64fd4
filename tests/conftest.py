"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio

from urban_auto.app import UrbanAutoApp, build_in_memory_app
from urban_auto.backend.memory import InMemoryBackend, StaticGeocoder
from urban_auto.schemas.booking_schema import BookingDraft
from urban_auto.schemas.location_schema import LocationSample

TODAY = date(2026, 10, 17)
SEEDED_EMAIL = "a@b.com"
SEEDED_PASSWORD = "x"


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def backend(clock):
    return InMemoryBackend(clock=clock)


@pytest.fixture
def seeded_user_id(backend):
    return backend.seed_user(SEEDED_EMAIL, SEEDED_PASSWORD, name="Asha", phone="9990002222")


@pytest.fixture
def app(backend) -> UrbanAutoApp:
    return build_in_memory_app(backend, geocoder=StaticGeocoder(), today=lambda: TODAY)


@pytest.fixture
def session_store(app):
    return app.session


@pytest.fixture
def repository(app):
    return app.bookings


@pytest_asyncio.fixture
async def signed_in(app, seeded_user_id):
    result = await app.session.login(SEEDED_EMAIL, SEEDED_PASSWORD)
    assert result["success"], result
    return seeded_user_id


def make_draft(**overrides) -> BookingDraft:
    """Helper to create a BookingDraft with sensible defaults."""
    values = {
        "service_name": "Car Wash",
        "vehicle_type": "Sedan",
        "vehicle_number": "KA 01 AB 1234",
        "address": "42 MG Road, Bengaluru",
        "preferred_date_time": "2026-10-20 10:30",
        "notes": None,
    }
    values.update(overrides)
    return BookingDraft(**values)


def make_samples(accuracies: list[float]) -> list[LocationSample]:
    """One sample per accuracy, with distinct coordinates."""
    return [
        LocationSample(latitude=12.97 + i * 0.001, longitude=77.59 + i * 0.001, accuracy=acc)
        for i, acc in enumerate(accuracies)
    ]
