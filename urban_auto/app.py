"""
Application context: the constructed session store, booking repository
and location sampler that the screens read from.

One ``UrbanAutoApp`` is built at process start and passed to whatever
needs it; there is no module-level current user or booking list.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from urban_auto.backend.interfaces import (
    BookingTable,
    IdentityProvider,
    LocationDevice,
    ProfileTable,
    ReverseGeocoder,
    SignupEndpoint,
)
from urban_auto.backend.memory import InMemoryBackend
from urban_auto.backend.supabase import SupabaseBackend
from urban_auto.bookings.form import BookingForm
from urban_auto.bookings.repository import BookingRepository
from urban_auto.config import AppConfig, settings
from urban_auto.location.geocoding import ChainedGeocoder, MapplsGeocoder, NominatimGeocoder
from urban_auto.location.sampler import LocationSampler
from urban_auto.server.signup import LocalSignupEndpoint, SignupHandler
from urban_auto.session.state_machine import SessionState
from urban_auto.session.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class UrbanAutoApp:
    """Everything a screen needs, wired once."""

    session: SessionStore
    bookings: BookingRepository
    sampler: Optional[LocationSampler] = None
    today: Optional[Callable[[], date]] = field(default=None, repr=False)

    async def start(self) -> SessionState:
        """Bootstrap the session and, when signed in, load bookings."""
        state = await self.session.start()
        if self.session.identity is not None:
            await self.bookings.refresh()
        logger.info("App started in state %s", state.value)
        return state

    def new_booking_form(self, service_id: str = "") -> BookingForm:
        return BookingForm(self.bookings, service_id=service_id, today=self.today)

    async def shutdown(self) -> None:
        self.bookings.close()
        self.session.close()


def build_app(
    provider: IdentityProvider,
    profiles: ProfileTable,
    booking_table: BookingTable,
    signup_endpoint: SignupEndpoint,
    device: Optional[LocationDevice] = None,
    geocoder: Optional[ReverseGeocoder] = None,
    config: AppConfig = settings,
    today: Optional[Callable[[], date]] = None,
) -> UrbanAutoApp:
    session = SessionStore(
        provider,
        profiles,
        signup_endpoint,
        bootstrap_timeout=config.session.bootstrap_timeout_sec,
    )
    bookings = BookingRepository(
        session, booking_table, default_total_amount=config.booking.default_total_amount
    )
    sampler = None
    if device is not None and geocoder is not None:
        sampler = LocationSampler(
            device,
            geocoder,
            sample_count=config.location.sample_count,
            fix_timeout=config.location.fix_timeout_sec,
            pause=config.location.sample_pause_sec,
            advisory_accuracy=config.location.advisory_accuracy,
        )
    return UrbanAutoApp(session=session, bookings=bookings, sampler=sampler, today=today)


def build_in_memory_app(
    backend: InMemoryBackend,
    device: Optional[LocationDevice] = None,
    geocoder: Optional[ReverseGeocoder] = None,
    config: AppConfig = settings,
    today: Optional[Callable[[], date]] = None,
) -> UrbanAutoApp:
    """App over an ``InMemoryBackend``, with the signup handler run in-process."""
    endpoint = LocalSignupEndpoint(SignupHandler(backend.admin, backend.profile_table))
    return build_app(
        backend.auth,
        backend.profile_table,
        backend.booking_table,
        endpoint,
        device=device,
        geocoder=geocoder,
        config=config,
        today=today,
    )


def build_hosted_app(
    backend: SupabaseBackend,
    device: Optional[LocationDevice] = None,
    config: AppConfig = settings,
) -> UrbanAutoApp:
    """App over the hosted backend, geocoding with Nominatim then Mappls."""
    geocoders: list[ReverseGeocoder] = [
        NominatimGeocoder(
            base_url=config.location.nominatim_url,
            user_agent=config.location.nominatim_user_agent,
            language=config.location.geocode_language,
        )
    ]
    if config.location.mappls_token:
        geocoders.append(MapplsGeocoder(access_token=config.location.mappls_token))
    return build_app(
        backend.auth,
        backend.profile_table,
        backend.booking_table,
        backend.signup_endpoint,
        device=device,
        geocoder=ChainedGeocoder(geocoders),
        config=config,
    )
