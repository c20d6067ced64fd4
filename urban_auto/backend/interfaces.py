"""
Interfaces for the external services the client core consumes.

Every remote call is a coroutine. Implementations raise
``urban_auto.errors.BackendError`` on failure; callers never see
transport-specific exceptions.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol

from urban_auto.schemas.identity_schema import AuthSession
from urban_auto.schemas.location_schema import AddressData, LocationSample

SESSION_SIGNED_IN = "SIGNED_IN"
SESSION_SIGNED_OUT = "SIGNED_OUT"

SessionListener = Callable[[str, Optional[AuthSession]], Awaitable[None]]
Unsubscribe = Callable[[], None]


class IdentityProvider(Protocol):
    """Authentication service with a push-style session change stream."""

    async def get_session(self) -> Optional[AuthSession]: ...

    def on_session_change(self, listener: SessionListener) -> Unsubscribe: ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    async def sign_out(self) -> None: ...


class AdminAuth(Protocol):
    """Privileged user management. Only the server-side signup handler uses it."""

    async def create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool,
        user_metadata: dict[str, Any],
    ) -> dict[str, Any]: ...


class ProfileTable(Protocol):
    """``profiles`` rows: id, full_name, email, phone, updated_at."""

    async def get_by_id(self, user_id: str) -> Optional[dict[str, Any]]: ...

    async def get_by_email(self, email: str) -> Optional[dict[str, Any]]: ...

    async def upsert(self, row: dict[str, Any]) -> None: ...


class BookingTable(Protocol):
    """``bookings`` rows keyed by id and owned through ``user_id``."""

    async def insert(self, row: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    async def update(self, booking_id: str, values: dict[str, Any]) -> None: ...

    async def delete(self, booking_id: str) -> None: ...

    async def select_by_owner(self, user_id: str) -> list[dict[str, Any]]:
        """Rows with ``user_id`` equal to the argument, newest ``created_at`` first."""
        ...


class SignupEndpoint(Protocol):
    """Client view of the server-side signup endpoint."""

    async def register(
        self, name: str, email: str, phone: str, password: str
    ) -> dict[str, Any]:
        """Return ``{success, userId}`` or ``{error, ...}``; never raise for API errors."""
        ...


class PushGateway(Protocol):
    """Push notification delivery to every registered device."""

    async def broadcast(self, title: str, body: str) -> int: ...


class LocationDevice(Protocol):
    """Platform geolocation API."""

    async def check_permissions(self) -> str: ...

    async def request_permissions(self) -> str: ...

    async def get_current_position(
        self, high_accuracy: bool, timeout: float
    ) -> LocationSample: ...


class ReverseGeocoder(Protocol):
    """Coordinates to address. Raises ``LocationError`` with GEOCODE_ERROR on failure."""

    name: str

    async def reverse(self, latitude: float, longitude: float) -> AddressData: ...
