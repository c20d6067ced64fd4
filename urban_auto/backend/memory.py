"""
In-process backend implementing every interface in ``backend.interfaces``.

Stands in for the hosted backend during the console demo and the test
suite. Row-level ownership is enforced on booking mutations the way the
hosted store's policies do: only the signed-in user may insert, update or
delete their own rows, and selects only return that user's rows.

Failures can be injected per operation name, e.g.::

    backend.failures.add("bookings.insert")
"""

import asyncio
import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from urban_auto.backend.interfaces import (
    SESSION_SIGNED_IN,
    SESSION_SIGNED_OUT,
    SessionListener,
    Unsubscribe,
)
from urban_auto.errors import BackendError, LocationError, LocationErrorCode
from urban_auto.schemas.identity_schema import AuthSession, AuthUser
from urban_auto.schemas.location_schema import AddressData, LocationSample
from urban_auto.utils import normalize_email

logger = logging.getLogger(__name__)


def _hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


@dataclass
class UserRecord:
    """Auth user as held by the in-memory identity provider."""
    id: str
    email: str
    password_hash: str
    salt: str
    email_confirmed: bool = True
    user_metadata: dict[str, Any] = field(default_factory=dict)

    def check_password(self, password: str) -> bool:
        return secrets.compare_digest(self.password_hash, _hash_password(password, self.salt))

    def to_auth_user(self) -> AuthUser:
        return AuthUser(id=self.id, email=self.email, user_metadata=dict(self.user_metadata))


class InMemoryBackend:
    """Shared state for the in-memory auth, tables and push gateway."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.users: dict[str, UserRecord] = {}
        self.profiles: dict[str, dict[str, Any]] = {}
        self.booking_rows: dict[str, dict[str, Any]] = {}
        self.failures: set[str] = set()
        self._seq = 0

        self.auth = InMemoryIdentityProvider(self)
        self.admin = InMemoryAdminAuth(self)
        self.profile_table = InMemoryProfileTable(self)
        self.booking_table = InMemoryBookingTable(self)
        self.push = InMemoryPushGateway(self)

    def check_failure(self, operation: str) -> None:
        if operation in self.failures:
            logger.debug("Injected failure for %s", operation)
            raise BackendError(f"Simulated failure in {operation}", code="simulated", status=500)

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = normalize_email(email)
        for user in self.users.values():
            if user.email == wanted:
                return user
        return None

    def seed_user(
        self,
        email: str,
        password: str,
        name: str = "",
        phone: str = "",
        email_confirmed: bool = True,
        with_profile: bool = True,
    ) -> str:
        """Create a user (and optionally its profile row) directly. Returns the user id."""
        salt = secrets.token_hex(8)
        user = UserRecord(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            password_hash=_hash_password(password, salt),
            salt=salt,
            email_confirmed=email_confirmed,
            user_metadata={"full_name": name, "phone": phone},
        )
        self.users[user.id] = user
        if with_profile:
            self.profiles[user.id] = {
                "id": user.id,
                "full_name": name,
                "email": user.email,
                "phone": phone,
                "updated_at": self.clock().isoformat(),
            }
        return user.id

    def seed_booking(self, user_id: str, **values: Any) -> dict[str, Any]:
        """Insert a booking row bypassing ownership checks (server-side writes)."""
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "service_name": "Car Wash",
            "vehicle_type": "Sedan",
            "vehicle_number": None,
            "address": "1 Test Street",
            "preferred_date_time": "2030-01-01 10:00",
            "booking_date": None,
            "notes": None,
            "status": "Pending",
            "total_amount": 0,
            "created_at": self.clock().isoformat(),
        }
        row.update(values)
        row["_seq"] = self.next_seq()
        self.booking_rows[row["id"]] = row
        return _public(row)


def _public(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in row.items() if not k.startswith("_")}


class InMemoryIdentityProvider:
    """Password auth with a session-change listener list."""

    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend
        self._session: Optional[AuthSession] = None
        self._listeners: list[SessionListener] = []
        self.get_session_delay: float = 0.0

    @property
    def current_user_id(self) -> Optional[str]:
        return self._session.user.id if self._session else None

    async def get_session(self) -> Optional[AuthSession]:
        if self.get_session_delay:
            await asyncio.sleep(self.get_session_delay)
        self._backend.check_failure("auth.get_session")
        return self._session

    def on_session_change(self, listener: SessionListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, event: str, session: Optional[AuthSession]) -> None:
        """Deliver a session change to every listener, in subscription order."""
        for listener in list(self._listeners):
            await listener(event, session)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        self._backend.check_failure("auth.sign_in")
        user = self._backend.find_user_by_email(email)
        if user is None:
            raise BackendError("User not found", code="user_not_found", status=400)
        if not user.check_password(password):
            raise BackendError("Invalid login credentials", code="invalid_credentials", status=400)
        if not user.email_confirmed:
            raise BackendError("Email not confirmed", code="email_not_confirmed", status=400)

        self._session = AuthSession(
            access_token=secrets.token_urlsafe(16),
            refresh_token=secrets.token_urlsafe(16),
            user=user.to_auth_user(),
        )
        await self.emit(SESSION_SIGNED_IN, self._session)
        return self._session

    async def sign_out(self) -> None:
        self._backend.check_failure("auth.sign_out")
        self._session = None
        await self.emit(SESSION_SIGNED_OUT, None)


class InMemoryAdminAuth:
    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend

    async def create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool,
        user_metadata: dict[str, Any],
    ) -> dict[str, Any]:
        self._backend.check_failure("admin.create_user")
        if self._backend.find_user_by_email(email) is not None:
            raise BackendError(
                "A user with this email address has already been registered",
                code="email_exists",
                status=422,
            )
        user_id = self._backend.seed_user(
            email, password, email_confirmed=email_confirm, with_profile=False
        )
        user = self._backend.users[user_id]
        user.user_metadata = dict(user_metadata)
        return {"id": user.id, "email": user.email, "user_metadata": dict(user.user_metadata)}


class InMemoryProfileTable:
    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend

    async def get_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        self._backend.check_failure("profiles.select")
        row = self._backend.profiles.get(user_id)
        return dict(row) if row else None

    async def get_by_email(self, email: str) -> Optional[dict[str, Any]]:
        self._backend.check_failure("profiles.select")
        wanted = normalize_email(email)
        for row in self._backend.profiles.values():
            if normalize_email(row.get("email") or "") == wanted:
                return dict(row)
        return None

    async def upsert(self, row: dict[str, Any]) -> None:
        self._backend.check_failure("profiles.upsert")
        existing = self._backend.profiles.get(row["id"], {})
        self._backend.profiles[row["id"]] = {**existing, **row}


class InMemoryBookingTable:
    """Booking rows with per-user ownership enforced against the signed-in session."""

    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend
        self.return_inserted_rows = True

    def _require_owner(self, owner_id: str) -> None:
        if self._backend.auth.current_user_id != owner_id:
            raise BackendError(
                "permission denied by row-level security policy for table bookings",
                code="42501",
                status=403,
            )

    async def insert(self, row: dict[str, Any]) -> Optional[dict[str, Any]]:
        self._backend.check_failure("bookings.insert")
        self._require_owner(row["user_id"])
        stored = {
            "vehicle_number": None,
            "booking_date": None,
            "notes": None,
            "total_amount": None,
            **row,
            "id": str(uuid.uuid4()),
            "created_at": self._backend.clock().isoformat(),
            "_seq": self._backend.next_seq(),
        }
        stored.setdefault("status", "Pending")
        self._backend.booking_rows[stored["id"]] = stored
        logger.debug("Inserted booking row %s", stored["id"])
        return _public(stored) if self.return_inserted_rows else None

    async def update(self, booking_id: str, values: dict[str, Any]) -> None:
        self._backend.check_failure("bookings.update")
        row = self._backend.booking_rows.get(booking_id)
        if row is None:
            return
        self._require_owner(row["user_id"])
        row.update(values)

    async def delete(self, booking_id: str) -> None:
        self._backend.check_failure("bookings.delete")
        row = self._backend.booking_rows.get(booking_id)
        if row is None:
            raise BackendError(
                "Booking not found or not permitted", code="no_rows_affected", status=404
            )
        self._require_owner(row["user_id"])
        del self._backend.booking_rows[booking_id]

    async def select_by_owner(self, user_id: str) -> list[dict[str, Any]]:
        self._backend.check_failure("bookings.select")
        if self._backend.auth.current_user_id != user_id:
            return []
        rows = [r for r in self._backend.booking_rows.values() if r["user_id"] == user_id]
        rows.sort(key=lambda r: (r["created_at"], r["_seq"]), reverse=True)
        return [_public(r) for r in rows]


class InMemoryPushGateway:
    """Device token registry; a broadcast reaches every registered token."""

    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend
        self.devices: set[str] = set()
        self.sent: list[dict[str, str]] = []

    def register_device(self, token: str) -> None:
        self.devices.add(token)

    def unregister_device(self, token: str) -> None:
        self.devices.discard(token)

    async def broadcast(self, title: str, body: str) -> int:
        self._backend.check_failure("push.broadcast")
        for token in sorted(self.devices):
            self.sent.append({"token": token, "title": title, "body": body})
        return len(self.devices)


class ScriptedLocationDevice:
    """Location device replaying a fixed list of samples.

    ``permission`` is the value returned by ``check_permissions``;
    ``grant_on_request`` decides what ``request_permissions`` returns.
    A ``None`` entry in ``samples`` never resolves, to exercise fix timeouts;
    a ``BackendError`` entry is raised as a platform "position unavailable".
    """

    def __init__(
        self,
        samples: list[Union[LocationSample, BackendError, None]],
        permission: str = "granted",
        grant_on_request: bool = True,
    ) -> None:
        self._samples = list(samples)
        self.permission = permission
        self.grant_on_request = grant_on_request
        self.requests: list[dict[str, Any]] = []

    async def check_permissions(self) -> str:
        return self.permission

    async def request_permissions(self) -> str:
        if self.grant_on_request:
            self.permission = "granted"
        else:
            self.permission = "denied"
        return self.permission

    async def get_current_position(self, high_accuracy: bool, timeout: float) -> LocationSample:
        self.requests.append({"high_accuracy": high_accuracy, "timeout": timeout})
        sample = self._samples[(len(self.requests) - 1) % len(self._samples)]
        if sample is None:
            await asyncio.Event().wait()
        if isinstance(sample, BackendError):
            raise sample
        return sample


class StaticGeocoder:
    """Reverse geocoder answering from a fixed street name; fails when ``fail`` is set."""

    name = "static"

    def __init__(self, street: str = "MG Road", city: str = "Bengaluru", fail: bool = False) -> None:
        self.street = street
        self.city = city
        self.fail = fail
        self.calls: list[tuple[float, float]] = []

    async def reverse(self, latitude: float, longitude: float) -> AddressData:
        self.calls.append((latitude, longitude))
        if self.fail:
            raise LocationError(LocationErrorCode.GEOCODE_ERROR, "Failed to fetch address details")
        return AddressData(
            display_name=f"{self.street}, {self.city}",
            road=self.street,
            city=self.city,
            lat=latitude,
            lon=longitude,
        )
