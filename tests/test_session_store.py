"""Tests for the session store: signup, login, logout, bootstrap and event races."""

import asyncio

import pytest

from urban_auto.backend.interfaces import SESSION_SIGNED_IN
from urban_auto.backend.memory import InMemoryBackend
from urban_auto.errors import AuthErrorCode
from urban_auto.schemas.identity_schema import AuthSession, AuthUser
from urban_auto.server.signup import LocalSignupEndpoint, SignupHandler
from urban_auto.session.state_machine import SessionState
from urban_auto.session.store import SessionStore

from tests.conftest import SEEDED_EMAIL, SEEDED_PASSWORD


class GatedProfiles:
    """Profile table wrapper whose get_by_id can be held open by a test."""

    def __init__(self, inner):
        self._inner = inner
        self.gate = None

    async def get_by_id(self, user_id):
        if self.gate is not None:
            await self.gate.wait()
        return await self._inner.get_by_id(user_id)

    async def get_by_email(self, email):
        return await self._inner.get_by_email(email)

    async def upsert(self, row):
        await self._inner.upsert(row)


class FixedSignupEndpoint:
    def __init__(self, body):
        self.body = body
        self.calls = []

    async def register(self, name, email, phone, password):
        self.calls.append((name, email, phone, password))
        return self.body


def make_store(backend, profiles=None, endpoint=None, timeout=1.0):
    return SessionStore(
        backend.auth,
        profiles or backend.profile_table,
        endpoint or LocalSignupEndpoint(SignupHandler(backend.admin, backend.profile_table)),
        bootstrap_timeout=timeout,
    )


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_then_login_same_identity(self, session_store, backend):
        result = await session_store.signup("Jane", "jane@x.com", "999 000 1111", "pw")
        assert result["success"], result
        identity = session_store.identity
        assert identity.name == "Jane"
        assert identity.email == "jane@x.com"
        assert identity.phone == "9990001111"
        assert identity.id in backend.profiles
        assert session_store.state == SessionState.AUTHENTICATED

        await session_store.logout()
        assert session_store.identity is None
        result = await session_store.login("jane@x.com", "pw")
        assert result["success"]
        assert session_store.identity.id == identity.id

    @pytest.mark.asyncio
    async def test_duplicate_email(self, session_store, seeded_user_id):
        result = await session_store.signup("Other", SEEDED_EMAIL, "1", "pw")
        assert not result["success"]
        assert result["error"] == AuthErrorCode.DUPLICATE_ACCOUNT.value
        assert session_store.identity is None

    @pytest.mark.asyncio
    async def test_missing_fields_never_call_endpoint(self, backend):
        endpoint = FixedSignupEndpoint({"success": True, "userId": "x"})
        store = make_store(backend, endpoint=endpoint)
        result = await store.signup("Jane", "", " ", "pw")
        assert result["error"] == AuthErrorCode.VALIDATION_ERROR.value
        assert "email" in result["message"] and "phone" in result["message"]
        assert endpoint.calls == []

    @pytest.mark.asyncio
    async def test_partial_signup_proceeds_to_login(self, backend):
        backend.failures.add("profiles.upsert")
        store = make_store(backend)
        result = await store.signup("Jane", "jane@x.com", "9990001111", "pw")
        assert result["success"], result
        # No profile row, so the identity comes from auth metadata.
        assert store.identity.name == "Jane"
        assert store.identity.id not in backend.profiles

    @pytest.mark.asyncio
    async def test_endpoint_error_is_provider_error(self, backend):
        store = make_store(backend, endpoint=FixedSignupEndpoint({"error": "boom"}))
        result = await store.signup("Jane", "jane@x.com", "1", "pw")
        assert result == {"success": False, "error": "provider_error", "message": "boom"}


class TestLogin:
    @pytest.mark.asyncio
    async def test_wrong_password(self, session_store, seeded_user_id):
        result = await session_store.login(SEEDED_EMAIL, "wrong")
        assert result["error"] == AuthErrorCode.INVALID_CREDENTIALS.value
        assert result["message"] == "Incorrect password"
        assert session_store.identity is None

    @pytest.mark.asyncio
    async def test_unknown_email(self, session_store):
        result = await session_store.login("nobody@x.com", "pw")
        assert result["error"] == AuthErrorCode.NOT_FOUND.value
        assert session_store.identity is None

    @pytest.mark.asyncio
    async def test_blank_credentials(self, session_store):
        result = await session_store.login(" ", "pw")
        assert result["error"] == AuthErrorCode.VALIDATION_ERROR.value

    @pytest.mark.asyncio
    async def test_login_normalizes_email(self, session_store, seeded_user_id):
        result = await session_store.login("  A@B.COM ", SEEDED_PASSWORD)
        assert result["success"]
        assert session_store.identity.id == seeded_user_id
        assert session_store.identity.name == "Asha"

    @pytest.mark.asyncio
    async def test_unconfirmed_email_uses_profile_row(self, session_store, backend):
        user_id = backend.seed_user("u@x.com", "pw", name="Uma", email_confirmed=False)
        result = await session_store.login("u@x.com", "pw")
        assert result["success"]
        assert session_store.identity.id == user_id
        assert session_store.identity.name == "Uma"

    @pytest.mark.asyncio
    async def test_unconfirmed_email_without_profile(self, session_store, backend):
        backend.seed_user("u@x.com", "pw", email_confirmed=False, with_profile=False)
        result = await session_store.login("u@x.com", "pw")
        assert result["error"] == AuthErrorCode.NOT_FOUND.value
        assert session_store.identity is None

    @pytest.mark.asyncio
    async def test_provider_failure(self, session_store, backend, seeded_user_id):
        backend.failures.add("auth.sign_in")
        result = await session_store.login(SEEDED_EMAIL, SEEDED_PASSWORD)
        assert result["error"] == AuthErrorCode.PROVIDER_ERROR.value


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_identity_and_bookings(self, app, backend, signed_in):
        await app.bookings.add_booking({
            "service_name": "Car Wash", "vehicle_type": "Sedan",
            "address": "1 Road", "preferred_date_time": "2026-10-20 10:00",
        })
        assert len(app.bookings.bookings) == 1

        await app.session.logout()
        assert app.session.identity is None
        assert app.session.state == SessionState.ANONYMOUS
        assert app.bookings.bookings == ()

    @pytest.mark.asyncio
    async def test_logout_survives_remote_failure(self, session_store, backend, signed_in):
        backend.failures.add("auth.sign_out")
        await session_store.logout()
        assert session_store.identity is None


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_no_session_resolves_anonymous(self, session_store):
        assert await session_store.start() == SessionState.ANONYMOUS
        assert not session_store.is_loading

    @pytest.mark.asyncio
    async def test_existing_session_restored(self, backend, seeded_user_id):
        first = make_store(backend)
        await first.login(SEEDED_EMAIL, SEEDED_PASSWORD)
        first.close()

        second = make_store(backend)
        assert await second.start() == SessionState.AUTHENTICATED
        assert second.identity.id == seeded_user_id

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, session_store):
        await session_store.start()
        assert await session_store.start() == SessionState.ANONYMOUS
        assert session_store.state_machine.get_state_trace() == [
            "uninitialized", "loading", "anonymous",
        ]

    @pytest.mark.asyncio
    async def test_timeout_then_late_event_authenticates(self, backend, seeded_user_id):
        backend.auth.get_session_delay = 5.0
        store = make_store(backend, timeout=0.05)
        notified = []
        store.subscribe(notified.append)

        assert await store.start() == SessionState.ANONYMOUS
        assert store.identity is None
        assert notified == [None]

        user = backend.users[seeded_user_id].to_auth_user()
        await backend.auth.emit(SESSION_SIGNED_IN, AuthSession(access_token="t", user=user))
        assert store.state == SessionState.AUTHENTICATED
        assert store.identity.id == seeded_user_id

    @pytest.mark.asyncio
    async def test_get_session_failure_resolves_anonymous(self, backend):
        backend.failures.add("auth.get_session")
        store = make_store(backend)
        assert await store.start() == SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, backend):
        store = make_store(backend)
        await store.start()
        assert backend.auth.listener_count == 1
        store.close()
        store.close()
        assert backend.auth.listener_count == 0


class TestSessionEvents:
    @pytest.mark.asyncio
    async def test_stale_sync_ignored_after_manual_logout(self, backend, seeded_user_id):
        profiles = GatedProfiles(backend.profile_table)
        store = make_store(backend, profiles=profiles)
        await store.start()
        other_id = backend.seed_user("o@x.com", "pw", name="Other")

        profiles.gate = asyncio.Event()
        other = backend.users[other_id].to_auth_user()
        pending = asyncio.create_task(
            backend.auth.emit(SESSION_SIGNED_IN, AuthSession(access_token="t", user=other))
        )
        await asyncio.sleep(0)

        await store.logout()
        profiles.gate.set()
        await pending

        assert store.identity is None

    @pytest.mark.asyncio
    async def test_profile_failure_falls_back_to_metadata(self, session_store, backend, seeded_user_id):
        backend.failures.add("profiles.select")
        result = await session_store.login(SEEDED_EMAIL, SEEDED_PASSWORD)
        assert result["success"]
        assert session_store.identity.id == seeded_user_id
        assert session_store.identity.name == "Asha"

    @pytest.mark.asyncio
    async def test_listener_error_does_not_break_store(self, session_store, seeded_user_id):
        def broken(_identity):
            raise RuntimeError("listener bug")

        session_store.subscribe(broken)
        result = await session_store.login(SEEDED_EMAIL, SEEDED_PASSWORD)
        assert result["success"]


class TestRefreshProfile:
    @pytest.mark.asyncio
    async def test_refresh_replaces_identity(self, session_store, backend, signed_in):
        backend.profiles[signed_in]["full_name"] = "Asha R"
        result = await session_store.refresh_profile()
        assert result["success"]
        assert session_store.identity.name == "Asha R"

    @pytest.mark.asyncio
    async def test_refresh_when_logged_out(self, session_store):
        result = await session_store.refresh_profile()
        assert result["error"] == AuthErrorCode.NOT_FOUND.value


def test_identity_from_metadata_without_profile():
    backend = InMemoryBackend()
    user_id = backend.seed_user("m@x.com", "pw", name="Meera", with_profile=False)
    user = backend.users[user_id].to_auth_user()
    assert isinstance(user, AuthUser)
    assert user.user_metadata["full_name"] == "Meera"
