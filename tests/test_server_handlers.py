"""Tests for the server-side signup and broadcast handlers."""

import pytest

from urban_auto.server.notifications import BroadcastHandler
from urban_auto.server.signup import SignupHandler

PAYLOAD = {"name": "Jane", "email": " Jane@X.com ", "phone": "9990001111", "password": "pw"}


@pytest.fixture
def signup_handler(backend):
    return SignupHandler(backend.admin, backend.profile_table, clock=backend.clock)


class TestSignupHandler:
    @pytest.mark.asyncio
    async def test_creates_confirmed_user_and_profile(self, signup_handler, backend):
        status, body = await signup_handler.handle(PAYLOAD)
        assert status == 200
        assert body["success"] is True
        user = backend.users[body["userId"]]
        assert user.email == "jane@x.com"
        assert user.email_confirmed
        assert backend.profiles[user.id]["full_name"] == "Jane"

    @pytest.mark.asyncio
    async def test_missing_fields(self, signup_handler, backend):
        status, body = await signup_handler.handle({**PAYLOAD, "phone": ""})
        assert status == 400
        assert body["code"] == "validation_error"
        assert backend.users == {}

    @pytest.mark.asyncio
    async def test_duplicate_email(self, signup_handler):
        await signup_handler.handle(PAYLOAD)
        status, body = await signup_handler.handle(PAYLOAD)
        assert status == 400
        assert body == {
            "error": "An account with this email already exists",
            "code": "duplicate_account",
        }

    @pytest.mark.asyncio
    async def test_admin_failure(self, signup_handler, backend):
        backend.failures.add("admin.create_user")
        status, body = await signup_handler.handle(PAYLOAD)
        assert status == 400
        assert body["code"] == "provider_error"

    @pytest.mark.asyncio
    async def test_profile_failure_is_partial(self, signup_handler, backend):
        backend.failures.add("profiles.upsert")
        status, body = await signup_handler.handle(PAYLOAD)
        assert status == 500
        assert body["partial"] is True
        assert body["userId"] in backend.users
        assert body["userId"] not in backend.profiles


class TestBroadcastHandler:
    @pytest.mark.asyncio
    async def test_broadcast_counts_devices(self, backend):
        backend.push.register_device("t1")
        backend.push.register_device("t2")
        status, body = await BroadcastHandler(backend.push).handle(
            {"title": " Offer ", "body": "20% off car wash"}
        )
        assert (status, body) == (200, {"success": True, "count": 2})
        assert backend.push.sent[0]["title"] == "Offer"

    @pytest.mark.asyncio
    async def test_requires_title_and_body(self, backend):
        status, body = await BroadcastHandler(backend.push).handle({"title": "Hi"})
        assert status == 400
        assert body["error"] == "Please enter both title and body"

    @pytest.mark.asyncio
    async def test_gateway_failure(self, backend):
        backend.failures.add("push.broadcast")
        status, body = await BroadcastHandler(backend.push).handle({"title": "a", "body": "b"})
        assert status == 500
        assert body["success"] is False
