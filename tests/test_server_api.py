"""Tests for the HTTP routes over the signup and broadcast handlers."""

import httpx
import pytest

from urban_auto.backend.supabase import HttpSignupEndpoint
from urban_auto.server.api import create_in_memory_server, create_server
from urban_auto.server.signup import SignupHandler
from urban_auto.session.store import SessionStore

BASE_URL = "http://urban-auto.test"


def asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)


class TestSignupRoute:
    @pytest.mark.asyncio
    async def test_signup_creates_account(self, backend):
        async with asgi_client(create_in_memory_server(backend)) as client:
            response = await client.post("/api/auth/signup", json={
                "name": "Jane", "email": "jane@x.com", "phone": "9990001111", "password": "pw123",
            })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["userId"] in backend.profiles

    @pytest.mark.asyncio
    async def test_missing_field_gets_handler_error(self, backend):
        async with asgi_client(create_in_memory_server(backend)) as client:
            response = await client.post("/api/auth/signup", json={"name": "Jane"})
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, backend, seeded_user_id):
        async with asgi_client(create_in_memory_server(backend)) as client:
            response = await client.post("/api/auth/signup", json={
                "name": "Asha", "email": "a@b.com", "phone": "1", "password": "x",
            })
        assert response.status_code == 400
        assert response.json()["code"] == "duplicate_account"

    @pytest.mark.asyncio
    async def test_client_endpoint_against_served_route(self, backend):
        client = asgi_client(create_in_memory_server(backend))
        endpoint = HttpSignupEndpoint(f"{BASE_URL}/api/auth/signup", client=client)
        store = SessionStore(backend.auth, backend.profile_table, endpoint)

        result = await store.signup("Jane", "jane@x.com", "9990001111", "pw123")
        await client.aclose()

        assert result["success"], result
        assert store.identity.name == "Jane"
        assert store.identity.id == backend.auth.current_user_id


class TestBroadcastRoute:
    @pytest.mark.asyncio
    async def test_broadcast_counts_devices(self, backend):
        backend.push.register_device("t1")
        async with asgi_client(create_in_memory_server(backend)) as client:
            response = await client.post(
                "/api/notifications/broadcast", json={"title": "Offer", "body": "20% off"}
            )
        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 1}

    @pytest.mark.asyncio
    async def test_blank_body_rejected(self, backend):
        async with asgi_client(create_in_memory_server(backend)) as client:
            response = await client.post("/api/notifications/broadcast", json={"title": "Offer"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_not_mounted_without_gateway(self, backend):
        app = create_server(SignupHandler(backend.admin, backend.profile_table))
        async with asgi_client(app) as client:
            response = await client.post(
                "/api/notifications/broadcast", json={"title": "a", "body": "b"}
            )
        assert response.status_code == 503
