"""
HTTP adapters for the hosted backend-as-a-service (Supabase REST surface).

- ``SupabaseAuth``: password sign-in / sign-out against GoTrue
  (``/auth/v1``), with session-change listeners fired locally and optional
  session persistence to a JSON file.
- ``SupabaseProfileTable`` / ``SupabaseBookingTable``: PostgREST
  (``/rest/v1``) row access, authorized with the signed-in user's token
  so the store's row-level policies apply.
- ``SupabaseAdminAuth``: service-role user creation for the signup handler.
- ``HttpSignupEndpoint``: client for the server-side signup endpoint.

All failures surface as ``BackendError`` with the provider's error code.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from urban_auto.backend.interfaces import (
    SESSION_SIGNED_IN,
    SESSION_SIGNED_OUT,
    SessionListener,
    Unsubscribe,
)
from urban_auto.config import BackendConfig, settings
from urban_auto.errors import BackendError
from urban_auto.schemas.identity_schema import AuthSession

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> BackendError:
    """Decode GoTrue and PostgREST error bodies into a BackendError."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or f"HTTP {response.status_code}"
    )
    code = body.get("error_code")
    if code is None and isinstance(body.get("code"), str):
        code = body["code"]
    if code is None and isinstance(body.get("error"), str):
        code = body["error"]
    return BackendError(str(message), code=code, status=response.status_code)


class SupabaseHttp:
    """Thin request helper carrying the project URL and API key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.backend.http_timeout_sec,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Any = None,
        headers: Optional[dict[str, str]] = None,
        bearer: Optional[str] = None,
    ) -> Any:
        request_headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {bearer or self.api_key}",
        }
        if headers:
            request_headers.update(headers)
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json_body,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise BackendError(f"Network error: {exc}", code="network_error") from exc

        if response.status_code >= 400:
            raise _error_from_response(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Invalid JSON in response", status=response.status_code) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


class SessionFileStorage:
    """Persists the auth session as JSON so a restart can resume it."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[AuthSession]:
        if not self.path.exists():
            return None
        try:
            return AuthSession.model_validate(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None

    def save(self, session: AuthSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class SupabaseAuth:
    """Identity provider backed by GoTrue password grants."""

    def __init__(self, http: SupabaseHttp, storage: Optional[SessionFileStorage] = None) -> None:
        self._http = http
        self._storage = storage
        self._session: Optional[AuthSession] = None
        self._loaded = storage is None
        self._listeners: list[SessionListener] = []

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    async def get_session(self) -> Optional[AuthSession]:
        if not self._loaded:
            self._session = self._storage.load()
            self._loaded = True
        return self._session

    def on_session_change(self, listener: SessionListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            await listener(event, self._session)

    def _store(self, session: Optional[AuthSession]) -> None:
        self._session = session
        self._loaded = True
        if self._storage is not None:
            if session is None:
                self._storage.clear()
            else:
                self._storage.save(session)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._http.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        session = AuthSession.model_validate(data)
        self._store(session)
        await self._emit(SESSION_SIGNED_IN)
        return session

    async def sign_out(self) -> None:
        token = self.access_token
        try:
            if token:
                await self._http.request("POST", "/auth/v1/logout", bearer=token)
        finally:
            self._store(None)
            await self._emit(SESSION_SIGNED_OUT)


class SupabaseAdminAuth:
    """Service-role user management. Never construct this in a client build."""

    def __init__(self, http: SupabaseHttp) -> None:
        self._http = http

    async def create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool,
        user_metadata: dict[str, Any],
    ) -> dict[str, Any]:
        data = await self._http.request(
            "POST",
            "/auth/v1/admin/users",
            json_body={
                "email": email,
                "password": password,
                "email_confirm": email_confirm,
                "user_metadata": user_metadata,
            },
        )
        # Older GoTrue versions wrap the user object.
        if isinstance(data, dict) and "user" in data and isinstance(data["user"], dict):
            return data["user"]
        return data or {}


class _SupabaseTable:
    def __init__(self, http: SupabaseHttp, table: str, auth: Optional[SupabaseAuth] = None) -> None:
        self._http = http
        self._path = f"/rest/v1/{table}"
        self._auth = auth

    def _bearer(self) -> Optional[str]:
        return self._auth.access_token if self._auth else None

    async def _select_one(self, column: str, value: str) -> Optional[dict[str, Any]]:
        rows = await self._http.request(
            "GET",
            self._path,
            params={column: f"eq.{value}", "select": "*", "limit": 1},
            bearer=self._bearer(),
        )
        return rows[0] if rows else None


class SupabaseProfileTable(_SupabaseTable):
    async def get_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        return await self._select_one("id", user_id)

    async def get_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return await self._select_one("email", email)

    async def upsert(self, row: dict[str, Any]) -> None:
        await self._http.request(
            "POST",
            self._path,
            params={"on_conflict": "id"},
            json_body=[row],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            bearer=self._bearer(),
        )


class SupabaseBookingTable(_SupabaseTable):
    async def insert(self, row: dict[str, Any]) -> Optional[dict[str, Any]]:
        rows = await self._http.request(
            "POST",
            self._path,
            json_body=[row],
            headers={"Prefer": "return=representation"},
            bearer=self._bearer(),
        )
        return rows[0] if rows else None

    async def update(self, booking_id: str, values: dict[str, Any]) -> None:
        await self._http.request(
            "PATCH",
            self._path,
            params={"id": f"eq.{booking_id}"},
            json_body=values,
            headers={"Prefer": "return=minimal"},
            bearer=self._bearer(),
        )

    async def delete(self, booking_id: str) -> None:
        # Row-level policies filter rows silently; an empty result means nothing was deleted.
        rows = await self._http.request(
            "DELETE",
            self._path,
            params={"id": f"eq.{booking_id}"},
            headers={"Prefer": "return=representation"},
            bearer=self._bearer(),
        )
        if not rows:
            raise BackendError(
                "Booking not found or not permitted", code="no_rows_affected", status=404
            )

    async def select_by_owner(self, user_id: str) -> list[dict[str, Any]]:
        rows = await self._http.request(
            "GET",
            self._path,
            params={"user_id": f"eq.{user_id}", "order": "created_at.desc", "select": "*"},
            bearer=self._bearer(),
        )
        return list(rows or [])


class HttpSignupEndpoint:
    """Posts to the server-side signup endpoint and returns its JSON body."""

    def __init__(
        self,
        url: str = settings.backend.signup_endpoint_url,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.backend.http_timeout_sec,
    ) -> None:
        self._url = url
        self._client = client
        self._timeout = timeout

    async def register(self, name: str, email: str, phone: str, password: str) -> dict[str, Any]:
        payload = {"name": name, "email": email, "phone": phone, "password": password}
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise BackendError(f"Network error: {exc}", code="network_error") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError(
                f"Signup endpoint returned HTTP {response.status_code} without JSON",
                status=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise BackendError("Unexpected signup response", status=response.status_code)
        return body


class SupabaseBackend:
    """Client-side wiring: auth plus the two tables, sharing one HTTP client."""

    def __init__(
        self,
        config: BackendConfig = settings.backend,
        client: Optional[httpx.AsyncClient] = None,
        session_file: Optional[Path] = None,
    ) -> None:
        self.http = SupabaseHttp(
            config.url, config.anon_key, client=client, timeout=config.http_timeout_sec
        )
        storage = SessionFileStorage(session_file) if session_file else None
        self.auth = SupabaseAuth(self.http, storage=storage)
        self.profile_table = SupabaseProfileTable(self.http, config.profiles_table, self.auth)
        self.booking_table = SupabaseBookingTable(self.http, config.bookings_table, self.auth)
        self.signup_endpoint = HttpSignupEndpoint(
            config.signup_endpoint_url, client=client, timeout=config.http_timeout_sec
        )

    async def aclose(self) -> None:
        await self.http.aclose()


def create_admin_clients(
    config: BackendConfig = settings.backend, client: Optional[httpx.AsyncClient] = None
) -> tuple[SupabaseAdminAuth, SupabaseProfileTable]:
    """Admin auth and a service-role profile table for the signup handler."""
    if not config.service_role_key:
        raise ValueError("SUPABASE_SERVICE_ROLE_KEY is required for admin clients")
    http = SupabaseHttp(
        config.url, config.service_role_key, client=client, timeout=config.http_timeout_sec
    )
    return SupabaseAdminAuth(http), SupabaseProfileTable(http, config.profiles_table)
