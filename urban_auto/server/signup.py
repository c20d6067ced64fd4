"""
Server-side signup endpoint.

Runs with admin credentials: creates the auth user with the email already
confirmed, then upserts the profile row. The two steps are reported as one
unit, except that a profile failure after a successful user creation is
returned distinctly (``partial: true`` with the ``userId``) so the client
can decide whether to carry on.

Accounts created here skip the provider's email-confirmation gate; the
login fallback in ``urban_auto.session.store`` relies on this.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from urban_auto.backend.interfaces import AdminAuth, ProfileTable
from urban_auto.errors import AuthErrorCode, BackendError
from urban_auto.utils import is_blank, normalize_email

logger = logging.getLogger(__name__)

SignupResponse = tuple[int, dict[str, Any]]


def _is_duplicate(exc: BackendError) -> bool:
    message = exc.message.lower()
    return (
        exc.code in ("email_exists", "user_already_exists")
        or "already registered" in message
        or "already exists" in message
    )


class SignupHandler:
    """``POST {name, email, phone, password}`` -> ``(status, body)``."""

    def __init__(
        self,
        admin: AdminAuth,
        profiles: ProfileTable,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._admin = admin
        self._profiles = profiles
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def handle(self, payload: dict[str, Any]) -> SignupResponse:
        name = payload.get("name")
        email = payload.get("email")
        phone = payload.get("phone")
        password = payload.get("password")
        if any(is_blank(v) for v in (name, email, phone, password)):
            return 400, {
                "error": "Missing required fields",
                "code": AuthErrorCode.VALIDATION_ERROR.value,
            }

        email = normalize_email(email)
        try:
            user = await self._admin.create_user(
                email=email,
                password=password,
                email_confirm=True,
                user_metadata={"full_name": name, "phone": phone},
            )
        except BackendError as exc:
            if _is_duplicate(exc):
                return 400, {
                    "error": "An account with this email already exists",
                    "code": AuthErrorCode.DUPLICATE_ACCOUNT.value,
                }
            logger.error("Admin user creation failed: %s", exc.message)
            return 400, {"error": exc.message, "code": AuthErrorCode.PROVIDER_ERROR.value}

        user_id = user.get("id") if user else None
        if not user_id:
            return 500, {
                "error": "Failed to create user record",
                "code": AuthErrorCode.PROVIDER_ERROR.value,
            }

        try:
            await self._profiles.upsert({
                "id": user_id,
                "email": email,
                "full_name": name,
                "phone": phone,
                "updated_at": self._clock().isoformat(),
            })
        except BackendError as exc:
            logger.error("Profile creation failed for %s: %s", user_id, exc.message)
            return 500, {
                "error": "User created but profile setup failed",
                "code": AuthErrorCode.PROVIDER_ERROR.value,
                "userId": user_id,
                "partial": True,
            }

        logger.info("User %s registered", user_id)
        return 200, {"success": True, "userId": user_id}


class LocalSignupEndpoint:
    """Calls a ``SignupHandler`` in-process, for the console demo and tests."""

    def __init__(self, handler: SignupHandler) -> None:
        self._handler = handler

    async def register(self, name: str, email: str, phone: str, password: str) -> dict[str, Any]:
        _, body = await self._handler.handle(
            {"name": name, "email": email, "phone": phone, "password": password}
        )
        return body
