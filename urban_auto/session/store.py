"""
Session store: the single source of truth for who is logged in.

The store mirrors the identity provider's session into an ``Identity``
value. It is written from three places, all funnelled through
``_set_identity``:

1. bootstrap (``start``), bounded by a timeout so callers never wait on a
   provider that does not answer;
2. manual ``signup`` / ``login`` / ``logout``;
3. provider-pushed session change events.

Manual operations and provider events are not ordered relative to each
other. Each completed manual operation bumps ``_auth_generation``; a
background sync that started under an older generation is only applied
when it carries the same identity id as the current value.
"""

import asyncio
from typing import Callable, Optional

from urban_auto.backend.interfaces import (
    IdentityProvider,
    ProfileTable,
    SignupEndpoint,
    Unsubscribe,
)
from urban_auto.config import settings
from urban_auto.errors import AuthErrorCode, BackendError, OperationResult, fail, ok
from urban_auto.logging_context import get_user_logger, set_user_id
from urban_auto.schemas.identity_schema import AuthSession, Identity
from urban_auto.session.state_machine import (
    SessionState,
    SessionStateMachine,
    SessionTrigger,
)
from urban_auto.utils import is_blank, normalize_email, normalize_phone

logger = get_user_logger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]

_NOT_FOUND_CODES = {"user_not_found"}
_BAD_CREDENTIAL_CODES = {"invalid_credentials", "invalid_grant"}


def _is_email_not_confirmed(exc: BackendError) -> bool:
    return exc.code == "email_not_confirmed" or "email not confirmed" in exc.message.lower()


class SessionStore:
    """
    Holds the current ``Identity`` and the session lifecycle state.

    Construct one per process, call ``start()`` once, and ``close()`` on
    teardown to release the provider subscription.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileTable,
        signup_endpoint: SignupEndpoint,
        bootstrap_timeout: float = settings.session.bootstrap_timeout_sec,
    ) -> None:
        self._provider = provider
        self._profiles = profiles
        self._signup_endpoint = signup_endpoint
        self._bootstrap_timeout = bootstrap_timeout
        self._sm = SessionStateMachine()
        self._identity: Optional[Identity] = None
        self._listeners: list[IdentityListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None
        self._auth_generation = 0

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def state(self) -> SessionState:
        return self._sm.current_state

    @property
    def is_loading(self) -> bool:
        return self._sm.current_state in (SessionState.UNINITIALIZED, SessionState.LOADING)

    @property
    def state_machine(self) -> SessionStateMachine:
        return self._sm

    def subscribe(self, listener: IdentityListener) -> Unsubscribe:
        """Call ``listener`` with the new Identity (or None) after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> SessionState:
        """Subscribe to provider events and resolve the initial session.

        Returns the state reached. On timeout the store reports ANONYMOUS;
        a later provider event may still authenticate it.
        """
        if self._sm.current_state != SessionState.UNINITIALIZED:
            return self._sm.current_state

        self._sm.transition(SessionTrigger.BOOTSTRAP_STARTED)
        self._unsubscribe = self._provider.on_session_change(self._on_session_change)
        try:
            await asyncio.wait_for(self._bootstrap(), timeout=self._bootstrap_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Session bootstrap timed out after %.1fs; continuing as anonymous",
                self._bootstrap_timeout,
            )
            if self._sm.current_state == SessionState.LOADING:
                self._sm.transition(SessionTrigger.BOOTSTRAP_TIMEOUT)
                self._notify()
        return self._sm.current_state

    def close(self) -> None:
        """Release the provider subscription. Safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.debug("Session store unsubscribed from provider events")

    async def _bootstrap(self) -> None:
        generation = self._auth_generation
        try:
            session = await self._provider.get_session()
        except BackendError as exc:
            logger.warning("Could not read current session: %s", exc.message)
            session = None
        identity = await self._derive_identity(session) if session else None
        self._apply_background(generation, identity, bootstrap=True)

    async def _on_session_change(self, event: str, session: Optional[AuthSession]) -> None:
        generation = self._auth_generation
        logger.debug("Provider session event: %s", event)
        identity = await self._derive_identity(session) if session else None
        self._apply_background(generation, identity)

    async def _derive_identity(self, session: AuthSession) -> Identity:
        """Profile row for the session user, else an Identity synthesized from metadata."""
        try:
            row = await self._profiles.get_by_id(session.user.id)
        except BackendError as exc:
            logger.warning("Profile lookup failed for %s: %s", session.user.id, exc.message)
            row = None
        if row:
            return Identity.from_profile(row)
        logger.info("No profile row yet for %s; using session metadata", session.user.id)
        return Identity.from_auth_user(session.user)

    def _apply_background(
        self, generation: int, identity: Optional[Identity], bootstrap: bool = False
    ) -> None:
        if generation != self._auth_generation:
            current_id = self._identity.id if self._identity else None
            incoming_id = identity.id if identity else None
            if current_id != incoming_id:
                logger.info(
                    "Ignoring stale session sync (%s) after a newer manual auth change",
                    incoming_id or "signed out",
                )
                return
        self._set_identity(identity, bootstrap=bootstrap)

    def _set_identity(self, identity: Optional[Identity], bootstrap: bool = False) -> None:
        if bootstrap and self._sm.current_state == SessionState.LOADING:
            trigger = SessionTrigger.SESSION_FOUND if identity else SessionTrigger.NO_SESSION
        else:
            trigger = SessionTrigger.SIGNED_IN if identity else SessionTrigger.SIGNED_OUT
        self._sm.transition(trigger)
        self._identity = identity
        set_user_id(identity.id if identity else None)
        self._notify()

    def _complete_manual(self, identity: Optional[Identity]) -> None:
        self._auth_generation += 1
        self._set_identity(identity)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._identity)
            except Exception:
                logger.exception("Identity listener %r failed", listener)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def signup(self, name: str, email: str, phone: str, password: str) -> OperationResult:
        """Register through the server-side signup endpoint, then log in."""
        missing = [
            field_name
            for field_name, value in [
                ("name", name),
                ("email", email),
                ("phone", phone),
                ("password", password),
            ]
            if is_blank(value)
        ]
        if missing:
            return fail(
                AuthErrorCode.VALIDATION_ERROR,
                f"Missing required fields: {', '.join(missing)}.",
            )

        try:
            response = await self._signup_endpoint.register(
                name.strip(), normalize_email(email), normalize_phone(phone), password
            )
        except BackendError as exc:
            logger.error("Signup endpoint unreachable: %s", exc.message)
            return fail(AuthErrorCode.PROVIDER_ERROR, exc.message)

        if not response.get("success"):
            if response.get("partial") and response.get("userId"):
                logger.warning(
                    "Account %s created but profile setup failed; continuing with login",
                    response["userId"],
                )
            elif response.get("code") == AuthErrorCode.DUPLICATE_ACCOUNT.value:
                return fail(
                    AuthErrorCode.DUPLICATE_ACCOUNT,
                    response.get("error") or "An account with this email already exists",
                )
            else:
                return fail(AuthErrorCode.PROVIDER_ERROR, response.get("error") or "Signup failed")

        logger.info("Account registered for %s", normalize_email(email))
        return await self.login(email, password)

    async def login(self, email: str, password: str) -> OperationResult:
        """Sign in with email and password."""
        if is_blank(email) or is_blank(password):
            return fail(AuthErrorCode.VALIDATION_ERROR, "Email and password are required.")

        try:
            session = await self._provider.sign_in_with_password(normalize_email(email), password)
        except BackendError as exc:
            if _is_email_not_confirmed(exc):
                return await self._login_unconfirmed(email)
            if exc.code in _NOT_FOUND_CODES:
                return fail(AuthErrorCode.NOT_FOUND, "No account found with this email")
            if exc.code in _BAD_CREDENTIAL_CODES:
                return fail(AuthErrorCode.INVALID_CREDENTIALS, "Incorrect password")
            logger.error("Sign-in failed: %s", exc.message)
            return fail(AuthErrorCode.PROVIDER_ERROR, exc.message)

        identity = await self._derive_identity(session)
        self._complete_manual(identity)
        logger.info("Logged in as %s", identity.id)
        return ok("Logged in")

    async def _login_unconfirmed(self, email: str) -> OperationResult:
        # Accounts are auto-confirmed at signup; an unconfirmed email is accepted
        # on the strength of an existing profile row.
        try:
            row = await self._profiles.get_by_email(normalize_email(email))
        except BackendError as exc:
            return fail(AuthErrorCode.PROVIDER_ERROR, exc.message)
        if not row:
            return fail(AuthErrorCode.NOT_FOUND, "No account found with this email")

        identity = Identity.from_profile(row)
        logger.warning("Email not confirmed for %s; logged in from profile row", identity.id)
        self._complete_manual(identity)
        return ok("Logged in")

    async def logout(self) -> None:
        """Sign out remotely and clear the local Identity. Never raises BackendError."""
        try:
            await self._provider.sign_out()
        except BackendError as exc:
            logger.warning("Remote sign-out failed: %s", exc.message)
        self._complete_manual(None)
        logger.info("Logged out")

    async def refresh_profile(self) -> OperationResult:
        """Re-read the profile row and replace the Identity wholesale."""
        if self._identity is None:
            return fail(AuthErrorCode.NOT_FOUND, "Not logged in")
        user_id = self._identity.id
        try:
            row = await self._profiles.get_by_id(user_id)
        except BackendError as exc:
            return fail(AuthErrorCode.PROVIDER_ERROR, exc.message)
        if not row:
            return fail(AuthErrorCode.NOT_FOUND, "Profile not found")
        if self._identity is None or self._identity.id != user_id:
            return fail(AuthErrorCode.PROVIDER_ERROR, "Session changed during refresh")
        self._set_identity(Identity.from_profile(row))
        return ok("Profile refreshed")
