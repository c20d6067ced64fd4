"""Identity and auth-session data models."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """The signed-in customer as held by the session store."""
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""

    @classmethod
    def from_profile(cls, row: dict[str, Any]) -> "Identity":
        """Build from a profile table row (``full_name`` column)."""
        return cls(
            id=str(row["id"]),
            name=row.get("full_name") or "",
            email=row.get("email") or "",
            phone=row.get("phone") or "",
        )

    @classmethod
    def from_auth_user(cls, user: "AuthUser") -> "Identity":
        """Synthesize from session metadata when no profile row exists yet."""
        meta = user.user_metadata
        return cls(
            id=user.id,
            name=meta.get("full_name") or meta.get("name") or "",
            email=user.email or "",
            phone=meta.get("phone") or "",
        )


class AuthUser(BaseModel):
    """User object carried by an identity provider session."""
    id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Active identity provider session."""
    access_token: str
    refresh_token: Optional[str] = None
    user: AuthUser
