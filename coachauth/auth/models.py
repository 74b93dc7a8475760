"""
coachauth auth models.

Pydantic models for identities, sessions and profiles.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind


class Identity(BaseModel):
    """
    Authenticated principal issued by Supabase auth.

    Never mutated by coachauth: a new Identity replaces the old one whenever
    the backend emits a new session.
    """

    id: str
    email: Optional[str] = None
    email_confirmed_at: Optional[datetime] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    @classmethod
    def from_user(cls, user: Any) -> "Identity":
        """Build from a supabase_auth ``User``."""
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            email_confirmed_at=getattr(user, "email_confirmed_at", None),
            user_metadata=getattr(user, "user_metadata", None) or {},
        )


class TokenBundle(BaseModel):
    """
    Session token bundle - wraps a Supabase auth session.
    """

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    expires_in: int = 3600
    token_type: str = "bearer"
    user: Identity

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "eyJhbGc...",
                "refresh_token": "xyz123...",
                "expires_at": 1704067200,
                "expires_in": 3600,
                "token_type": "bearer",
            }
        }
    }

    @classmethod
    def from_session(cls, session: Any) -> "TokenBundle":
        """Build from a supabase_auth ``Session``."""
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            expires_in=session.expires_in or 3600,
            token_type=session.token_type or "bearer",
            user=Identity.from_user(session.user),
        )

    def seconds_until_expiry(self, now: datetime) -> Optional[float]:
        if self.expires_at is None:
            return None
        return self.expires_at - now.timestamp()


class Profile(BaseModel):
    """
    Profile model - represents a row in the profiles table.

    ``email_confirmed`` is a denormalized copy of the identity's
    confirmation state.
    """

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    email_confirmed: bool = False
    is_admin: bool = False
    updated_at: Optional[datetime] = None

    login_count: Optional[int] = None
    last_active_at: Optional[datetime] = None
    email_verified_at: Optional[datetime] = None

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "email": "user@example.com",
                "full_name": "Jane Doe",
                "email_confirmed": True,
                "is_admin": False,
                "updated_at": "2024-01-01T00:00:00Z",
            }
        },
    )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        # Nullable booleans in the table
        data = dict(row)
        for key in ("email_confirmed", "is_admin"):
            if data.get(key) is None:
                data.pop(key, None)
        return cls(**data)


class AuthState(BaseModel):
    """Read-only snapshot of the session store."""

    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    is_loading: bool = True
    is_authenticated: bool = False
    is_admin: bool = False

    model_config = ConfigDict(frozen=True)


class AuthResult(BaseModel):
    """Outcome of an account action; ``error`` is the backend message verbatim."""

    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SignupResult(AuthResult):
    email_sent: bool = False
    show_verification: bool = False
