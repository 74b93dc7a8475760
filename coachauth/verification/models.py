"""
Verification models.

Pydantic models for fallback verification tokens and resend outcomes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class VerificationToken(BaseModel):
    """
    Row in the verification_tokens table.

    At most one active token exists per email: issuing a new one deletes
    the previous ones.
    """

    id: Optional[str] = None
    token: str
    user_email: str
    expires_at: datetime
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    token_type: Optional[str] = "email_verification"

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "token": "3f9a0c1b2d4e5f607182",
                "user_email": "user@example.com",
                "expires_at": "2024-01-02T00:00:00Z",
                "verified_at": None,
            }
        },
    }

    @field_validator("expires_at", "verified_at", "created_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    @property
    def is_consumed(self) -> bool:
        return self.verified_at is not None


class ResendState(str, Enum):
    """Per-email resend state machine."""

    IDLE = "idle"
    SENDING = "sending"
    COOLDOWN_ACTIVE = "cooldown_active"


class ResendChannel(str, Enum):
    NATIVE = "native"
    FALLBACK = "fallback"


class ResendOutcome(BaseModel):
    """
    Result of ``VerificationFlow.resend``.

    ``accepted`` is False only for no-ops (empty email or active cooldown);
    delivery failures are still reported as accepted. The link itself only
    ever travels by email.
    """

    accepted: bool
    channel: Optional[ResendChannel] = None
    cooldown: int = 0
    reason: Optional[str] = None
