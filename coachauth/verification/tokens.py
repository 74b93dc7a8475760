"""
Fallback verification tokens.

Used only when Supabase's own "resend signup confirmation" fails: coachauth
then issues its own token, mails a link through the secondary channel, and
consumes the token when the user follows the link.
"""

import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlencode

from ..errors import InvalidTokenError, TokenExpiredError, error_message, wrap_error
from .models import VerificationToken

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 20


class TokenManager:
    """
    Manages the verification_tokens table.

    The token flow:
    1. ``issue`` deletes every prior token for the email and stores a new one
    2. ``build_url`` embeds token and email in a /verify-email link
    3. ``consume`` checks the (token, email) pair and marks it verified
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize TokenManager.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client
        self.table_name = coach.config.tokens_table

    def _table(self):
        return self.client.table(self.table_name)

    def generate(self) -> str:
        """Generate an opaque hex token."""
        return secrets.token_hex(TOKEN_LENGTH // 2)

    def build_url(self, token: str, email: str) -> str:
        """
        Build the link mailed to the user.

        Both token and email are embedded so the pair can be matched exactly.
        """
        query = urlencode({"token": token, "email": email})
        return f"{self.coach.config.site_url}/verify-email?{query}"

    async def issue(self, email: str) -> VerificationToken:
        """
        Create a new token for ``email``, invalidating previous ones.

        Returns:
            The stored VerificationToken

        Raises:
            CoachAuthError: If the token could not be stored
        """
        now = self.coach.clock.now()
        row = {
            "token": self.generate(),
            "user_email": email,
            "token_type": "email_verification",
            "expires_at": (now + timedelta(hours=self.coach.config.token_ttl_hours)).isoformat(),
            "created_at": now.isoformat(),
        }

        try:
            await self._table().delete().eq("user_email", email).execute()
            result = await self._table().insert(row).execute()
        except Exception as exc:
            logger.error("Error storing verification token for %s: %s", email, error_message(exc))
            raise wrap_error(exc) from exc

        logger.info("Issued verification token for %s", email)
        # Inserts under RLS may not return the row
        if result.data:
            return VerificationToken(**result.data[0])
        return VerificationToken(**row)

    async def get(self, token: str, email: str) -> Optional[VerificationToken]:
        """
        Look up a token by exact (token, email) match.

        Returns:
            VerificationToken or None if not found
        """
        try:
            result = await self._table().select("*").eq("token", token).eq(
                "user_email", email
            ).execute()
        except Exception as exc:
            raise wrap_error(exc) from exc

        if not result.data:
            return None
        return VerificationToken(**result.data[0])

    async def validate(self, token: str, email: str) -> VerificationToken:
        """
        Check that a token can be consumed, without consuming it.

        Raises:
            InvalidTokenError: If the pair does not exist or was already used
            TokenExpiredError: If the token is past its expiry
        """
        if not token or not email:
            raise InvalidTokenError("Missing verification parameters")

        record = await self.get(token, email)
        if record is None:
            raise InvalidTokenError("Invalid or expired verification token")
        if record.is_consumed:
            raise InvalidTokenError("Verification token has already been used")

        now = self.coach.clock.now()
        if record.is_expired(now):
            raise TokenExpiredError("Verification token has expired")

        return record

    async def mark_verified(self, record: VerificationToken) -> VerificationToken:
        """Stamp verified_at on a validated token."""
        now = self.coach.clock.now()
        try:
            await self._table().update({"verified_at": now.isoformat()}).eq(
                "token", record.token
            ).eq("user_email", record.user_email).execute()
        except Exception as exc:
            raise wrap_error(exc) from exc

        return record.model_copy(update={"verified_at": now})

    async def consume(self, token: str, email: str) -> VerificationToken:
        """
        Validate a token and mark it verified.

        Raises:
            InvalidTokenError: If the pair does not exist or was already used
            TokenExpiredError: If the token is past its expiry

        Example:
            ```python
            try:
                await coach.tokens.consume(token, email)
            except TokenExpiredError:
                ...
            ```
        """
        record = await self.validate(token, email)
        return await self.mark_verified(record)

    async def cleanup_expired(self) -> int:
        """
        Delete all expired unverified tokens.

        Returns:
            Number of tokens deleted
        """
        now = self.coach.clock.now().isoformat()

        count_result = await self._table().select(
            "id", count="exact"
        ).is_("verified_at", "null").lt("expires_at", now).execute()

        count = count_result.count or 0

        if count > 0:
            await self._table().delete().is_(
                "verified_at", "null"
            ).lt("expires_at", now).execute()

        return count
