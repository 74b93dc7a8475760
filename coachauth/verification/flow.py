"""
Email verification flow.

Tracks resend requests per email address and drives delivery: Supabase's
native "resend signup confirmation" first, then a coachauth-issued token
mailed through the secondary channel when the native call fails.

Per email: IDLE -> SENDING -> COOLDOWN_ACTIVE -> IDLE.
"""

import logging
from typing import TYPE_CHECKING, Dict, Optional, Set, Tuple

from ..email import EmailMessage
from ..errors import VerificationError, error_message
from ..scheduling import Cooldown
from .models import ResendChannel, ResendOutcome, ResendState
from .templates import resend_reminder_email, verification_email

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)


class VerificationFlow:
    """
    Resend-with-cooldown and fallback token verification.

    Delivery failures never surface as errors: every accepted resend
    reports success and starts a cooldown, the normal one after a
    completed attempt and a shorter one after an unexpected exception.

    Example:
        ```python
        outcome = await coach.verification.resend("user@example.com")
        print(outcome.accepted, coach.verification.cooldown_remaining("user@example.com"))

        # User followed the fallback link
        await coach.verification.verify_token(token, "user@example.com")
        ```
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize VerificationFlow.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client
        self.config = coach.config
        self._cooldowns: Dict[str, Cooldown] = {}
        self._sending: Set[str] = set()

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _cooldown(self, email: str) -> Cooldown:
        key = self._key(email)
        if key not in self._cooldowns:
            self._cooldowns[key] = Cooldown(self.coach.clock)
        return self._cooldowns[key]

    def cooldown_remaining(self, email: str) -> int:
        """Seconds until ``resend`` is accepted again for ``email``."""
        if not email:
            return 0
        return self._cooldown(email).remaining

    def state(self, email: str) -> ResendState:
        if email and self._key(email) in self._sending:
            return ResendState.SENDING
        if self.cooldown_remaining(email) > 0:
            return ResendState.COOLDOWN_ACTIVE
        return ResendState.IDLE

    async def resend(self, email: str) -> ResendOutcome:
        """
        Resend the signup verification email.

        A no-op (``accepted=False``) when ``email`` is empty, a send is in
        progress, or the cooldown is active.

        Returns:
            ResendOutcome with the channel used and the cooldown started
        """
        if not email:
            logger.info("Resend blocked: missing email")
            return ResendOutcome(accepted=False, reason="missing email")

        state = self.state(email)
        if state is not ResendState.IDLE:
            remaining = self.cooldown_remaining(email)
            logger.info("Resend blocked for %s: %s (%ss left)", email, state.value, remaining)
            return ResendOutcome(accepted=False, cooldown=remaining, reason=state.value)

        key = self._key(email)
        channel: Optional[ResendChannel] = None
        self._sending.add(key)
        try:
            try:
                await self.client.auth.resend({"type": "signup", "email": email})
                channel = ResendChannel.NATIVE
                logger.info("Native verification email resent to %s", email)
            except Exception as exc:
                logger.warning(
                    "Native resend failed for %s, using fallback channel: %s",
                    email,
                    error_message(exc),
                )
                await self._send_fallback(email)
                channel = ResendChannel.FALLBACK
            seconds = self.config.resend_cooldown_seconds
        except Exception as exc:
            logger.error("Error resending verification email to %s: %s", email, error_message(exc))
            seconds = self.config.error_cooldown_seconds
        finally:
            self._sending.discard(key)

        cooldown = self._cooldown(email)
        cooldown.start(seconds)
        return ResendOutcome(
            accepted=True,
            channel=channel,
            cooldown=cooldown.remaining,
        )

    async def _send_fallback(self, email: str) -> None:
        record = await self.coach.tokens.issue(email)
        url = self.coach.tokens.build_url(record.token, email)
        subject, html = resend_reminder_email(
            url, self.config.brand_name, self.config.token_ttl_hours
        )
        result = await self.coach.email.send(EmailMessage(to=email, subject=subject, html=html))
        if not result.success or result.simulated:
            logger.warning("Fallback verification email to %s not confirmed: %s", email, result.error)

    async def send_signup_verification(
        self, email: str, full_name: Optional[str] = None
    ) -> Tuple[bool, bool]:
        """
        Issue a token and send the welcome verification email.

        Returns:
            (token_stored, email_sent); the link only ever goes to the mailbox
        """
        try:
            record = await self.coach.tokens.issue(email)
        except Exception as exc:
            logger.error("Failed to create verification token for %s: %s", email, error_message(exc))
            return False, False

        url = self.coach.tokens.build_url(record.token, email)
        subject, html = verification_email(
            full_name, url, self.config.brand_name, self.config.token_ttl_hours
        )
        result = await self.coach.email.send(EmailMessage(to=email, subject=subject, html=html))
        logger.info("Verification email processed for %s", email)
        return True, result.success

    async def verify_token(self, token: str, email: str) -> bool:
        """
        Consume a fallback token and mark the profile's email as confirmed.

        Raises:
            InvalidTokenError: Unknown pair, or token already used
            TokenExpiredError: Token past its expiry; the profile is untouched
            VerificationError: No profile row could be updated

        Returns:
            True once the profile is confirmed
        """
        record = await self.coach.tokens.validate(token, email)

        user_id = None
        identity = self.coach.store.identity
        if identity is not None and identity.email and self._key(identity.email) == self._key(email):
            user_id = identity.id

        if not await self.coach.profiles.mark_confirmed(email, user_id=user_id):
            raise VerificationError("Failed to verify email. Please try again.")

        await self.coach.tokens.mark_verified(record)
        logger.info("Email verified for %s", email)

        if self.coach.store.is_authenticated:
            await self.coach.store.refresh_profile()
        return True
