"""
Account creation for coachauth.

Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.sign_up
Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
"""

import logging
from typing import TYPE_CHECKING

from supabase_auth.types import SignUpWithPasswordCredentials

from ..errors import ErrorKind, classify_error, error_message
from .models import Identity, SignupResult

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)

ACCOUNT_EXISTS = "Account already exists"
SIGNUPS_DISABLED = "Email signups are disabled"


class AccountManager:
    """
    Creates accounts.

    The signup flow:
    1. Reject emails that already have a profile
    2. Create the auth user with full_name metadata
    3. Create the profile row
    4. Issue a verification token and send the welcome email
    5. Sign out so the user must verify before logging in
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize AccountManager.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client

    async def signup(self, email: str, password: str, full_name: str) -> SignupResult:
        """
        Create an account and start email verification.

        Args:
            email: User email address
            password: Password
            full_name: Shown in the welcome email and stored on the profile

        Returns:
            SignupResult; ``error`` carries the backend message verbatim

        Example:
            ```python
            result = await coach.signup("user@example.com", "secure123", "Jane Doe")
            if result.ok and result.show_verification:
                print("Check your inbox")
            ```
        """
        logger.info("Attempting to create account for %s", email)

        if await self.coach.profiles.exists_by_email(email):
            logger.info("User already exists: %s", email)
            return SignupResult(error=ACCOUNT_EXISTS, error_kind=ErrorKind.VALIDATION)

        credentials: SignUpWithPasswordCredentials = {
            "email": email,
            "password": password,
            "options": {"data": {"full_name": full_name}},
        }
        try:
            response = await self.client.auth.sign_up(credentials)
        except Exception as exc:
            message = error_message(exc)
            if SIGNUPS_DISABLED.lower() in message.lower():
                logger.error("Signup rejected, email signups disabled")
            else:
                logger.error("Signup error for %s: %s", email, message)
            return SignupResult(error=message, error_kind=classify_error(exc))

        user = response.user
        identity = Identity.from_user(user) if user is not None else None
        if identity is not None:
            profile = await self.coach.profiles.create_for_signup(identity.id, email, full_name)
            if profile is None:
                logger.error("Profile creation failed for %s", email)

        token_stored, email_sent = await self.coach.verification.send_signup_verification(
            email, full_name
        )
        if not token_stored:
            # Keep the session so the user can ask for a new link
            return SignupResult(data=identity, email_sent=False, show_verification=True)

        signed_out = await self.coach.sessions.sign_out()
        if signed_out.ok:
            self.coach.store.handle_auth_event("SIGNED_OUT", None)

        if not email_sent:
            logger.warning("Account created but verification email could not be sent to %s", email)

        return SignupResult(data=identity, email_sent=email_sent, show_verification=True)
