"""
Session management for coachauth.

Handles signing in, signing out, password flows and token refresh.
Backend failures come back as ``AuthResult`` with the backend message
verbatim so forms can show it as-is.

Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient
Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
"""

import logging
from typing import TYPE_CHECKING, Optional

from supabase_auth.types import SignInWithPasswordCredentials

from ..errors import classify_error, error_message, wrap_error
from .models import AuthResult, TokenBundle

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)


def _failure(exc: BaseException) -> AuthResult:
    return AuthResult(error=error_message(exc), error_kind=classify_error(exc))


class SessionManager:
    """
    Manages authentication sessions.

    Provides methods for signing in, signing out, and refreshing sessions.
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize SessionManager.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client

    async def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        """
        Sign in a user with email and password.

        Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.sign_in_with_password
        Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py

        Args:
            email: User email address
            password: User password

        Returns:
            AuthResult whose data is a TokenBundle on success

        Example:
            ```python
            result = await coach.sessions.sign_in_with_password(
                email="user@example.com",
                password="secure123"
            )
            if not result.ok:
                print(result.error)  # e.g. "Invalid login credentials"
            ```
        """
        credentials: SignInWithPasswordCredentials = {
            "email": email,
            "password": password,
        }

        try:
            auth_response = await self.client.auth.sign_in_with_password(credentials)
        except Exception as exc:
            logger.info("Sign in failed for %s: %s", email, error_message(exc))
            return _failure(exc)

        if auth_response.session is None:
            return AuthResult(error="No session returned")

        return AuthResult(data=TokenBundle.from_session(auth_response.session))

    async def get_session(self) -> Optional[TokenBundle]:
        """
        Get the current session if one exists.

        Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.get_session
        Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py

        Returns:
            TokenBundle if a session exists, None otherwise

        Raises:
            CoachAuthError: If the session could not be retrieved
        """
        try:
            auth_session = await self.client.auth.get_session()
        except Exception as exc:
            raise wrap_error(exc) from exc

        if not auth_session:
            return None
        return TokenBundle.from_session(auth_session)

    async def refresh_session(self) -> TokenBundle:
        """
        Exchange the stored refresh token for a new session.

        Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.refresh_session
        Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py

        Returns:
            New TokenBundle with fresh tokens

        Raises:
            CoachAuthError: If the refresh is rejected or the backend is unreachable
        """
        try:
            auth_response = await self.client.auth.refresh_session()
        except Exception as exc:
            raise wrap_error(exc) from exc

        if auth_response.session is None:
            raise wrap_error(RuntimeError("Refresh returned no session"))
        return TokenBundle.from_session(auth_response.session)

    async def sign_out(self) -> AuthResult:
        """
        Sign out everywhere.

        Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.sign_out
        Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
        """
        try:
            await self.client.auth.sign_out({"scope": "global"})
        except Exception as exc:
            logger.error("Error signing out user: %s", error_message(exc))
            return _failure(exc)
        return AuthResult()

    async def reset_password(self, email: str) -> AuthResult:
        """
        Send a password reset email.

        The reset link sends the user back to ``{site_url}/auth?reset=true``.
        """
        redirect_to = f"{self.coach.config.site_url}/auth?reset=true"
        try:
            await self.client.auth.reset_password_for_email(email, {"redirect_to": redirect_to})
        except Exception as exc:
            logger.error("Reset password error: %s", error_message(exc))
            return _failure(exc)
        return AuthResult()

    async def update_password(self, new_password: str) -> AuthResult:
        """Set a new password for the signed-in user."""
        try:
            await self.client.auth.update_user({"password": new_password})
        except Exception as exc:
            logger.error("Update password error: %s", error_message(exc))
            return _failure(exc)
        return AuthResult()
