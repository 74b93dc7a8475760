"""
Main coachauth client.

This is the primary interface the site's pages and hooks interact with.
"""

import logging
from typing import Callable, Optional

from .auth import (
    AccountManager,
    AuthResult,
    AuthState,
    Identity,
    Profile,
    ProfileManager,
    SessionManager,
    SessionStore,
    SignupResult,
    TokenBundle,
)
from .config import CoachAuthConfig, load_config
from .email import EmailChannel
from .health import SessionHealthMonitor
from .scheduling import Clock, SystemClock
from .utils.supabase import CoachAuthSupabaseClient
from .verification import TokenManager, VerificationFlow

logger = logging.getLogger(__name__)


class CoachAuth:
    """
    Auth and session layer for the coaching site.

    Built once at application start and passed to whatever needs it. Owns
    the session store, profile reconciliation, the verification flow and
    the session health monitor.

    Example:
        ```python
        from coachauth import CoachAuth

        coach = await CoachAuth.create()
        await coach.initialize()

        result = await coach.login("user@example.com", "secure123")
        if result.ok and not coach.profile.email_confirmed:
            await coach.resend_verification_email()

        await coach.close()
        ```
    """

    def __init__(
        self,
        config: CoachAuthConfig,
        client: CoachAuthSupabaseClient,
        clock: Optional[Clock] = None,
        is_foreground: Optional[Callable[[], bool]] = None,
    ) -> None:
        """
        Initialize coachauth client.

        Args:
            config: coachauth configuration
            client: Supabase client wrapper
            clock: Time source (ManualClock in tests)
            is_foreground: Predicate gating health checks

        Note:
            Use CoachAuth.create() instead of direct instantiation.
        """
        self.config = config
        self.client = client
        self.clock = clock or SystemClock()

        self.profiles = ProfileManager(self)
        self.sessions = SessionManager(self)
        self.tokens = TokenManager(self)
        self.email = EmailChannel(self)
        self.verification = VerificationFlow(self)
        self.accounts = AccountManager(self)
        self.store = SessionStore(self)
        self.health = SessionHealthMonitor(self, is_foreground=is_foreground)

    @classmethod
    async def create(
        cls,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        clock: Optional[Clock] = None,
        is_foreground: Optional[Callable[[], bool]] = None,
        **kwargs,
    ) -> "CoachAuth":
        """
        Create a coachauth client.

        Args:
            supabase_url: Supabase project URL (optional, loads from env)
            supabase_key: Supabase anon key (optional, loads from env)
            clock: Time source
            is_foreground: Predicate gating health checks
            **kwargs: Additional configuration options

        Returns:
            coachauth client, not yet initialized

        Raises:
            ValidationError: If required configuration is missing or invalid
        """
        config_kwargs = kwargs.copy()
        if supabase_url:
            config_kwargs["supabase_url"] = supabase_url
        if supabase_key:
            config_kwargs["supabase_key"] = supabase_key

        config = load_config(**config_kwargs)
        client = await CoachAuthSupabaseClient.create(config)

        return cls(config=config, client=client, clock=clock, is_foreground=is_foreground)

    async def initialize(self, monitor: bool = True) -> None:
        """
        Load the current session and start listening for changes.

        Args:
            monitor: Also start the session health monitor
        """
        await self.store.initialize()
        if monitor:
            self.health.start()

    async def close(self) -> None:
        """
        Stop background work and cleanup resources.

        Example:
            ```python
            coach = await CoachAuth.create()
            try:
                await coach.initialize()
                # ... use coach
            finally:
                await coach.close()
            ```
        """
        await self.health.stop()
        await self.store.teardown()
        await self.email.close()
        await self.client.close()

    async def __aenter__(self) -> "CoachAuth":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()

    # Read side

    @property
    def identity(self) -> Optional[Identity]:
        return self.store.identity

    @property
    def profile(self) -> Optional[Profile]:
        return self.store.profile

    @property
    def session(self) -> Optional[TokenBundle]:
        return self.store.session

    @property
    def is_authenticated(self) -> bool:
        return self.store.is_authenticated

    @property
    def is_admin(self) -> bool:
        return self.store.is_admin

    @property
    def is_loading(self) -> bool:
        return self.store.is_loading

    @property
    def state(self) -> AuthState:
        return self.store.state

    # Actions

    async def login(self, email: str, password: str) -> AuthResult:
        """Sign in and wait for the store to settle on the new identity."""
        result = await self.sessions.sign_in_with_password(email, password)
        if not result.ok:
            return result

        await self.store.wait_until_settled()
        await self.profiles.record_login(result.data.user.id)
        return result

    async def signup(self, email: str, password: str, full_name: str) -> SignupResult:
        return await self.accounts.signup(email, password, full_name)

    async def logout(self) -> AuthResult:
        """Sign out everywhere and clear the store."""
        result = await self.sessions.sign_out()
        if result.ok:
            self.store.handle_auth_event("SIGNED_OUT", None)
            await self.store.wait_until_settled()
            logger.info("Logout successful")
        return result

    async def reset_password(self, email: str) -> AuthResult:
        return await self.sessions.reset_password(email)

    async def update_password(self, new_password: str) -> AuthResult:
        return await self.sessions.update_password(new_password)

    async def refresh_profile(self) -> Optional[Profile]:
        return await self.store.refresh_profile()

    async def resend_verification_email(self, email: Optional[str] = None) -> bool:
        """
        Resend the verification email.

        Args:
            email: Defaults to the signed-in user's email

        Returns:
            True if the request was accepted (not throttled)
        """
        if email is None:
            if self.identity is not None and self.identity.email:
                email = self.identity.email
            elif self.profile is not None and self.profile.email:
                email = self.profile.email
        outcome = await self.verification.resend(email or "")
        return outcome.accepted

    async def verify_email(self, token: str, email: str) -> bool:
        """Consume a fallback verification link."""
        return await self.verification.verify_token(token, email)
