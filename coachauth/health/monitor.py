"""
Session health monitoring.

Periodically checks that the session is still usable and refreshes it
before it expires, so long-lived pages do not lose their auth state.

Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.refresh_session
Source: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..auth.models import TokenBundle
from ..errors import error_message
from ..scheduling import PeriodicTask

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 10


class HealthCheckResult(str, Enum):
    HEALTHY = "healthy"
    NO_SESSION = "no_session"
    REFRESHED = "refreshed"
    REFRESH_FAILED = "refresh_failed"
    SKIPPED = "skipped"


class SessionHealthMonitor:
    """
    Background session checker with a single-flight refresh.

    Only one refresh runs at a time. A timer tick that finds a refresh in
    flight is skipped; ``handle_auth_error`` joins the refresh in flight
    instead of starting another.

    Example:
        ```python
        monitor = SessionHealthMonitor(coach, is_foreground=lambda: page.visible)
        monitor.start()
        ...
        if not await monitor.handle_auth_error():
            redirect_to_login()
        await monitor.stop()
        ```
    """

    def __init__(
        self,
        coach: "CoachAuth",
        is_foreground: Optional[Callable[[], bool]] = None,
    ) -> None:
        """
        Initialize SessionHealthMonitor.

        Args:
            coach: Main CoachAuth client instance
            is_foreground: Returns False while the app is backgrounded; ticks are skipped then
        """
        self.coach = coach
        self.client = coach.client
        self.config = coach.config
        self._is_foreground = is_foreground or (lambda: True)
        self._refreshing = False
        self._inflight: Optional[asyncio.Task] = None
        self._timer: Optional[PeriodicTask] = None

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.running

    def start(self) -> None:
        """Start the periodic check. No-op if already running."""
        if self.running:
            return
        self._timer = PeriodicTask(
            self.tick,
            self.config.health_check_interval_seconds,
            clock=self.coach.clock,
            name="coachauth-session-health",
        )
        self._timer.start()
        logger.info(
            "Starting session health monitoring every %ss",
            self.config.health_check_interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the periodic check."""
        if self._timer is None:
            return
        timer, self._timer = self._timer, None
        await timer.stop()
        logger.info("Session health monitoring stopped")

    async def tick(self) -> HealthCheckResult:
        """
        One health check.

        Skipped when backgrounded or while a refresh is in flight. A session
        retrieval error triggers one refresh; otherwise the expiry check runs.
        """
        if not self._is_foreground():
            return HealthCheckResult.SKIPPED
        if self._refreshing:
            logger.debug("Health check skipped: refresh in flight")
            return HealthCheckResult.SKIPPED

        try:
            session = await self.client.auth.get_session()
        except Exception as exc:
            logger.warning("Session retrieval failed, attempting refresh: %s", error_message(exc))
            return await self._refresh_result()

        if session is None:
            logger.info("No active session found during health check")
            return HealthCheckResult.NO_SESSION

        return await self.validate_session(session)

    async def validate_session(self, session: Any = None) -> HealthCheckResult:
        """
        Refresh proactively if the token expires within the refresh horizon.

        Args:
            session: Session to inspect; fetched when omitted
        """
        if session is None:
            try:
                session = await self.client.auth.get_session()
            except Exception as exc:
                logger.error("Error validating session: %s", error_message(exc))
                return HealthCheckResult.REFRESH_FAILED
            if session is None:
                return HealthCheckResult.NO_SESSION

        remaining = TokenBundle.from_session(session).seconds_until_expiry(self.coach.clock.now())
        if remaining is None:
            return HealthCheckResult.HEALTHY

        if remaining > self.config.refresh_horizon_seconds:
            return HealthCheckResult.HEALTHY

        logger.info("Session expires in %.0fs, refreshing", remaining)
        return await self._refresh_result()

    async def handle_auth_error(self) -> bool:
        """
        Recover from an authorization failure detected elsewhere.

        Returns:
            True if the session was refreshed; False means the caller
            should force a new login
        """
        logger.warning("Auth error reported, attempting session refresh")
        refreshed = await self._refresh()
        if not refreshed:
            logger.error("Session could not be refreshed; re-login required")
        return refreshed

    async def verify_current_session(self) -> bool:
        """True if a session exists and could be retrieved."""
        try:
            session = await self.client.auth.get_session()
        except Exception as exc:
            logger.error("Exception verifying session: %s", error_message(exc))
            return False
        return session is not None

    async def check_connection(self) -> bool:
        """Cheap profiles query to see if the backend answers."""
        try:
            await self.client.table(self.config.profiles_table).select("id").limit(1).execute()
        except Exception as exc:
            logger.error("Supabase connection error: %s", error_message(exc))
            return False
        return True

    async def attempt_reconnection(self, max_retries: Optional[int] = None) -> bool:
        """
        Refresh and re-check the connection with exponential backoff.

        Returns:
            True once a refresh and a connection check both succeed
        """
        retries = self.config.reconnect_max_retries if max_retries is None else max_retries
        for attempt in range(retries):
            logger.info("Attempting to reconnect (attempt %d/%d)", attempt + 1, retries)
            if await self._refresh() and await self.check_connection():
                logger.info("Reconnection successful")
                return True
            await self.coach.clock.sleep(min(2**attempt, MAX_BACKOFF_SECONDS))

        logger.error("All reconnection attempts failed")
        return False

    async def _refresh_result(self) -> HealthCheckResult:
        if await self._refresh():
            return HealthCheckResult.REFRESHED
        return HealthCheckResult.REFRESH_FAILED

    async def _refresh(self) -> bool:
        if self._inflight is None:
            self._refreshing = True
            self._inflight = asyncio.get_running_loop().create_task(self._do_refresh())
        # Cancelling a caller must not abort the shared refresh
        return await asyncio.shield(self._inflight)

    async def _do_refresh(self) -> bool:
        try:
            await self.client.auth.refresh_session()
            logger.debug("Session refreshed successfully")
            return True
        except Exception as exc:
            logger.error("Session refresh failed: %s", error_message(exc))
            return False
        finally:
            self._refreshing = False
            self._inflight = None
