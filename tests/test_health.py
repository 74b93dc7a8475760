"""
Tests for coachauth.health module.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from coachauth.client import CoachAuth
from coachauth.health import HealthCheckResult


class TestTick:
    """Tests for SessionHealthMonitor.tick."""

    @pytest.mark.asyncio
    async def test_healthy(self, coach, auth, make_session):
        """Test a session far from expiry needs nothing."""
        auth.get_session.return_value = make_session(expires_in=3600)

        assert await coach.health.tick() is HealthCheckResult.HEALTHY
        auth.refresh_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_without_expiry(self, coach, auth, make_session):
        """Test a session that carries no expiry is left alone."""
        session = make_session()
        session.expires_at = None
        auth.get_session.return_value = session

        assert await coach.health.tick() is HealthCheckResult.HEALTHY
        auth.refresh_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_near_expiry(self, coach, auth, make_session):
        """Test a session inside the refresh horizon is refreshed."""
        auth.get_session.return_value = make_session(expires_in=120)

        assert await coach.health.tick() is HealthCheckResult.REFRESHED
        auth.refresh_session.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_session(self, coach, auth):
        """Test nothing happens without a session."""
        assert await coach.health.tick() is HealthCheckResult.NO_SESSION
        auth.refresh_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_error_triggers_refresh(self, coach, auth):
        """Test a failing session fetch is answered with a refresh."""
        auth.get_session.side_effect = RuntimeError("storage corrupted")

        assert await coach.health.tick() is HealthCheckResult.REFRESHED
        auth.refresh_session.assert_called_once()

    @pytest.mark.asyncio
    async def test_refresh_failure(self, coach, auth, make_session):
        """Test a rejected refresh is reported, not raised."""
        auth.get_session.return_value = make_session(expires_in=10)
        auth.refresh_session.side_effect = RuntimeError("refresh token revoked")

        assert await coach.health.tick() is HealthCheckResult.REFRESH_FAILED
        assert coach.health.refreshing is False

    @pytest.mark.asyncio
    async def test_background_skips(self, mock_coach_supabase_client, coach_config, clock, make_session):
        """Test ticks are skipped while the app is backgrounded."""
        coach = CoachAuth(
            config=coach_config,
            client=mock_coach_supabase_client,
            clock=clock,
            is_foreground=lambda: False,
        )

        assert await coach.health.tick() is HealthCheckResult.SKIPPED
        coach.client._client.auth.get_session.assert_not_called()


class TestSingleFlightRefresh:
    """Tests for refresh coordination."""

    @pytest.mark.asyncio
    async def test_tick_skipped_during_refresh(self, coach, auth, make_session):
        """Test a tick while a refresh is in flight does not start another."""
        release = asyncio.Event()

        async def slow_refresh():
            await release.wait()

        auth.refresh_session.side_effect = slow_refresh
        auth.get_session.return_value = make_session(expires_in=10)

        recovering = asyncio.create_task(coach.health.handle_auth_error())
        await asyncio.sleep(0)
        assert coach.health.refreshing is True

        assert await coach.health.tick() is HealthCheckResult.SKIPPED

        release.set()
        assert await recovering is True
        assert auth.refresh_session.call_count == 1
        assert coach.health.refreshing is False

    @pytest.mark.asyncio
    async def test_concurrent_auth_errors_share_refresh(self, coach, auth):
        """Test concurrent recoveries join the refresh in flight."""
        release = asyncio.Event()

        async def slow_refresh():
            await release.wait()

        auth.refresh_session.side_effect = slow_refresh

        first = asyncio.create_task(coach.health.handle_auth_error())
        second = asyncio.create_task(coach.health.handle_auth_error())
        await asyncio.sleep(0)
        release.set()

        assert await first is True
        assert await second is True
        assert auth.refresh_session.call_count == 1

    @pytest.mark.asyncio
    async def test_handle_auth_error_failure(self, coach, auth):
        """Test a failed recovery tells the caller to re-login."""
        auth.refresh_session.side_effect = RuntimeError("refresh token revoked")

        assert await coach.health.handle_auth_error() is False


class TestMonitorLifecycle:
    """Tests for start, stop and reconnection."""

    @pytest.mark.asyncio
    async def test_periodic_checks(self, coach, auth, make_session):
        """Test the monitor checks once per interval."""
        auth.get_session.return_value = make_session(expires_in=3600)
        coach.health.start()
        await asyncio.sleep(0)
        assert coach.health.running

        await coach.clock.advance(30)
        await coach.clock.advance(30)

        assert auth.get_session.await_count == 2
        await coach.health.stop()
        assert not coach.health.running

    @pytest.mark.asyncio
    async def test_initialize_starts_monitor(self, coach, profiles_table):
        """Test initialize starts the monitor unless asked not to."""
        await coach.initialize()
        assert coach.health.running
        await coach.close()
        assert not coach.health.running

    @pytest.mark.asyncio
    async def test_verify_current_session(self, coach, auth, make_session):
        """Test session presence check."""
        assert await coach.health.verify_current_session() is False

        auth.get_session.return_value = make_session()
        assert await coach.health.verify_current_session() is True

        auth.get_session.side_effect = RuntimeError("boom")
        assert await coach.health.verify_current_session() is False

    @pytest.mark.asyncio
    async def test_check_connection(self, coach, table_mock):
        """Test the connectivity check."""
        assert await coach.health.check_connection() is True

        table_mock(coach, "profiles", RuntimeError("connection refused"))
        assert await coach.health.check_connection() is False

    @pytest.mark.asyncio
    async def test_reconnection_success(self, coach, auth):
        """Test reconnection stops at the first success."""
        assert await coach.health.attempt_reconnection() is True
        auth.refresh_session.assert_called_once()

    @pytest.mark.asyncio
    async def test_reconnection_backoff(self, coach, auth, monkeypatch):
        """Test exponential backoff between failed attempts."""
        auth.refresh_session.side_effect = RuntimeError("offline")
        sleep = AsyncMock()
        monkeypatch.setattr(coach.clock, "sleep", sleep)

        assert await coach.health.attempt_reconnection(max_retries=5) is False

        assert [c.args[0] for c in sleep.call_args_list] == [1, 2, 4, 8, 10]
        assert auth.refresh_session.call_count == 5

    @pytest.mark.asyncio
    async def test_zero_retries_makes_no_attempt(self, coach, auth):
        """Test an explicit zero is honoured rather than replaced by the default."""
        assert await coach.health.attempt_reconnection(max_retries=0) is False
        auth.refresh_session.assert_not_called()
