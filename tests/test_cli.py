"""
Tests for the coachauth CLI.
"""

from unittest.mock import AsyncMock, Mock, patch

from typer.testing import CliRunner

from coachauth.cli.main import app
from coachauth.errors import TokenExpiredError
from coachauth.verification.models import ResendChannel, ResendOutcome

runner = CliRunner()


def mock_coach():
    coach = Mock()
    coach.close = AsyncMock()
    coach.initialize = AsyncMock()
    return coach


class TestVerifyCommands:
    """Tests for coachauth verify."""

    def test_cleanup(self):
        """Test cleanup reports the number of deleted tokens."""
        coach = mock_coach()
        coach.tokens.cleanup_expired = AsyncMock(return_value=3)

        with patch("coachauth.cli.commands.verify.CoachAuth.create", AsyncMock(return_value=coach)):
            result = runner.invoke(app, ["verify", "cleanup"])

        assert result.exit_code == 0
        assert "Cleaned up 3 expired tokens" in result.output
        coach.close.assert_awaited_once()

    def test_resend(self):
        """Test resend prints the channel used."""
        coach = mock_coach()
        coach.verification.resend = AsyncMock(
            return_value=ResendOutcome(accepted=True, channel=ResendChannel.NATIVE, cooldown=60)
        )

        with patch("coachauth.cli.commands.verify.CoachAuth.create", AsyncMock(return_value=coach)):
            result = runner.invoke(app, ["verify", "resend", "a@x.com"])

        assert result.exit_code == 0
        assert "native" in result.output

    def test_confirm_expired(self):
        """Test confirm exits non-zero on an expired token."""
        coach = mock_coach()
        coach.verify_email = AsyncMock(side_effect=TokenExpiredError("Verification token has expired"))

        with patch("coachauth.cli.commands.verify.CoachAuth.create", AsyncMock(return_value=coach)):
            result = runner.invoke(app, ["verify", "confirm", "abc", "a@x.com"])

        assert result.exit_code == 1
        assert "Verification token has expired" in result.output
        coach.close.assert_awaited_once()


class TestSessionCommands:
    """Tests for coachauth session."""

    def test_status_logged_out(self):
        """Test status without a session."""
        coach = mock_coach()
        coach.state = Mock(is_authenticated=False)

        with patch("coachauth.cli.commands.session.CoachAuth.create", AsyncMock(return_value=coach)):
            result = runner.invoke(app, ["session", "status"])

        assert result.exit_code == 0
        assert "Not logged in" in result.output
        coach.initialize.assert_awaited_once_with(monitor=False)
