"""
Tests for coachauth.utils module.
"""

import pytest
from unittest.mock import AsyncMock, patch

from coachauth.utils.supabase import CoachAuthSupabaseClient


class TestCoachAuthSupabaseClient:
    """Tests for CoachAuthSupabaseClient class."""

    @pytest.mark.asyncio
    async def test_create_client(self, coach_config):
        """Test creating a CoachAuthSupabaseClient."""
        with patch("coachauth.utils.supabase.acreate_client") as mock_create:
            mock_client = AsyncMock()
            mock_create.return_value = mock_client

            client = await CoachAuthSupabaseClient.create(coach_config)

            assert client.config == coach_config
            assert client._client == mock_client
            args, kwargs = mock_create.call_args
            assert args == (coach_config.supabase_url, coach_config.supabase_key)
            assert kwargs["options"].auto_refresh_token is False
            assert kwargs["options"].schema == "public"

    def test_functions_url(self, mock_coach_supabase_client):
        """Test Edge Function URLs."""
        assert mock_coach_supabase_client.functions_url("send-email") == (
            "https://test.supabase.co/functions/v1/send-email"
        )

    def test_auth_headers(self, mock_coach_supabase_client, coach_config):
        """Test relay headers default to the anon key."""
        headers = mock_coach_supabase_client.auth_headers()
        assert headers["apikey"] == coach_config.supabase_key
        assert headers["Authorization"] == f"Bearer {coach_config.supabase_key}"

        headers = mock_coach_supabase_client.auth_headers("user-jwt")
        assert headers["Authorization"] == "Bearer user-jwt"

    def test_table_method(self, mock_coach_supabase_client):
        """Test table method."""
        query_builder = mock_coach_supabase_client.table("profiles")
        assert query_builder is not None

    def test_rpc_method(self, mock_coach_supabase_client, mock_supabase_client):
        """Test rpc passes through."""
        mock_coach_supabase_client.rpc("confirm_user_email", {"user_email": "a@x.com"})
        mock_supabase_client.rpc.assert_called_once_with(
            "confirm_user_email", {"user_email": "a@x.com"}
        )

    @pytest.mark.asyncio
    async def test_close_client(self, mock_coach_supabase_client):
        """Test closing client."""
        # Should not raise
        await mock_coach_supabase_client.close()
