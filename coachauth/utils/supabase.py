"""
Supabase client wrapper for coachauth.

Provides a thin wrapper around the Supabase AsyncClient configured for
end-user sessions (anon key, row-level security applies).

Package versions this was built against:
- supabase: 2.27.1
- supabase-auth: 2.27.1
- postgrest: 2.27.1

Source references:
- supabase._async.client.AsyncClient: venv/lib/python3.14/site-packages/supabase/_async/client.py
- supabase_auth._async.gotrue_client: venv/lib/python3.14/site-packages/supabase_auth/_async/gotrue_client.py
"""

from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncMemoryStorage

from ..config import CoachAuthConfig


class CoachAuthSupabaseClient:
    """
    Wrapper around Supabase AsyncClient with coachauth-specific configuration.

    This class provides:
    1. Configured client with the anon key (sessions run under RLS)
    2. Access to the GoTrue auth client
    3. Access to the profiles and verification token tables
    4. The Edge Functions base URL for the email relay

    Example:
        ```python
        from coachauth.utils.supabase import CoachAuthSupabaseClient
        from coachauth.config import CoachAuthConfig

        config = CoachAuthConfig()
        client = await CoachAuthSupabaseClient.create(config)

        session = await client.auth.get_session()
        result = await client.table("profiles").select("*").execute()
        ```
    """

    def __init__(self, config: CoachAuthConfig, client: AsyncClient) -> None:
        """
        Initialize the coachauth Supabase client.

        Args:
            config: coachauth configuration
            client: Initialized Supabase AsyncClient

        Note:
            Use CoachAuthSupabaseClient.create() instead of direct instantiation.
        """
        self.config = config
        self._client = client

    @classmethod
    async def create(cls, config: CoachAuthConfig) -> "CoachAuthSupabaseClient":
        """
        Create and initialize a CoachAuthSupabaseClient.

        Wraps: supabase._async.client.AsyncClient.create
        Source: venv/lib/python3.14/site-packages/supabase/_async/client.py

        Args:
            config: coachauth configuration with Supabase credentials

        Returns:
            Initialized CoachAuthSupabaseClient
        """
        # Token refresh is driven by SessionHealthMonitor, not the SDK timer
        options = AsyncClientOptions(
            schema=config.db_schema,
            storage=AsyncMemoryStorage(),
            auto_refresh_token=False,
            persist_session=True,
        )

        client = await acreate_client(
            config.supabase_url,
            config.supabase_key,
            options=options,
        )

        return cls(config=config, client=client)

    @property
    def auth(self):
        """
        Access Supabase Auth client.

        Provides access to:
        - auth.sign_up, auth.sign_in_with_password, auth.sign_out
        - auth.get_session, auth.refresh_session, auth.on_auth_state_change
        - auth.resend, auth.reset_password_for_email, auth.update_user

        Returns:
            AsyncSupabaseAuthClient
        """
        return self._client.auth

    def table(self, table_name: str):
        """
        Create a query builder for a specific table.

        Wraps: supabase._async.client.AsyncClient.table
        Source: venv/lib/python3.14/site-packages/supabase/_async/client.py

        Args:
            table_name: Name of the table (e.g., "profiles")

        Returns:
            AsyncRequestBuilder for chaining queries

        Example:
            ```python
            result = await client.table("profiles").select("*").eq(
                "id", user_id
            ).execute()
            ```
        """
        return self._client.table(table_name)

    def rpc(self, fn: str, params: dict):
        """
        Call a Postgres function.

        Args:
            fn: Function name
            params: Named arguments

        Returns:
            AsyncRPCFilterRequestBuilder, call ``execute()`` on it
        """
        return self._client.rpc(fn, params)

    def functions_url(self, function_name: str) -> str:
        """URL of an Edge Function in this project."""
        return f"{self.config.supabase_url}/functions/v1/{function_name}"

    def auth_headers(self, access_token: str | None = None) -> dict:
        """Headers for calling an Edge Function directly."""
        return {
            "apikey": self.config.supabase_key,
            "Authorization": f"Bearer {access_token or self.config.supabase_key}",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """
        Close the client and cleanup resources.

        Should be called when done using the client.
        """
        # Supabase client doesn't have explicit close in 2.27.1
        # but we provide this for future-proofing
        pass
