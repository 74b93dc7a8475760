"""
coachauth configuration management.

Loads configuration from environment variables or .env file.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoachAuthConfig(BaseSettings):
    """
    coachauth configuration settings.

    Can be loaded from:
    1. Environment variables (COACHAUTH_SUPABASE_URL, COACHAUTH_SUPABASE_KEY, etc.)
    2. .env file in project root
    3. Direct instantiation with kwargs

    Example:
        ```python
        # From environment
        config = CoachAuthConfig()

        # Direct instantiation
        config = CoachAuthConfig(
            supabase_url="https://xxx.supabase.co",
            supabase_key="your-anon-key"
        )
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="COACHAUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase connection
    supabase_url: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)",
    )

    supabase_key: str = Field(
        ...,
        description="Supabase anon key (end-user sessions run under RLS)",
    )

    db_schema: str = Field(
        default="public",
        description="PostgreSQL schema holding the profiles and token tables",
        alias="schema",
    )

    # Links sent to users
    site_url: str = Field(
        default="http://localhost:8080",
        description="Public site origin used for verification and reset links",
    )

    # Tables and functions
    profiles_table: str = Field(default="profiles")
    tokens_table: str = Field(default="verification_tokens")
    email_function: str = Field(
        default="send-email",
        description="Edge Function relaying mail through the custom SMTP channel",
    )
    from_email: Optional[str] = Field(
        default=None,
        description="From address for fallback emails (relay default if not set)",
    )
    brand_name: str = Field(
        default="Surrendered Sinner",
        description="Name shown in the subject and footer of fallback emails",
    )

    # Verification
    resend_cooldown_seconds: int = Field(default=60, ge=1)
    error_cooldown_seconds: int = Field(default=30, ge=1)
    token_ttl_hours: int = Field(default=24, ge=1)

    # Session health
    health_check_interval_seconds: float = Field(default=30, gt=0)
    refresh_horizon_seconds: int = Field(
        default=300,
        ge=0,
        description="Refresh proactively when the token expires within this window",
    )
    reconnect_max_retries: int = Field(default=3, ge=1)

    http_timeout_seconds: float = Field(default=30, gt=0)

    # Debug
    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Ensure Supabase URL is valid."""
        if not v.startswith("https://"):
            raise ValueError("supabase_url must start with https://")
        return v.rstrip("/")

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Ensure Supabase key is not empty."""
        if not v or len(v) < 10:
            raise ValueError("supabase_key appears invalid (too short)")
        return v

    @field_validator("site_url")
    @classmethod
    def validate_site_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("site_url must be an http(s) origin")
        return v.rstrip("/")


def load_config(**kwargs) -> CoachAuthConfig:
    """
    Load coachauth configuration.

    Priority order:
    1. Keyword arguments
    2. Environment variables (COACHAUTH_*)
    3. .env file

    Args:
        **kwargs: Override configuration values

    Returns:
        CoachAuthConfig instance

    Raises:
        ValidationError: If required fields are missing or invalid
    """
    return CoachAuthConfig(**kwargs)
