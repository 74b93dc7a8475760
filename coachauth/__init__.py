"""
coachauth - Auth, profile and session layer for the coaching site, on Supabase.

Example:
    ```python
    from coachauth import CoachAuth

    coach = await CoachAuth.create()
    await coach.initialize()

    # Sign up; the user is signed out until they verify
    result = await coach.signup("new@example.com", "secure123", "New User")

    # Sign in; the store reconciles the profile row
    await coach.login("user@example.com", "secure123")
    print(coach.profile.email_confirmed, coach.is_admin)

    # Resend the verification email (throttled per address)
    await coach.resend_verification_email()

    # Consume a fallback verification link
    await coach.verify_email(token, "user@example.com")

    await coach.close()
    ```
"""

from .auth import AuthResult, AuthState, Identity, Profile, SignupResult, TokenBundle
from .client import CoachAuth
from .config import CoachAuthConfig, load_config
from .errors import (
    AuthError,
    CoachAuthError,
    ErrorKind,
    InvalidTokenError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
    ValidationError,
    VerificationError,
    classify_error,
)
from .health import HealthCheckResult
from .scheduling import Clock, ManualClock, SystemClock
from .verification import ResendChannel, ResendOutcome, ResendState, VerificationToken

__version__ = "0.1.0"

__all__ = [
    # Main client
    "CoachAuth",
    "CoachAuthConfig",
    "load_config",
    # Models
    "AuthResult",
    "AuthState",
    "Identity",
    "Profile",
    "SignupResult",
    "TokenBundle",
    "VerificationToken",
    "ResendChannel",
    "ResendOutcome",
    "ResendState",
    "HealthCheckResult",
    # Errors
    "CoachAuthError",
    "ErrorKind",
    "AuthError",
    "PermissionDeniedError",
    "NotFoundError",
    "NetworkError",
    "ValidationError",
    "VerificationError",
    "InvalidTokenError",
    "TokenExpiredError",
    "classify_error",
    # Time
    "Clock",
    "SystemClock",
    "ManualClock",
]
