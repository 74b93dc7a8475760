"""
coachauth verification module.

Resend-with-cooldown and fallback token verification.
"""

from .flow import VerificationFlow
from .models import ResendChannel, ResendOutcome, ResendState, VerificationToken
from .tokens import TokenManager

__all__ = [
    "VerificationFlow",
    "TokenManager",
    "VerificationToken",
    "ResendState",
    "ResendChannel",
    "ResendOutcome",
]
