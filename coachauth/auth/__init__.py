"""
coachauth authentication module.

Handles sessions, profiles, account creation and the session store.
"""

from .accounts import AccountManager
from .models import AuthResult, AuthState, Identity, Profile, SignupResult, TokenBundle
from .profiles import ProfileManager
from .sessions import SessionManager
from .store import SessionStore

__all__ = [
    "AccountManager",
    "ProfileManager",
    "SessionManager",
    "SessionStore",
    "AuthResult",
    "AuthState",
    "Identity",
    "Profile",
    "SignupResult",
    "TokenBundle",
]
