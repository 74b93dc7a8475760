"""
coachauth email module.

Secondary delivery channel through the email relay function.
"""

from .channel import EmailChannel
from .models import EmailMessage, EmailResult

__all__ = [
    "EmailChannel",
    "EmailMessage",
    "EmailResult",
]
