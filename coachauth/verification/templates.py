"""
HTML bodies for fallback verification emails.
"""

from html import escape
from typing import Optional, Tuple

_LAYOUT = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">
  <h1 style="color: #333; border-bottom: 2px solid #e0e0e0; padding-bottom: 10px;">{heading}</h1>
  <p>Hi {name},</p>
  <p>{intro}</p>
  <p style="text-align: center;">
    <a href="{url}" style="background-color: #e32400; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; display: inline-block; font-weight: bold;">{button}</a>
  </p>
  <p>If the button above doesn't work, copy and paste this URL into your browser:</p>
  <p style="word-break: break-all; background-color: #f5f5f5; padding: 10px; border-radius: 4px;">{url}</p>
  <p>This link will expire in {ttl_hours} hours.</p>
  <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e0e0e0; font-size: 12px; color: #777;">
    <p>{brand}</p>
  </div>
</div>
"""


def verification_email(
    full_name: Optional[str], url: str, brand: str, ttl_hours: int = 24
) -> Tuple[str, str]:
    """Welcome mail sent right after signup. Returns (subject, html)."""
    html = _LAYOUT.format(
        heading="Verify Your Email",
        name=escape(full_name or "there"),
        intro="Thank you for signing up! To get started, please verify your email address.",
        url=escape(url, quote=True),
        button="Verify Email Address",
        ttl_hours=ttl_hours,
        brand=escape(brand),
    )
    return f"Welcome to {brand} - Verify Your Email", html


def resend_reminder_email(url: str, brand: str, ttl_hours: int = 24) -> Tuple[str, str]:
    """Mail sent when the user asks for a new link. Returns (subject, html)."""
    html = _LAYOUT.format(
        heading="Verify Your Email",
        name="there",
        intro=f"You requested a new verification link for your {escape(brand)} account.",
        url=escape(url, quote=True),
        button="Verify My Email",
        ttl_hours=ttl_hours,
        brand=escape(brand),
    )
    return f"{brand} - Email Verification Reminder", html
