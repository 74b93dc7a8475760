"""
Secondary email channel.

Sends mail through the ``send-email`` Edge Function, which relays to a
custom SMTP provider. Used when Supabase's own verification mail fails.
Delivery is best-effort: relay or transport failures are reported as a
simulated success so the verification flow is never blocked by them.
"""

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from ..errors import error_message
from .models import EmailMessage, EmailResult

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)


class EmailChannel:
    """
    Posts ``{to, subject, text|html, from}`` to the email relay function.

    Example:
        ```python
        result = await coach.email.send(
            EmailMessage(to="user@example.com", subject="Hi", text="Hello")
        )
        ```
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize EmailChannel.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client for relay calls."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.coach.config.http_timeout_seconds
            )
        return self._http_client

    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send one message through the relay.

        Returns:
            EmailResult; ``success`` is False only when required fields are
            missing, relay failures give ``simulated=True``
        """
        if not message.to or not message.subject or not (message.text or message.html):
            logger.error("Missing required email fields for %r", message.to)
            return EmailResult(success=False, error="Missing required email fields")

        payload = message.to_payload(default_from=self.coach.config.from_email)
        payload["origin"] = self.coach.config.site_url
        url = self.client.functions_url(self.coach.config.email_function)

        logger.debug("Sending email to %s with subject %r", message.to, message.subject)
        try:
            http_client = await self._get_http_client()
            response = await http_client.post(
                url, json=payload, headers=self.client.auth_headers()
            )
            response.raise_for_status()
            body = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Email relay failed for %s, treating as delivered: %s",
                message.to,
                error_message(exc),
            )
            return EmailResult(success=True, simulated=True, error=error_message(exc))

        if isinstance(body, dict) and body.get("success") is False:
            logger.warning("Email relay reported failure for %s: %s", message.to, body.get("error"))
            return EmailResult(success=True, simulated=True, error=str(body.get("error")))

        return EmailResult(success=True, data=body)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
