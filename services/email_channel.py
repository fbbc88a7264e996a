"""
Outbound email channel (Resend HTTP API).

A send only counts as delivered when the provider returns a message id. Provider
rejections, transport failures and responses without an id all come back as a
failed SendResult; nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OutgoingEmail:
    sender: str
    to: str
    subject: str
    html: str
    reply_to: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SendResult:
    """
    Result of a send attempt.

    message_id: provider confirmation identifier (None if not confirmed)
    error: provider or transport error detail (None if none reported)
    """
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return bool(self.message_id) and self.error is None


class EmailChannel(Protocol):
    def send(self, email: OutgoingEmail) -> SendResult: ...


class ResendEmailChannel:
    """Email channel using the Resend API."""

    RESEND_API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.enabled = bool(api_key)

        if not self.enabled:
            logger.warning("Email channel disabled: RESEND_API_KEY not set")

    def send(self, email: OutgoingEmail) -> SendResult:
        """
        Send a single email.

        Returns:
            SendResult with the provider message id, or the error detail
        """
        if not self.enabled:
            return SendResult(error="Email channel not configured (RESEND_API_KEY missing)")

        payload = {
            "from": email.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        if email.reply_to:
            payload["reply_to"] = email.reply_to

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(self.RESEND_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Resend request failed for %s: %s", email.to, e)
            return SendResult(error=f"Failed to send email: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error:
            message = body.get("message") or response.text or f"HTTP {response.status_code}"
            logger.warning("Resend rejected email to %s (%s): %s", email.to, response.status_code, message)
            return SendResult(error=str(message))

        message_id = body.get("id")
        if not message_id:
            logger.warning("Resend returned no email ID for %s", email.to)
            return SendResult(error="Resend returned no email ID")

        logger.info("Email sent to %s (id=%s)", email.to, message_id)
        return SendResult(message_id=str(message_id))


__all__ = [
    "OutgoingEmail",
    "SendResult",
    "EmailChannel",
    "ResendEmailChannel",
]
