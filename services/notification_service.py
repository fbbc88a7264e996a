"""
Operator notification for new app signups.

The intake database fires a webhook per inserted row; this formats the row into a
short alert and sends it through the email channel.
"""

from __future__ import annotations

import html
import logging
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from domain.errors import InvalidRequestError
from domain.time import parse_utc_datetime
from services.config import OutreachSettings
from services.email_channel import EmailChannel, OutgoingEmail, SendResult

logger = logging.getLogger(__name__)

_DISPLAY_TIMEZONE = ZoneInfo("America/New_York")


def _format_signed_up(value: Any) -> str:
    if not value:
        return "Unknown"
    try:
        created = parse_utc_datetime(value).astimezone(_DISPLAY_TIMEZONE)
    except (TypeError, ValueError):
        return "Unknown"
    return created.strftime("%m/%d/%Y, %I:%M:%S %p")


def build_new_signup_alert(record: Mapping[str, Any]) -> tuple[str, str]:
    """Return (subject, html) for a new-signup webhook record."""

    payload = record.get("json_payload") or {}
    email = payload.get("email") or "Unknown"
    rows = [
        ("Email", email, "font-weight: 600;"),
        ("Referred By", payload.get("referredBy") or "None", ""),
        ("Early Access", "Yes" if payload.get("earlyAccess") else "No", ""),
        ("Referral Code", payload.get("referralCode") or "None", "font-family: monospace;"),
        ("Signed Up", _format_signed_up(record.get("created_at")), ""),
    ]
    table_rows = "\n".join(
        f'    <tr><td style="padding: 8px 0; color: #666; width: 120px;">{label}</td>'
        f'<td style="padding: 8px 0; {style}">{html.escape(str(value))}</td></tr>'
        for label, value, style in rows
    )
    body = (
        '<div style="font-family: -apple-system, BlinkMacSystemFont, \'Segoe UI\', Roboto, '
        'sans-serif; max-width: 500px; padding: 20px;">\n'
        '  <h2 style="font-size: 18px; margin-bottom: 16px;">New App Signup</h2>\n'
        '  <table style="width: 100%; border-collapse: collapse; font-size: 14px;">\n'
        f"{table_rows}\n"
        "  </table>\n"
        "</div>"
    )
    return f"New Pixel Signup: {email}", body


def notify_new_signup(
    channel: EmailChannel,
    settings: OutreachSettings,
    record: Optional[Mapping[str, Any]],
) -> SendResult:
    """
    Send the operator alert for a new signup.

    Raises:
        InvalidRequestError: if the webhook carried no record
        RuntimeError: if no recipient is configured or the channel rejects the send
    """

    if not record:
        raise InvalidRequestError("No record in payload")
    if not settings.new_signup_notify_to:
        raise RuntimeError("NEW_SIGNUP_NOTIFY_TO is not configured")

    subject, body = build_new_signup_alert(record)
    result = channel.send(
        OutgoingEmail(
            sender=settings.notification_from,
            to=settings.new_signup_notify_to,
            subject=subject,
            html=body,
        )
    )
    if not result.confirmed:
        raise RuntimeError(result.error or "Resend returned no email ID")

    logger.info("New signup alert sent (id=%s)", result.message_id)
    return result


__all__ = ["build_new_signup_alert", "notify_new_signup"]
