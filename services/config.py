"""
Configuration for outreach, credits and forecasting.

Values come from environment variables (a .env file at the project root is
loaded first). Malformed numbers fall back to their defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from domain.forecast import DEFAULT_SIGNUP_TARGET
from domain.signup import OutreachStage

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _get_bool(key: str, default: bool = False) -> bool:
    """Get a boolean from environment."""
    val = os.getenv(key, str(default)).lower()
    return val in ("true", "1", "yes", "on")


def _get_int(key: str, default: int) -> int:
    """Get an integer from environment."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class OutreachSettings:
    """
    Outreach configuration.

    Delays are per stage: the follow-up sender sits behind a provider limit of
    2 requests/second, invites have historically gone out unthrottled.
    """

    resend_api_key: Optional[str] = None
    invite_from: str = "Pixel <notifications@getpixel.ai>"
    follow_up_from: str = "Pixel <notifications@notifications.getpixel.ai>"
    reply_to: Optional[str] = "support@getpixel.ai"
    invite_delay_ms: int = 0
    follow_up_delay_ms: int = 600
    require_invite_before_follow_up: bool = False
    signup_target: int = DEFAULT_SIGNUP_TARGET
    forecast_timezone: str = "UTC"
    new_signup_notify_to: Optional[str] = None
    notification_from: str = "Pixel <notifications@notifications.getpixel.ai>"

    def sender_for(self, stage: OutreachStage) -> str:
        if stage is OutreachStage.INVITE:
            return self.invite_from
        return self.follow_up_from

    def delay_seconds_for(self, stage: OutreachStage) -> float:
        """Minimum pause between successive items of a batch for this stage."""
        delay_ms = self.invite_delay_ms if stage is OutreachStage.INVITE else self.follow_up_delay_ms
        return max(0, delay_ms) / 1000


def load_outreach_settings() -> OutreachSettings:
    """Build OutreachSettings from the environment."""

    defaults = OutreachSettings()
    return OutreachSettings(
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        invite_from=os.getenv("OUTREACH_INVITE_FROM", defaults.invite_from),
        follow_up_from=os.getenv("OUTREACH_FOLLOW_UP_FROM", defaults.follow_up_from),
        reply_to=os.getenv("OUTREACH_REPLY_TO", defaults.reply_to or "") or None,
        invite_delay_ms=_get_int("OUTREACH_INVITE_DELAY_MS", defaults.invite_delay_ms),
        follow_up_delay_ms=_get_int("OUTREACH_FOLLOW_UP_DELAY_MS", defaults.follow_up_delay_ms),
        require_invite_before_follow_up=_get_bool(
            "OUTREACH_REQUIRE_INVITE_BEFORE_FOLLOW_UP", defaults.require_invite_before_follow_up
        ),
        signup_target=_get_int("SIGNUP_TARGET", defaults.signup_target),
        forecast_timezone=os.getenv("FORECAST_TIMEZONE", defaults.forecast_timezone),
        new_signup_notify_to=os.getenv("NEW_SIGNUP_NOTIFY_TO") or None,
        notification_from=os.getenv("NOTIFICATION_FROM", defaults.notification_from),
    )


__all__ = ["OutreachSettings", "load_outreach_settings"]
