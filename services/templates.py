"""
Email content for the outreach stages.

Templates use {{placeholder}} markers so operators can supply their own HTML for
follow-ups. Supported placeholders:
- invite: {{greeting}}, {{first_name}}, {{credits}}, {{referral_count}}, {{referral_thanks}}
- follow-up: {{greeting}}, {{first_name}}
"""

from __future__ import annotations

import html
import re
from typing import Mapping

from domain.credits import CreditBreakdown

FOLLOW_UP_SUBJECT = "Your Pixel invite expires soon"

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

_PARAGRAPH_STYLE = "font-size: 16px; line-height: 1.6; color: #333; margin-top: 16px;"

_BUTTON = """<a href="https://app.getpixel.ai/easignup"
     style="display: inline-block; margin: 24px 0; padding: 12px 28px;
            background-color: #16a34a; color: #fff; text-decoration: none;
            border-radius: 8px; font-weight: 600; font-size: 16px;">
    Run Your First Campaign
  </a>"""

_SIGNATURE = """<table style="margin-top: 32px;" cellpadding="0" cellspacing="0">
    <tr>
      <td style="vertical-align: middle;">
        <p style="margin: 0; font-size: 16px; font-weight: 600; color: #111;">Gil Allouche</p>
        <p style="margin: 2px 0 0; font-size: 14px; color: #666;">Founder, Pixel</p>
      </td>
    </tr>
  </table>"""

_SUPPORT_LINK = (
    '<a href="mailto:support@getpixel.ai" style="color: #16a34a; '
    'text-decoration: underline;">support@getpixel.ai</a>'
)

_WRAPPER_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "max-width: 560px; margin: 0 auto; padding: 40px 20px;"
)


def build_invite_template() -> str:
    return f"""<div style="{_WRAPPER_STYLE}">
  <h1 style="font-size: 24px; font-weight: 600; margin-bottom: 16px;">
    {{{{greeting}}}} to Pixel! 🎉
  </h1>
  <p style="{_PARAGRAPH_STYLE}">
    We're opening up Pixel in small batches, and you're in this one.
    As one of our founding users, you're starting with
    <strong>{{{{credits}}}} credits</strong> on us.
    Click below to dive in.
  </p>
  {{{{referral_thanks}}}}
  {_BUTTON}
  <p style="{_PARAGRAPH_STYLE}">
    If you run into any issues, reach out to us at {_SUPPORT_LINK}.
  </p>
  {_SIGNATURE}
</div>"""


def build_follow_up_template() -> str:
    return f"""<div style="{_WRAPPER_STYLE}">
  <p style="font-size: 16px; line-height: 1.6; color: #333;">
    {{{{greeting}}}}
  </p>
  <p style="{_PARAGRAPH_STYLE}">
    Just wanted to make sure this didn't get buried in your inbox. We sent you early
    access to Pixel with 1,750 free credits to play around with.
  </p>
  <p style="{_PARAGRAPH_STYLE}">
    Your invite expires in 3 days though, and we'd hate for you to lose those credits.
    After that, your spot opens up to the next person on the waitlist.
  </p>
  {_BUTTON}
  <p style="{_PARAGRAPH_STYLE}">
    Questions? Just reply here or reach out at {_SUPPORT_LINK}. Happy to help.
  </p>
  {_SIGNATURE}
</div>"""


def fill_placeholders(template: str, values: Mapping[str, str]) -> str:
    """Replace known {{name}} markers; unknown markers are left untouched."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


def invite_subject(credits: CreditBreakdown) -> str:
    return f"You're in — and you're starting with {credits.total:,} credits"


def render_invite(template: str, *, first_name: str, credits: CreditBreakdown) -> str:
    name = html.escape(first_name.strip())
    referral_thanks = ""
    if credits.referral_count > 0:
        referral_thanks = (
            f'<p style="{_PARAGRAPH_STYLE}">Thanks for referring others to Pixel. '
            "We really appreciate you spreading the word!</p>"
        )
    return fill_placeholders(
        template,
        {
            "greeting": f"Hey {name}, welcome" if name else "Welcome",
            "first_name": name,
            "credits": f"{credits.total:,}",
            "referral_count": str(credits.referral_count),
            "referral_thanks": referral_thanks,
        },
    )


def render_follow_up(template: str, *, first_name: str) -> str:
    name = html.escape(first_name.strip())
    return fill_placeholders(
        template,
        {
            "greeting": f"Hey {name}," if name else "Hey there,",
            "first_name": name,
        },
    )


__all__ = [
    "FOLLOW_UP_SUBJECT",
    "build_invite_template",
    "build_follow_up_template",
    "fill_placeholders",
    "invite_subject",
    "render_invite",
    "render_follow_up",
]
