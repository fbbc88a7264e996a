"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import the domain,
repositories, services and api packages, and provides in-memory doubles for the
signup store and the email channel.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.signup import SignupRecord  # noqa: E402
from services.config import OutreachSettings  # noqa: E402
from services.dispatch_service import OutreachDispatcher  # noqa: E402
from services.email_channel import OutgoingEmail, SendResult  # noqa: E402

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class InMemorySignupStore:
    """Dict-backed SignupStore with switches for failure injection."""

    def __init__(self, signups=()):
        self.signups = {s.id: s for s in signups}
        self.failing_fetch_ids = set()
        self.failing_update_ids = set()
        self.blocked_update_ids = set()
        self.fetch_calls = []
        self.update_calls = []

    def add(self, signup):
        self.signups[signup.id] = signup
        return signup

    def get_by_id(self, signup_id):
        self.fetch_calls.append(signup_id)
        if signup_id in self.failing_fetch_ids:
            raise RuntimeError("Failed to fetch signup: connection reset")
        return self.signups.get(signup_id)

    def get_by_email(self, email):
        wanted = email.strip().lower()
        return next((s for s in self.signups.values() if s.email == wanted), None)

    def count_referrals(self, referral_code):
        return sum(1 for s in self.signups.values() if s.referred_by == referral_code)

    def list_created_at(self):
        return sorted(s.created_at for s in self.signups.values())

    def list_utm_parameters(self):
        ordered = sorted(self.signups.values(), key=lambda s: s.created_at)
        return [s.utm_parameters for s in ordered]

    def mark_stage_sent(self, signup_id, stage, sent_at):
        self.update_calls.append((signup_id, stage, sent_at))
        if signup_id in self.failing_update_ids:
            raise RuntimeError(f"Failed to update {stage.marker_field}: permission denied")
        if signup_id in self.blocked_update_ids:
            return 0
        signup = self.signups.get(signup_id)
        if signup is None or signup.is_stage_sent(stage):
            return 0
        self.signups[signup_id] = signup.with_stage_sent(stage, sent_at)
        return 1


class RecordingEmailChannel:
    """EmailChannel that records every email and confirms with sequential ids."""

    def __init__(self):
        self.sent = []
        self.responses = {}

    def send(self, email: OutgoingEmail) -> SendResult:
        self.sent.append(email)
        response = self.responses.get(email.to)
        if isinstance(response, Exception):
            raise response
        if response is not None:
            return response
        return SendResult(message_id=f"msg-{len(self.sent)}")


@pytest.fixture
def make_signup():
    """Factory for SignupRecord with sensible defaults."""

    def _make(signup_id, **overrides):
        values = {
            "id": signup_id,
            "email": f"user{signup_id}@example.com",
            "created_at": datetime(2025, 6, 1, 9, 0, 0, tzinfo=timezone.utc),
            "referral_code": f"REF{signup_id}",
            "first_name": None,
        }
        values.update(overrides)
        return SignupRecord(**values)

    return _make


@pytest.fixture
def store():
    return InMemorySignupStore()


@pytest.fixture
def channel():
    return RecordingEmailChannel()


@pytest.fixture
def settings():
    return OutreachSettings(
        resend_api_key="re_test",
        invite_delay_ms=0,
        follow_up_delay_ms=600,
        new_signup_notify_to="ops@example.com",
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def dispatcher(store, channel, settings, sleeps):
    return OutreachDispatcher(
        store,
        channel,
        settings,
        sleep=sleeps.append,
        clock=lambda: FIXED_NOW,
    )
