"""
Domain: Outreach eligibility (idempotency guard).

Decides whether a freshly fetched signup may receive a stage's outreach action.
The decision has no side effects; callers must pass the record fetched
immediately before acting, never a cached copy.

Outcomes:
- ELIGIBLE: the stage marker is unset.
- ALREADY_SENT: the stage marker is set; the action must not fire again.
- NOT_FOUND: no record exists (distinct from an ineligible but present record).
- INVITE_PENDING: only when invite-before-follow-up ordering is enforced and the
  signup has no invite marker yet.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .signup import OutreachStage, SignupRecord


class Eligibility(str, Enum):
    ELIGIBLE = "eligible"
    ALREADY_SENT = "already_sent"
    NOT_FOUND = "not_found"
    INVITE_PENDING = "invite_pending"


@dataclass(frozen=True, slots=True)
class GuardDecision:
    outcome: Eligibility

    @property
    def eligible(self) -> bool:
        return self.outcome is Eligibility.ELIGIBLE

    @property
    def reason(self) -> Optional[str]:
        """Why the action may not fire, or None when eligible."""

        if self.eligible:
            return None
        return self.outcome.value


def check_stage_eligibility(
    signup: Optional[SignupRecord],
    stage: OutreachStage,
    *,
    require_invite_first: bool = False,
) -> GuardDecision:
    """
    Evaluate the guard for one signup and stage.

    Args:
        signup: The record as just fetched, or None if the fetch found nothing
        stage: Outreach stage about to be triggered
        require_invite_first: Refuse follow-ups for signups never invited
    """

    if signup is None:
        return GuardDecision(Eligibility.NOT_FOUND)

    if signup.is_stage_sent(stage):
        return GuardDecision(Eligibility.ALREADY_SENT)

    if (
        require_invite_first
        and stage is OutreachStage.FOLLOW_UP
        and not signup.is_stage_sent(OutreachStage.INVITE)
    ):
        return GuardDecision(Eligibility.INVITE_PENDING)

    return GuardDecision(Eligibility.ELIGIBLE)
