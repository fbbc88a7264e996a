"""
Domain: Signup entity and outreach stages.

Rules implemented here:
- A SignupRecord represents one waitlist entrant, uniquely identified by id.
- email is unique and case-insensitive; it is stored lower-cased.
- Each outreach stage (Invite, FollowUp) is a two-state machine: NotSent -> Sent.
  A stage marker is set exactly once and never cleared.
- referred_by is a one-level attribution edge (the referral code of the referrer).

This module contains only pure domain entities: no I/O, no database, no frameworks.
All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from .time import require_utc_timestamp


class OutreachStage(str, Enum):
    INVITE = "invite"
    FOLLOW_UP = "follow_up"

    @property
    def marker_field(self) -> str:
        """Name of the store column recording completion of this stage."""

        if self is OutreachStage.INVITE:
            return "invite_sent_at"
        return "follow_up_sent_at"


@dataclass(frozen=True, slots=True)
class SignupRecord:
    """
    Immutable snapshot of a waitlist signup.

    Stage transitions return a new instance (see `with_stage_sent`); the record a
    caller fetched is never mutated.
    """

    id: int
    email: str
    created_at: datetime
    referral_code: Optional[str] = None
    first_name: Optional[str] = None
    referred_by: Optional[str] = None
    invite_sent_at: Optional[datetime] = None
    follow_up_sent_at: Optional[datetime] = None
    utm_parameters: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.invite_sent_at is not None:
            require_utc_timestamp("invite_sent_at", self.invite_sent_at)
        if self.follow_up_sent_at is not None:
            require_utc_timestamp("follow_up_sent_at", self.follow_up_sent_at)
        if not self.email or not self.email.strip():
            raise ValueError("email must be a non-empty string")
        # Frozen dataclass: normalise through object.__setattr__.
        object.__setattr__(self, "email", self.email.strip().lower())

    def marker_for(self, stage: OutreachStage) -> Optional[datetime]:
        if stage is OutreachStage.INVITE:
            return self.invite_sent_at
        return self.follow_up_sent_at

    def is_stage_sent(self, stage: OutreachStage) -> bool:
        """A stage is complete iff its marker is set."""

        return self.marker_for(stage) is not None

    def with_stage_sent(self, stage: OutreachStage, sent_at: datetime) -> "SignupRecord":
        """
        Return a new SignupRecord with the stage marker set.

        Raises if the stage was already recorded (no second Sent transition).
        """

        require_utc_timestamp("sent_at", sent_at)
        if self.is_stage_sent(stage):
            raise ValueError(f"{stage.marker_field} is already set for signup {self.id}")
        return replace(self, **{stage.marker_field: sent_at})
