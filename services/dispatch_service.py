"""
Outreach dispatch service.

Drives a batch of signup IDs through one outreach stage:
- Fresh fetch of each signup immediately before acting
- Idempotency guard (already-sent signups never trigger a send)
- Content rendering (invites include the current credit breakdown)
- External send, then a conditional store write of the stage marker
- Per-stage throttling between items

Every input ID yields exactly one DispatchResult, in input order. Per-item
failures are isolated and reported; only structurally invalid input raises.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from domain.eligibility import Eligibility, check_stage_eligibility
from domain.errors import InvalidRequestError, SignupNotFoundError
from domain.signup import OutreachStage, SignupRecord
from repositories.signup_repository import SignupStore
from services.config import OutreachSettings
from services.credit_service import credits_for_signup
from services.email_channel import EmailChannel, OutgoingEmail, SendResult
from services.templates import (
    FOLLOW_UP_SUBJECT,
    build_follow_up_template,
    build_invite_template,
    invite_subject,
    render_follow_up,
    render_invite,
)

logger = logging.getLogger(__name__)


class DispatchStatus(str, Enum):
    SENT = "sent"
    ALREADY_SENT = "already_sent"
    ERROR = "error"


class DispatchFailure(str, Enum):
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"
    INVITE_PENDING = "invite_pending"
    SEND_FAILED = "send_failed"
    NOT_RECORDED = "not_recorded"  # delivered, but the stage marker was not written


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """
    Outcome for one signup in a batch.

    id: signup ID as supplied by the caller
    status: sent, already_sent or error
    error: human-readable detail when status is error
    failure: machine-readable failure kind when status is error
    message_id: provider confirmation id when an email went out
    """
    id: int
    status: DispatchStatus
    error: Optional[str] = None
    failure: Optional[DispatchFailure] = None
    message_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RenderedEmail:
    subject: str
    html: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_batch_ids(ids: Any) -> List[int]:
    """
    Validate batch input before any item is processed.

    Raises:
        InvalidRequestError: if ids is missing, not a list, empty, or holds non-integers
    """

    if not isinstance(ids, (list, tuple)) or len(ids) == 0:
        raise InvalidRequestError("ids[] is required")
    for signup_id in ids:
        if isinstance(signup_id, bool) or not isinstance(signup_id, int):
            raise InvalidRequestError(f"ids[] must contain integers, got {signup_id!r}")
    return list(ids)


class OutreachDispatcher:
    """
    Batch orchestrator for the invite and follow-up stages.

    Collaborators are injected: `store` (SignupStore), `channel` (EmailChannel),
    `sleep` (throttle pause, seconds) and `clock` (UTC now).

    Example:
        dispatcher = OutreachDispatcher(SignupRepository(client), channel, settings)
        for result in dispatcher.send_invites([12, 13, 14]):
            print(result.id, result.status.value, result.error or "")
    """

    def __init__(
        self,
        store: SignupStore,
        channel: EmailChannel,
        settings: OutreachSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._channel = channel
        self._settings = settings
        self._sleep = sleep
        self._clock = clock

    def render(
        self,
        signup: SignupRecord,
        stage: OutreachStage,
        *,
        subject: Optional[str] = None,
        html_template: Optional[str] = None,
    ) -> RenderedEmail:
        """Render the email this signup would receive for `stage`."""

        first_name = signup.first_name or ""

        if stage is OutreachStage.INVITE:
            credits = credits_for_signup(self._store, signup)
            return RenderedEmail(
                subject=subject or invite_subject(credits),
                html=render_invite(
                    html_template or build_invite_template(),
                    first_name=first_name,
                    credits=credits,
                ),
            )

        return RenderedEmail(
            subject=subject or FOLLOW_UP_SUBJECT,
            html=render_follow_up(html_template or build_follow_up_template(), first_name=first_name),
        )

    def preview(
        self,
        signup_id: int,
        stage: OutreachStage,
        *,
        subject: Optional[str] = None,
        html_template: Optional[str] = None,
    ) -> RenderedEmail:
        """
        Render a stage's email for one signup without sending or recording anything.

        Raises:
            SignupNotFoundError: if the signup does not exist
        """

        signup = self._store.get_by_id(signup_id)
        if signup is None:
            raise SignupNotFoundError("Signup not found")
        return self.render(signup, stage, subject=subject, html_template=html_template)

    def dispatch(
        self,
        ids: Sequence[int],
        stage: OutreachStage,
        *,
        subject: Optional[str] = None,
        html_template: Optional[str] = None,
    ) -> List[DispatchResult]:
        """
        Process a batch sequentially and report one result per ID, in input order.

        Raises:
            InvalidRequestError: for structurally invalid ids (nothing is processed)
        """

        signup_ids = validate_batch_ids(ids)
        delay = self._settings.delay_seconds_for(stage)

        logger.info("Dispatching %s to %d signup(s)", stage.value, len(signup_ids))

        results: List[DispatchResult] = []
        for index, signup_id in enumerate(signup_ids):
            if index > 0 and delay > 0:
                self._sleep(delay)
            results.append(
                self._dispatch_one(signup_id, stage, subject=subject, html_template=html_template)
            )

        counts = Counter(result.status.value for result in results)
        logger.info(
            "Dispatch %s finished: %d sent, %d already sent, %d errors",
            stage.value,
            counts.get(DispatchStatus.SENT.value, 0),
            counts.get(DispatchStatus.ALREADY_SENT.value, 0),
            counts.get(DispatchStatus.ERROR.value, 0),
        )
        return results

    def send_invites(self, ids: Sequence[int]) -> List[DispatchResult]:
        return self.dispatch(ids, OutreachStage.INVITE)

    def send_follow_ups(
        self,
        ids: Sequence[int],
        *,
        subject: Optional[str] = None,
        html_template: Optional[str] = None,
    ) -> List[DispatchResult]:
        return self.dispatch(ids, OutreachStage.FOLLOW_UP, subject=subject, html_template=html_template)

    def _error(
        self,
        signup_id: int,
        stage: OutreachStage,
        failure: DispatchFailure,
        detail: str,
        message_id: Optional[str] = None,
    ) -> DispatchResult:
        if failure is DispatchFailure.NOT_RECORDED:
            logger.error(
                "Signup %s: %s email %s delivered but not recorded: %s",
                signup_id, stage.value, message_id, detail,
            )
        else:
            logger.warning("Signup %s: %s %s: %s", signup_id, stage.value, failure.value, detail)
        return DispatchResult(
            id=signup_id,
            status=DispatchStatus.ERROR,
            error=detail,
            failure=failure,
            message_id=message_id,
        )

    def _dispatch_one(
        self,
        signup_id: int,
        stage: OutreachStage,
        *,
        subject: Optional[str],
        html_template: Optional[str],
    ) -> DispatchResult:
        # 1. Fresh fetch
        try:
            signup = self._store.get_by_id(signup_id)
        except Exception as e:
            return self._error(signup_id, stage, DispatchFailure.STORE_ERROR, str(e))

        # 2. Idempotency guard
        decision = check_stage_eligibility(
            signup,
            stage,
            require_invite_first=self._settings.require_invite_before_follow_up,
        )
        if decision.outcome is Eligibility.NOT_FOUND:
            return self._error(signup_id, stage, DispatchFailure.NOT_FOUND, "Not found")
        if decision.outcome is Eligibility.ALREADY_SENT:
            return DispatchResult(id=signup_id, status=DispatchStatus.ALREADY_SENT)
        if decision.outcome is Eligibility.INVITE_PENDING:
            return self._error(
                signup_id, stage, DispatchFailure.INVITE_PENDING,
                "Invite has not been sent yet; follow-up skipped",
            )
        assert signup is not None

        # 3. Render
        try:
            content = self.render(signup, stage, subject=subject, html_template=html_template)
        except Exception as e:
            return self._error(signup_id, stage, DispatchFailure.STORE_ERROR, str(e))

        # 4. External send
        email = OutgoingEmail(
            sender=self._settings.sender_for(stage),
            to=signup.email,
            subject=content.subject,
            html=content.html,
            reply_to=self._settings.reply_to,
        )
        try:
            sent = self._channel.send(email)
        except Exception as e:
            sent = SendResult(error=str(e) or "Failed to send email")

        if not sent.confirmed:
            detail = sent.error or "Resend returned no email ID"
            return self._error(signup_id, stage, DispatchFailure.SEND_FAILED, detail)

        # 5. Conditional write of the stage marker
        field = stage.marker_field
        try:
            rows_affected = self._store.mark_stage_sent(signup_id, stage, self._clock())
        except Exception as e:
            return self._error(
                signup_id, stage, DispatchFailure.NOT_RECORDED,
                f"Email sent but failed to update record: {e}",
                message_id=sent.message_id,
            )

        if rows_affected == 0:
            return self._error(
                signup_id, stage, DispatchFailure.NOT_RECORDED,
                f"Email sent but {field} not updated "
                "(row-level security may be blocking updates, or it was recorded concurrently)",
                message_id=sent.message_id,
            )

        # 6. Done
        return DispatchResult(id=signup_id, status=DispatchStatus.SENT, message_id=sent.message_id)


__all__ = [
    "DispatchStatus",
    "DispatchFailure",
    "DispatchResult",
    "RenderedEmail",
    "validate_batch_ids",
    "OutreachDispatcher",
]
