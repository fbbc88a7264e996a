"""
Tests for `services/dispatch_service.py`.

Covers rules:
- One result per input ID, in input order; per-item failures never abort the batch.
- Already-sent signups are reported without a send; a second run is a no-op.
- A send is only Sent once the provider confirmed it and the marker write hit a row.
- Delivered-but-unrecorded sends are reported as errors with the message id kept.
- Follow-up batches pause between items; invite batches do not.
- Structurally invalid input raises before anything is processed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from domain.errors import InvalidRequestError, SignupNotFoundError
from domain.signup import OutreachStage
from services.dispatch_service import (
    DispatchFailure,
    DispatchStatus,
    OutreachDispatcher,
    validate_batch_ids,
)
from services.email_channel import SendResult

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
SENT_EARLIER = datetime(2025, 6, 10, 8, 0, 0, tzinfo=timezone.utc)


def test_batch_returns_one_result_per_id_in_input_order(store, dispatcher, make_signup) -> None:
    for signup_id in (3, 1, 2):
        store.add(make_signup(signup_id))

    results = dispatcher.send_invites([3, 1, 2])

    assert [r.id for r in results] == [3, 1, 2]
    assert all(r.status is DispatchStatus.SENT for r in results)


def test_successful_invite_records_marker(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))

    [result] = dispatcher.send_invites([1])

    assert result.status is DispatchStatus.SENT
    assert result.message_id == "msg-1"
    assert result.error is None
    assert store.signups[1].invite_sent_at == FIXED_NOW
    assert store.signups[1].follow_up_sent_at is None
    assert [email.to for email in channel.sent] == ["user1@example.com"]


def test_invite_uses_invite_sender_and_reply_to(store, channel, dispatcher, settings, make_signup) -> None:
    store.add(make_signup(1))

    dispatcher.send_invites([1])

    email = channel.sent[0]
    assert email.sender == settings.invite_from
    assert email.reply_to == settings.reply_to


def test_already_sent_signup_is_not_emailed(store, channel, dispatcher, make_signup) -> None:
    """Verify the guard short-circuits before any send."""

    store.add(make_signup(1, invite_sent_at=SENT_EARLIER))

    [result] = dispatcher.send_invites([1])

    assert result.status is DispatchStatus.ALREADY_SENT
    assert result.error is None
    assert channel.sent == []
    assert store.update_calls == []
    assert store.signups[1].invite_sent_at == SENT_EARLIER


def test_rerunning_a_batch_sends_nothing_new(store, channel, dispatcher, make_signup) -> None:
    for signup_id in (1, 2):
        store.add(make_signup(signup_id))

    first = dispatcher.send_invites([1, 2])
    second = dispatcher.send_invites([1, 2])

    assert [r.status for r in first] == [DispatchStatus.SENT, DispatchStatus.SENT]
    assert [r.status for r in second] == [DispatchStatus.ALREADY_SENT, DispatchStatus.ALREADY_SENT]
    assert len(channel.sent) == 2


def test_duplicate_ids_in_one_batch_send_once(store, channel, dispatcher, make_signup) -> None:
    """Verify the fresh fetch sees the marker written for the earlier occurrence."""

    store.add(make_signup(1))

    results = dispatcher.send_invites([1, 1])

    assert [r.status for r in results] == [DispatchStatus.SENT, DispatchStatus.ALREADY_SENT]
    assert len(channel.sent) == 1


def test_missing_signup_is_reported_and_batch_continues(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))
    store.add(make_signup(3))

    results = dispatcher.send_invites([1, 2, 3])

    assert [r.status for r in results] == [DispatchStatus.SENT, DispatchStatus.ERROR, DispatchStatus.SENT]
    assert results[1].failure is DispatchFailure.NOT_FOUND
    assert results[1].error == "Not found"
    assert len(channel.sent) == 2


def test_fetch_failure_is_isolated(store, channel, dispatcher, make_signup) -> None:
    for signup_id in (1, 2, 3):
        store.add(make_signup(signup_id))
    store.failing_fetch_ids.add(2)

    results = dispatcher.send_invites([1, 2, 3])

    assert results[1].status is DispatchStatus.ERROR
    assert results[1].failure is DispatchFailure.STORE_ERROR
    assert "connection reset" in results[1].error
    assert results[0].status is DispatchStatus.SENT
    assert results[2].status is DispatchStatus.SENT


def test_provider_rejection_leaves_marker_unset(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))
    channel.responses["user1@example.com"] = SendResult(error="Invalid `to` field")

    [result] = dispatcher.send_invites([1])

    assert result.status is DispatchStatus.ERROR
    assert result.failure is DispatchFailure.SEND_FAILED
    assert result.error == "Invalid `to` field"
    assert store.update_calls == []
    assert store.signups[1].invite_sent_at is None


def test_missing_message_id_is_not_treated_as_sent(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))
    channel.responses["user1@example.com"] = SendResult()

    [result] = dispatcher.send_invites([1])

    assert result.status is DispatchStatus.ERROR
    assert result.error == "Resend returned no email ID"
    assert store.signups[1].invite_sent_at is None


def test_channel_exception_is_isolated(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))
    store.add(make_signup(2))
    channel.responses["user1@example.com"] = ConnectionError("socket closed")

    results = dispatcher.send_invites([1, 2])

    assert results[0].failure is DispatchFailure.SEND_FAILED
    assert results[0].error == "socket closed"
    assert results[1].status is DispatchStatus.SENT


def test_blocked_marker_write_is_reported_as_not_recorded(store, dispatcher, make_signup) -> None:
    """Verify a zero-row update after a confirmed send is an error, not a success."""

    store.add(make_signup(1))
    store.blocked_update_ids.add(1)

    [result] = dispatcher.send_invites([1])

    assert result.status is DispatchStatus.ERROR
    assert result.failure is DispatchFailure.NOT_RECORDED
    assert result.error.startswith("Email sent but invite_sent_at not updated")
    assert result.message_id == "msg-1"


def test_failed_marker_write_is_reported_as_not_recorded(store, dispatcher, make_signup) -> None:
    store.add(make_signup(1))
    store.failing_update_ids.add(1)

    [result] = dispatcher.send_follow_ups([1])

    assert result.failure is DispatchFailure.NOT_RECORDED
    assert result.error.startswith("Email sent but failed to update record:")
    assert "permission denied" in result.error
    assert result.message_id == "msg-1"


def test_marker_is_written_with_injected_clock(store, dispatcher, make_signup) -> None:
    store.add(make_signup(1))

    dispatcher.send_follow_ups([1])

    assert store.update_calls == [(1, OutreachStage.FOLLOW_UP, FIXED_NOW)]


def test_follow_up_batch_pauses_between_items(store, dispatcher, sleeps, make_signup) -> None:
    for signup_id in range(1, 5):
        store.add(make_signup(signup_id))

    dispatcher.send_follow_ups([1, 2, 3, 4])

    assert sleeps == [0.6, 0.6, 0.6]


def test_follow_up_pauses_apply_after_failed_items(store, dispatcher, sleeps, make_signup) -> None:
    store.add(make_signup(1))

    results = dispatcher.send_follow_ups([1, 99, 98])

    assert [r.status for r in results] == [DispatchStatus.SENT, DispatchStatus.ERROR, DispatchStatus.ERROR]
    assert sleeps == [0.6, 0.6]


def test_invite_batch_is_not_throttled(store, dispatcher, sleeps, make_signup) -> None:
    for signup_id in range(1, 4):
        store.add(make_signup(signup_id))

    dispatcher.send_invites([1, 2, 3])

    assert sleeps == []


def test_single_item_batch_does_not_pause(store, dispatcher, sleeps, make_signup) -> None:
    store.add(make_signup(1))

    dispatcher.send_follow_ups([1])

    assert sleeps == []


def test_follow_up_without_invite_sends_by_default(store, dispatcher, make_signup) -> None:
    store.add(make_signup(1))

    [result] = dispatcher.send_follow_ups([1])

    assert result.status is DispatchStatus.SENT


def test_follow_up_without_invite_is_skipped_when_ordering_enforced(
    store, channel, settings, sleeps, make_signup
) -> None:
    strict = OutreachDispatcher(
        store,
        channel,
        replace(settings, require_invite_before_follow_up=True),
        sleep=sleeps.append,
        clock=lambda: FIXED_NOW,
    )
    store.add(make_signup(1))
    store.add(make_signup(2, invite_sent_at=SENT_EARLIER))

    results = strict.send_follow_ups([1, 2])

    assert results[0].failure is DispatchFailure.INVITE_PENDING
    assert results[1].status is DispatchStatus.SENT
    assert [email.to for email in channel.sent] == ["user2@example.com"]


def test_invite_content_reflects_current_credits(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1, first_name="Ada", referral_code="ADA"))
    for signup_id in (10, 11, 12, 13):
        store.add(make_signup(signup_id, referred_by="ADA", invite_sent_at=SENT_EARLIER))

    dispatcher.send_invites([1])

    email = channel.sent[0]
    assert email.subject == "You're in — and you're starting with 2,500 credits"
    assert "2,500 credits" in email.html
    assert "Hey Ada, welcome" in email.html
    assert "Thanks for referring others to Pixel" in email.html


def test_follow_up_uses_operator_subject_and_template(store, channel, dispatcher, settings, make_signup) -> None:
    store.add(make_signup(1, first_name="Grace"))
    store.add(make_signup(2))

    dispatcher.send_follow_ups(
        [1, 2],
        subject="Last call",
        html_template="<p>{{greeting}} see you soon</p>",
    )

    assert [email.subject for email in channel.sent] == ["Last call", "Last call"]
    assert channel.sent[0].html == "<p>Hey Grace, see you soon</p>"
    assert channel.sent[1].html == "<p>Hey there, see you soon</p>"
    assert channel.sent[0].sender == settings.follow_up_from


def test_follow_up_defaults(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1))

    dispatcher.send_follow_ups([1])

    assert channel.sent[0].subject == "Your Pixel invite expires soon"
    assert "Hey there," in channel.sent[0].html


@pytest.mark.parametrize("bad_ids", [None, [], "1,2", {"ids": [1]}, [1, "2"], [1.0], [True]])
def test_invalid_batch_input_raises_before_processing(store, channel, dispatcher, bad_ids) -> None:
    with pytest.raises(InvalidRequestError):
        dispatcher.send_invites(bad_ids)

    assert store.fetch_calls == []
    assert channel.sent == []


def test_validate_batch_ids_messages() -> None:
    with pytest.raises(InvalidRequestError, match=r"ids\[\] is required"):
        validate_batch_ids([])

    with pytest.raises(InvalidRequestError, match="must contain integers"):
        validate_batch_ids([1, "x"])

    assert validate_batch_ids((4, 5)) == [4, 5]


def test_preview_renders_without_sending_or_recording(store, channel, dispatcher, make_signup) -> None:
    store.add(make_signup(1, first_name="Ada"))

    rendered = dispatcher.preview(1, OutreachStage.INVITE)

    assert "1,750 credits" in rendered.subject
    assert "Hey Ada, welcome" in rendered.html
    assert channel.sent == []
    assert store.update_calls == []


def test_preview_ignores_already_sent_marker(store, dispatcher, make_signup) -> None:
    store.add(make_signup(1, follow_up_sent_at=SENT_EARLIER))

    rendered = dispatcher.preview(1, OutreachStage.FOLLOW_UP, subject="Custom")

    assert rendered.subject == "Custom"


def test_preview_missing_signup_raises(dispatcher) -> None:
    with pytest.raises(SignupNotFoundError):
        dispatcher.preview(404, OutreachStage.FOLLOW_UP)
