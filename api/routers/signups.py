"""
Signups API Endpoints.

Endpoints for outreach dispatch, email previews, credit lookup and signup
analytics.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_dispatcher, get_settings, get_signup_store
from api.models import (
    AllTimeRateResponse,
    BatchDispatchResponse,
    CreditBonusBreakdown,
    CreditLookupResponse,
    CreditSummary,
    DailyCountResponse,
    DispatchResultResponse,
    ErrorResponse,
    GrowthProjectionResponse,
    PreviewRequest,
    PreviewResponse,
    ProjectionsResponse,
    RatesResponse,
    SendBatchRequest,
    SendFollowUpRequest,
    SourceBreakdownResponse,
    SourceShareResponse,
    WindowRateResponse,
)
from domain.errors import InvalidRequestError, SignupNotFoundError
from domain.forecast import GrowthProjection, WindowRate
from domain.signup import OutreachStage
from repositories.signup_repository import SignupStore
from services.analytics_service import get_growth_projection, get_source_breakdown
from services.config import OutreachSettings
from services.credit_service import lookup_credits
from services.dispatch_service import DispatchResult, OutreachDispatcher

router = APIRouter()


def _result_to_response(result: DispatchResult) -> DispatchResultResponse:
    return DispatchResultResponse(
        id=result.id,
        status=result.status.value,
        error=result.error,
        failure=result.failure.value if result.failure else None,
        message_id=result.message_id,
    )


def _window_to_response(window: WindowRate) -> WindowRateResponse:
    return WindowRateResponse(signups=window.signups, per_day=window.per_day)


def _projection_to_response(projection: GrowthProjection) -> GrowthProjectionResponse:
    response = GrowthProjectionResponse(
        total=projection.total,
        target=projection.target,
        remaining=projection.remaining,
        days_remaining=projection.days_remaining,
        projected_date=projection.projected_date,
        days_since_start=projection.days_since_start,
    )

    if projection.rates is not None:
        response.rates = RatesResponse(
            last_7_days=_window_to_response(projection.rates.last_7_days),
            last_14_days=_window_to_response(projection.rates.last_14_days),
            last_30_days=_window_to_response(projection.rates.last_30_days),
            all_time=AllTimeRateResponse(per_day=projection.rates.all_time_per_day),
        )

    if projection.projections is not None:
        p = projection.projections
        response.projections = ProjectionsResponse(
            based_on_7_days=p.based_on_7_days,
            based_on_14_days=p.based_on_14_days,
            based_on_30_days=p.based_on_30_days,
            weighted=p.weighted,
            projected_date=p.projected_date,
        )

    if projection.daily_breakdown is not None:
        response.daily_breakdown = [
            DailyCountResponse(date=entry.day, count=entry.count)
            for entry in projection.daily_breakdown
        ]

    return response


@router.post(
    "/signups/send-invite",
    response_model=BatchDispatchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Send Invites",
    description="Send the invite email to each signup in the batch that has not received it yet."
)
def send_invites(
    request: SendBatchRequest,
    dispatcher: OutreachDispatcher = Depends(get_dispatcher),
):
    """
    Send invites to a batch of signups.

    Each ID is processed independently and reported in request order:
    - `sent`: email delivered and `invite_sent_at` recorded
    - `already_sent`: invite was recorded earlier; nothing was sent
    - `error`: see `error` / `failure`. `failure == "not_recorded"` means the
      email WAS delivered but the record could not be updated and needs manual
      reconciliation.

    The request only fails as a whole when `ids` is missing, empty or not a list.
    """
    try:
        results = dispatcher.send_invites(request.ids)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to send invites: {str(e)}"
        )

    return BatchDispatchResponse(results=[_result_to_response(r) for r in results])


@router.post(
    "/signups/send-followup",
    response_model=BatchDispatchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Send Follow-ups",
    description="Send the follow-up email to each signup in the batch, throttled to the provider rate limit."
)
def send_follow_ups(
    request: SendFollowUpRequest,
    dispatcher: OutreachDispatcher = Depends(get_dispatcher),
):
    """
    Send follow-ups to a batch of signups.

    Same per-item semantics as `/signups/send-invite`, with `follow_up_sent_at`
    as the stage marker. Items are paced by the configured follow-up delay.
    `subject` and `html_template` optionally override the default content.
    """
    try:
        results = dispatcher.send_follow_ups(
            request.ids,
            subject=request.subject,
            html_template=request.html_template,
        )
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to send follow-ups: {str(e)}"
        )

    return BatchDispatchResponse(results=[_result_to_response(r) for r in results])


def _preview(dispatcher: OutreachDispatcher, signup_id: int, stage: OutreachStage) -> PreviewResponse:
    try:
        rendered = dispatcher.preview(signup_id, stage)
    except SignupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to render preview: {str(e)}"
        )
    return PreviewResponse(subject=rendered.subject, html=rendered.html)


@router.post(
    "/signups/preview-invite",
    response_model=PreviewResponse,
    summary="Preview Invite",
)
def preview_invite(
    request: PreviewRequest,
    dispatcher: OutreachDispatcher = Depends(get_dispatcher),
):
    """Render the invite a signup would receive, without sending it."""
    return _preview(dispatcher, request.id, OutreachStage.INVITE)


@router.post(
    "/signups/preview-followup",
    response_model=PreviewResponse,
    summary="Preview Follow-up",
)
def preview_follow_up(
    request: PreviewRequest,
    dispatcher: OutreachDispatcher = Depends(get_dispatcher),
):
    """Render the follow-up a signup would receive, without sending it."""
    return _preview(dispatcher, request.id, OutreachStage.FOLLOW_UP)


@router.get(
    "/signups/credits",
    response_model=CreditLookupResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Credit Lookup",
    description="Credit balance for a signup, computed from its current referral count."
)
def get_credits(
    email: Optional[str] = Query(None, description="Signup email (case-insensitive)"),
    store: SignupStore = Depends(get_signup_store),
):
    """
    Look up a signup's credits.

    **Example usage:**
    - `GET /api/v1/signups/credits?email=ada@example.com`
    """
    try:
        lookup = lookup_credits(store, email or "")
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SignupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to look up credits: {str(e)}"
        )

    credits = lookup.credits
    return CreditLookupResponse(
        email=lookup.signup.email,
        first_name=lookup.signup.first_name,
        credits=CreditSummary(
            total=credits.total,
            earned=credits.earned,
            referrals=credits.referral_count,
            breakdown=CreditBonusBreakdown(
                signup_bonus=credits.signup_bonus,
                referral_bonus=credits.referral_bonus,
                gift_bonus=credits.gift_bonus,
            ),
        ),
    )


@router.get(
    "/signups/analysis",
    response_model=GrowthProjectionResponse,
    summary="Growth Projection",
    description="Signup rates over 7/14/30 days and the projected date for reaching the target."
)
def get_analysis(
    store: SignupStore = Depends(get_signup_store),
    settings: OutreachSettings = Depends(get_settings),
):
    """Project when the signup target will be reached."""
    try:
        projection = get_growth_projection(store, settings)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute growth projection: {str(e)}"
        )

    return _projection_to_response(projection)


@router.get(
    "/signups/sources",
    response_model=SourceBreakdownResponse,
    summary="Signup Sources",
)
def get_sources(store: SignupStore = Depends(get_signup_store)):
    """Signup counts per acquisition source, largest first."""
    try:
        shares = get_source_breakdown(store)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute source breakdown: {str(e)}"
        )

    return SourceBreakdownResponse(
        sources=[SourceShareResponse(label=s.label, value=s.value, color=s.color) for s in shares]
    )
