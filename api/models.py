"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Dispatch Models
# ============================================================================

class SendBatchRequest(BaseModel):
    """Request to send an outreach stage to a batch of signups."""
    ids: List[int] = Field(
        ...,
        min_length=1,
        description="Signup IDs to process, in order"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "ids": [101, 102, 103]
            }
        }


class SendFollowUpRequest(SendBatchRequest):
    """Follow-up batch request with optional content overrides."""
    subject: Optional[str] = Field(None, description="Overrides the default follow-up subject")
    html_template: Optional[str] = Field(
        None,
        description="Overrides the default follow-up HTML; supports {{greeting}} and {{first_name}}"
    )


class DispatchResultResponse(BaseModel):
    """Outcome for one signup in a batch."""
    id: int
    status: str  # "sent", "already_sent" or "error"
    error: Optional[str] = None
    failure: Optional[str] = None
    message_id: Optional[str] = None


class BatchDispatchResponse(BaseModel):
    """Per-signup outcomes, in request order."""
    results: List[DispatchResultResponse]

    class Config:
        json_schema_extra = {
            "example": {
                "results": [
                    {"id": 101, "status": "sent", "message_id": "4ef9a417-02e9-4d39-ad75-9611e0fcc33c"},
                    {"id": 102, "status": "already_sent"},
                    {
                        "id": 103,
                        "status": "error",
                        "error": "Not found",
                        "failure": "not_found"
                    }
                ]
            }
        }


class PreviewRequest(BaseModel):
    """Request to render a stage's email for one signup."""
    id: int = Field(..., description="Signup ID")


class PreviewResponse(BaseModel):
    subject: str
    html: str


# ============================================================================
# Credit Models
# ============================================================================

class CreditBonusBreakdown(BaseModel):
    signup_bonus: int
    referral_bonus: int
    gift_bonus: int


class CreditSummary(BaseModel):
    total: int
    earned: int
    referrals: int
    breakdown: CreditBonusBreakdown


class CreditLookupResponse(BaseModel):
    """Credit balance for one signup."""
    email: str
    first_name: Optional[str] = None
    credits: CreditSummary

    class Config:
        json_schema_extra = {
            "example": {
                "email": "ada@example.com",
                "first_name": "Ada",
                "credits": {
                    "total": 2000,
                    "earned": 2000,
                    "referrals": 3,
                    "breakdown": {
                        "signup_bonus": 500,
                        "referral_bonus": 1500,
                        "gift_bonus": 0
                    }
                }
            }
        }


# ============================================================================
# Analytics Models
# ============================================================================

class WindowRateResponse(BaseModel):
    signups: int
    per_day: float


class AllTimeRateResponse(BaseModel):
    per_day: float


class RatesResponse(BaseModel):
    last_7_days: WindowRateResponse
    last_14_days: WindowRateResponse
    last_30_days: WindowRateResponse
    all_time: AllTimeRateResponse


class ProjectionsResponse(BaseModel):
    based_on_7_days: Optional[int] = None
    based_on_14_days: Optional[int] = None
    based_on_30_days: Optional[int] = None
    weighted: Optional[int] = None
    projected_date: Optional[date] = None


class DailyCountResponse(BaseModel):
    date: date
    count: int


class GrowthProjectionResponse(BaseModel):
    """Signup growth against the target. Detail sections are null when there are no signups."""
    total: int
    target: int
    remaining: int
    days_remaining: Optional[int] = None
    projected_date: Optional[date] = None
    days_since_start: Optional[int] = None
    rates: Optional[RatesResponse] = None
    projections: Optional[ProjectionsResponse] = None
    daily_breakdown: Optional[List[DailyCountResponse]] = None


class SourceShareResponse(BaseModel):
    label: str
    value: int
    color: str


class SourceBreakdownResponse(BaseModel):
    sources: List[SourceShareResponse]


# ============================================================================
# Webhook Models
# ============================================================================

class NewSignupWebhook(BaseModel):
    """Database webhook payload: { type, table, record, schema, old_record }."""
    type: Optional[str] = None
    table: Optional[str] = None
    record: Optional[dict] = None


class WebhookAck(BaseModel):
    ok: bool


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error body returned with 4xx/5xx responses."""
    detail: str

    class Config:
        json_schema_extra = {
            "example": {
                "detail": "email query parameter is required"
            }
        }
