"""
Webhooks API Endpoints.

Receives database webhooks from the signup intake.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_email_channel, get_settings
from api.models import NewSignupWebhook, WebhookAck
from domain.errors import InvalidRequestError
from services.config import OutreachSettings
from services.email_channel import EmailChannel
from services.notification_service import notify_new_signup

router = APIRouter()


@router.post(
    "/webhooks/new-app-signup",
    response_model=WebhookAck,
    summary="New Signup Webhook",
    description="Email an operator alert for a newly inserted signup row."
)
def new_app_signup(
    payload: NewSignupWebhook,
    channel: EmailChannel = Depends(get_email_channel),
    settings: OutreachSettings = Depends(get_settings),
):
    try:
        notify_new_signup(channel, settings, payload.record)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=str(e)
        )

    return WebhookAck(ok=True)
