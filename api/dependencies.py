"""
FastAPI dependency providers.

Routers receive their collaborators through these providers so tests can swap in
in-memory fakes with `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends

from repositories.client import get_supabase_client
from repositories.signup_repository import SignupRepository, SignupStore
from services.config import OutreachSettings, load_outreach_settings
from services.dispatch_service import OutreachDispatcher
from services.email_channel import EmailChannel, ResendEmailChannel


@lru_cache(maxsize=1)
def get_settings() -> OutreachSettings:
    return load_outreach_settings()


def get_signup_store() -> SignupStore:
    return SignupRepository(get_supabase_client())


def get_email_channel(settings: OutreachSettings = Depends(get_settings)) -> EmailChannel:
    return ResendEmailChannel(settings.resend_api_key)


def get_dispatcher(
    store: SignupStore = Depends(get_signup_store),
    channel: EmailChannel = Depends(get_email_channel),
    settings: OutreachSettings = Depends(get_settings),
) -> OutreachDispatcher:
    return OutreachDispatcher(store, channel, settings)
