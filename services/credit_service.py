"""
Credit lookup service.

Credits are derived from the current referral count on every call; nothing is
cached or persisted.
"""

from __future__ import annotations

from dataclasses import dataclass

from domain.credits import CreditBreakdown, compute_credits
from domain.errors import InvalidRequestError, SignupNotFoundError
from domain.signup import SignupRecord
from repositories.signup_repository import SignupStore


@dataclass(frozen=True, slots=True)
class CreditLookup:
    signup: SignupRecord
    credits: CreditBreakdown


def credits_for_signup(store: SignupStore, signup: SignupRecord) -> CreditBreakdown:
    """Compute credits for a signup from the referrals attributed to its code."""

    referral_count = store.count_referrals(signup.referral_code) if signup.referral_code else 0
    return compute_credits(referral_count)


def lookup_credits(store: SignupStore, email: str) -> CreditLookup:
    """
    Look up a signup by email and compute its credit breakdown.

    Raises:
        InvalidRequestError: if email is empty
        SignupNotFoundError: if no signup has this email
    """

    if not email or not email.strip():
        raise InvalidRequestError("email query parameter is required")

    signup = store.get_by_email(email)
    if signup is None:
        raise SignupNotFoundError("Signup not found")

    return CreditLookup(signup=signup, credits=credits_for_signup(store, signup))


__all__ = ["CreditLookup", "credits_for_signup", "lookup_credits"]
