"""
Domain: Referral credit calculation (pure).

Every signup starts with a 500-credit signup bonus and earns 500 credits per
confirmed direct referral. A 1750-credit floor is guaranteed; the gift bonus
fills the gap between what was earned and the floor.

    earned       = 500 + referral_count * 500
    total        = max(1750, earned)
    gift_bonus   = max(0, 1750 - earned)

total == signup_bonus + referral_bonus + gift_bonus always holds.
"""

from __future__ import annotations

from dataclasses import dataclass

SIGNUP_BONUS: int = 500
CREDITS_PER_REFERRAL: int = 500
CREDIT_FLOOR: int = 1750


@dataclass(frozen=True, slots=True)
class CreditBreakdown:
    total: int
    earned: int
    referral_count: int
    signup_bonus: int
    referral_bonus: int
    gift_bonus: int


def compute_credits(referral_count: int) -> CreditBreakdown:
    """
    Compute the credit breakdown for a signup with `referral_count` referrals.

    Raises:
        ValueError: if referral_count is negative or not an integer
    """

    if isinstance(referral_count, bool) or not isinstance(referral_count, int):
        raise ValueError("referral_count must be an integer")
    if referral_count < 0:
        raise ValueError("referral_count must be >= 0")

    referral_bonus = referral_count * CREDITS_PER_REFERRAL
    earned = SIGNUP_BONUS + referral_bonus

    return CreditBreakdown(
        total=max(CREDIT_FLOOR, earned),
        earned=earned,
        referral_count=referral_count,
        signup_bonus=SIGNUP_BONUS,
        referral_bonus=referral_bonus,
        gift_bonus=max(0, CREDIT_FLOOR - earned),
    )
