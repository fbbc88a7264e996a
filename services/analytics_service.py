"""
Signup analytics: growth projection and source breakdown.

Reads the current signup set from the store at call time and delegates the
arithmetic to the pure domain functions.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from domain.forecast import GrowthProjection, project_growth
from domain.signup_source import SourceShare, source_breakdown
from repositories.signup_repository import SignupStore
from services.config import OutreachSettings


def get_growth_projection(
    store: SignupStore,
    settings: OutreachSettings,
    now: Optional[datetime] = None,
) -> GrowthProjection:
    """
    Project time-to-target from every signup's creation timestamp.

    Args:
        store: Signup store to read timestamps from
        settings: Supplies the signup target and the calendar-day timezone
        now: Current UTC time (defaults to the wall clock)

    Raises:
        RuntimeError: if the store read fails
    """

    created_at = store.list_created_at()
    return project_growth(
        created_at,
        now=now or datetime.now(timezone.utc),
        target=settings.signup_target,
        tz=ZoneInfo(settings.forecast_timezone),
    )


def get_source_breakdown(store: SignupStore) -> List[SourceShare]:
    """Signup counts per acquisition source, largest first."""

    return source_breakdown(store.list_utm_parameters())


__all__ = ["get_growth_projection", "get_source_breakdown"]
