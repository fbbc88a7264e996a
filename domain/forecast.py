"""
Domain: Signup growth projection (pure).

Extrapolates time-to-target from historical signup creation timestamps.

Rules implemented here:
- Trailing window counts use rolling cut-offs: a signup counts towards the
  N-day window iff created_at >= now - N days.
- Per-day averages are count / N (all-time: total / days since first signup,
  at least 1 day). Reported averages are rounded half-up to two decimals;
  forecasts use the unrounded values.
- Single-window forecast: ceil(remaining / average), None when remaining <= 0 or
  the average is 0.
- Weighted forecast blends the 7/14/30-day averages with weights 3:2:1.
- The daily breakdown covers the last 14 calendar days (oldest first, zero-count
  days included). Calendar days are taken in the supplied timezone; each
  timestamp belongs to exactly one day by its local date.
- Zero signups is a valid input: nothing is divided, forecasts are None.

All timestamps, including `now`, must be passed explicitly.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence, Tuple

from .time import require_utc_timestamp

DEFAULT_SIGNUP_TARGET: int = 1000
BREAKDOWN_DAYS: int = 14

# window length in days -> weight in the blended forecast
WINDOW_WEIGHTS: Tuple[Tuple[int, int], ...] = ((7, 3), (14, 2), (30, 1))


@dataclass(frozen=True, slots=True)
class WindowRate:
    days: int
    signups: int
    per_day: float


@dataclass(frozen=True, slots=True)
class RateStatistics:
    last_7_days: WindowRate
    last_14_days: WindowRate
    last_30_days: WindowRate
    all_time_per_day: float


@dataclass(frozen=True, slots=True)
class Projections:
    based_on_7_days: Optional[int]
    based_on_14_days: Optional[int]
    based_on_30_days: Optional[int]
    weighted: Optional[int]
    projected_date: Optional[date]


@dataclass(frozen=True, slots=True)
class DailyCount:
    day: date
    count: int


@dataclass(frozen=True, slots=True)
class GrowthProjection:
    """
    Snapshot of signup growth against a target.

    rates, projections and daily_breakdown are None only when there are no
    signups at all.
    """

    total: int
    target: int
    remaining: int
    days_since_start: Optional[int] = None
    rates: Optional[RateStatistics] = None
    projections: Optional[Projections] = None
    daily_breakdown: Optional[Tuple[DailyCount, ...]] = None

    @property
    def days_remaining(self) -> Optional[int]:
        """Weighted day count until the target is reached."""

        return self.projections.weighted if self.projections else None

    @property
    def projected_date(self) -> Optional[date]:
        return self.projections.projected_date if self.projections else None


def round_rate(value: float) -> float:
    """Round half-up to two decimal places (1.425 -> 1.43, not 1.42)."""

    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def days_to_target(remaining: int, per_day: float) -> Optional[int]:
    if remaining <= 0 or per_day <= 0:
        return None
    return math.ceil(remaining / per_day)


def weighted_average(averages: Sequence[float]) -> float:
    """Blend 7/14/30-day averages (in that order) with weights 3:2:1."""

    weights = [weight for _, weight in WINDOW_WEIGHTS]
    if len(averages) != len(weights):
        raise ValueError(f"Expected {len(weights)} averages, got {len(averages)}")
    return sum(avg * w for avg, w in zip(averages, weights)) / sum(weights)


def daily_breakdown(
    created_at: Sequence[datetime],
    *,
    now: datetime,
    tz: tzinfo = timezone.utc,
    days: int = BREAKDOWN_DAYS,
) -> Tuple[DailyCount, ...]:
    """Per-calendar-day signup counts for the last `days` days, oldest first."""

    today = now.astimezone(tz).date()
    counts = Counter(ts.astimezone(tz).date() for ts in created_at)
    return tuple(
        DailyCount(day=day, count=counts.get(day, 0))
        for day in (today - timedelta(days=offset) for offset in range(days - 1, -1, -1))
    )


def project_growth(
    created_at: Sequence[datetime],
    *,
    now: datetime,
    target: int = DEFAULT_SIGNUP_TARGET,
    tz: tzinfo = timezone.utc,
) -> GrowthProjection:
    """
    Compute rate statistics and time-to-target forecasts.

    Args:
        created_at: Creation timestamps of every signup (UTC, any order)
        now: Current time (UTC)
        target: Total signup goal
        tz: Timezone whose midnights delimit calendar days

    Example:
        projection = project_growth(timestamps, now=datetime.now(timezone.utc))
        print(projection.days_remaining, projection.projected_date)
    """

    require_utc_timestamp("now", now)
    for ts in created_at:
        require_utc_timestamp("created_at", ts)

    total = len(created_at)
    remaining = target - total

    if total == 0:
        return GrowthProjection(total=0, target=target, remaining=remaining)

    first_signup = min(created_at)
    days_since_start = max(1, int((now - first_signup) // timedelta(days=1)))

    windows = []
    for window_days, _ in WINDOW_WEIGHTS:
        cutoff = now - timedelta(days=window_days)
        signups = sum(1 for ts in created_at if ts >= cutoff)
        windows.append((window_days, signups, signups / window_days))

    averages = [avg for _, _, avg in windows]
    blended = weighted_average(averages)
    weighted_days = days_to_target(remaining, blended)

    projected = None
    if weighted_days is not None:
        projected = (now.astimezone(tz) + timedelta(days=weighted_days)).date()

    w7, w14, w30 = (
        WindowRate(days=d, signups=count, per_day=round_rate(avg)) for d, count, avg in windows
    )

    return GrowthProjection(
        total=total,
        target=target,
        remaining=remaining,
        days_since_start=days_since_start,
        rates=RateStatistics(
            last_7_days=w7,
            last_14_days=w14,
            last_30_days=w30,
            all_time_per_day=round_rate(total / days_since_start),
        ),
        projections=Projections(
            based_on_7_days=days_to_target(remaining, averages[0]),
            based_on_14_days=days_to_target(remaining, averages[1]),
            based_on_30_days=days_to_target(remaining, averages[2]),
            weighted=weighted_days,
            projected_date=projected,
        ),
        daily_breakdown=daily_breakdown(created_at, now=now, tz=tz),
    )
