"""
Domain: Signup source attribution (pure).

A signup's source is its UTM medium (mapped to a display label when one is
known). Signups without a UTM medium arrived through a referral link.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

REFERRAL_LINK: str = "Referral Link"

SOURCE_LABELS: dict[str, str] = {
    "cold_outreach": "Cold Email",
}

SOURCE_COLORS: dict[str, str] = {
    "Referral Link": "#10b981",
    "Metadata": "#0077b5",
    "LinkedIn": "#0a66c2",
    "Reddit": "#ff4500",
    "Google": "#4285f4",
    "Facebook": "#1877f2",
    "Twitter": "#1da1f2",
    "Cold Email": "#f97316",
}

DEFAULT_COLORS: tuple[str, ...] = ("#8b5cf6", "#ec4899", "#f59e0b", "#14b8a6", "#6366f1", "#84cc16")


@dataclass(frozen=True, slots=True)
class SourceShare:
    label: str
    value: int
    color: str


def signup_source(utm_parameters: Optional[Mapping[str, Any]]) -> str:
    """Resolve the display label for a signup's acquisition source."""

    medium = (utm_parameters or {}).get("utm_medium")
    if medium:
        return SOURCE_LABELS.get(str(medium), str(medium))
    return REFERRAL_LINK


def source_color(label: str, index: int = 0) -> str:
    return SOURCE_COLORS.get(label) or DEFAULT_COLORS[index % len(DEFAULT_COLORS)]


def source_breakdown(utm_parameter_sets: Iterable[Optional[Mapping[str, Any]]]) -> List[SourceShare]:
    """
    Count signups per source, largest first.

    Colours for unknown labels are assigned from the default palette in order of
    first appearance, before sorting.
    """

    counts = Counter(signup_source(utm) for utm in utm_parameter_sets)
    shares = [
        SourceShare(label=label, value=value, color=source_color(label, index))
        for index, (label, value) in enumerate(counts.items())
    ]
    return sorted(shares, key=lambda share: share.value, reverse=True)
