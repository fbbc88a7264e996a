"""
Signup repository (persistence).

This module provides *only* persistence operations for the SignupRecord domain
entity. It contains no outreach rules; it only enforces simple persistence
constraints, most importantly the conditional stage-marker write.

The Supabase client is injected, so the same code runs against the real project
or a test double.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Protocol

from postgrest.exceptions import APIError  # type: ignore[import-not-found]
from supabase import Client  # type: ignore[import-not-found]

from domain.signup import OutreachStage, SignupRecord
from domain.time import parse_utc_datetime, to_iso_utc

# Supabase table name for signup records.
# Keep this aligned with your database schema.
_SIGNUPS_TABLE: str = "signups"

_SIGNUP_COLUMNS: str = (
    "id, email, first_name, referral_code, referred_by, created_at, "
    "invite_sent_at, follow_up_sent_at, utm_parameters"
)

# PostgREST caps rows per request; listing pages through it.
_PAGE_SIZE: int = 1000


class SignupStore(Protocol):
    """Store operations the outreach services depend on."""

    def get_by_id(self, signup_id: int) -> Optional[SignupRecord]: ...

    def get_by_email(self, email: str) -> Optional[SignupRecord]: ...

    def count_referrals(self, referral_code: str) -> int: ...

    def list_created_at(self) -> List[datetime]: ...

    def list_utm_parameters(self) -> List[Optional[Mapping[str, Any]]]: ...

    def mark_stage_sent(self, signup_id: int, stage: OutreachStage, sent_at: datetime) -> int: ...


def _optional_timestamp(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def _row_to_signup(row: Mapping[str, Any]) -> SignupRecord:
    """Convert a Supabase row into a domain SignupRecord."""

    return SignupRecord(
        id=int(row["id"]),
        email=str(row["email"]),
        created_at=parse_utc_datetime(row["created_at"]),
        referral_code=row.get("referral_code") or None,
        first_name=row.get("first_name") or None,
        referred_by=row.get("referred_by") or None,
        invite_sent_at=_optional_timestamp(row.get("invite_sent_at")),
        follow_up_sent_at=_optional_timestamp(row.get("follow_up_sent_at")),
        utm_parameters=row.get("utm_parameters") or None,
    )


class SignupRepository:
    """Supabase-backed implementation of SignupStore."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def _execute(self, query: Any, action: str) -> Any:
        """
        Execute a query builder, normalizing failures to RuntimeError.

        supabase-py raises APIError for PostgREST errors; older clients return
        an `error` attribute instead. Both are surfaced the same way.
        """

        try:
            response = query.execute()
        except APIError as e:
            raise RuntimeError(f"Failed to {action}: {e.message or e}") from e

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to {action}: {error}")
        return response

    def _first(self, column: str, value: Any, action: str) -> Optional[SignupRecord]:
        response = self._execute(
            self._client.table(_SIGNUPS_TABLE)
            .select(_SIGNUP_COLUMNS)
            .eq(column, value)
            .limit(1),
            action,
        )
        rows = getattr(response, "data", None) or []
        if not rows:
            return None
        return _row_to_signup(rows[0])

    def get_by_id(self, signup_id: int) -> Optional[SignupRecord]:
        """
        Fetch a signup by ID.

        Returns:
        - SignupRecord if found
        - None if no record exists for the given ID
        """

        return self._first("id", signup_id, "fetch signup")

    def get_by_email(self, email: str) -> Optional[SignupRecord]:
        """Fetch a signup by email (case-insensitive; emails are stored lower-cased)."""

        return self._first("email", email.strip().lower(), "fetch signup by email")

    def count_where(self, column: str, value: Any) -> int:
        """Count signups whose `column` equals `value`."""

        response = self._execute(
            self._client.table(_SIGNUPS_TABLE)
            .select("id", count="exact")
            .eq(column, value),
            f"count signups by {column}",
        )
        return int(getattr(response, "count", 0) or 0)

    def count_referrals(self, referral_code: str) -> int:
        """Count signups attributed to `referral_code` via referred_by."""

        return self.count_where("referred_by", referral_code)

    def _list_column(self, column: str, action: str) -> List[Mapping[str, Any]]:
        rows: List[Mapping[str, Any]] = []
        start = 0
        while True:
            response = self._execute(
                self._client.table(_SIGNUPS_TABLE)
                .select(column)
                .order("created_at")
                .range(start, start + _PAGE_SIZE - 1),
                action,
            )
            page = getattr(response, "data", None) or []
            rows.extend(page)
            if len(page) < _PAGE_SIZE:
                return rows
            start += _PAGE_SIZE

    def list_created_at(self) -> List[datetime]:
        """Creation timestamps of every signup, oldest first."""

        rows = self._list_column("created_at", "list signup timestamps")
        return [parse_utc_datetime(row["created_at"]) for row in rows]

    def list_utm_parameters(self) -> List[Optional[Mapping[str, Any]]]:
        """UTM parameters of every signup (None where absent), oldest first."""

        rows = self._list_column("utm_parameters", "list signup sources")
        return [row.get("utm_parameters") for row in rows]

    def mark_stage_sent(self, signup_id: int, stage: OutreachStage, sent_at: datetime) -> int:
        """
        Record completion of an outreach stage.

        Requirements:
        - Must only update if the stage marker is currently NULL.

        Returns:
            Number of rows updated. Zero means the marker was already set, the
            record is gone, or a row-level policy blocked the write.

        Raises:
            RuntimeError: if Supabase reports an error
        """

        field = stage.marker_field
        response = self._execute(
            self._client.table(_SIGNUPS_TABLE)
            .update({field: to_iso_utc(sent_at, name="sent_at")})
            .eq("id", signup_id)
            .is_(field, "null"),
            f"update {field}",
        )
        updated_rows = getattr(response, "data", None) or []
        return len(updated_rows)


__all__ = [
    "SignupStore",
    "SignupRepository",
]
