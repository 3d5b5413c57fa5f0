# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

All timestamps are stored in UTC and all Python datetimes are timezone-aware.
Some drivers (SQLite in tests) hand back naive values; ensure_utc normalizes
them before arithmetic.

Usage:
    from fieldservice.utils.datetime import utc_now

    created_at = Column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def hours_ago(hours: int) -> datetime:
    """Get datetime N hours ago in UTC."""
    return utc_now() - timedelta(hours=hours)


def days_from_now(days: int) -> datetime:
    """Get datetime N days from now in UTC."""
    return utc_now() + timedelta(days=days)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two datetimes.

    Args:
        start: Earlier datetime.
        end: Later datetime.

    Returns:
        Elapsed minutes, truncated.
    """
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() // 60)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as an ISO 8601 UTC string."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
