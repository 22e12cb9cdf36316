"""Common time utilities."""

from __future__ import annotations

import datetime as dt

# Clock skew tolerated before a timestamp counts as future-dated.
FUTURE_TOLERANCE = dt.timedelta(seconds=1)


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def ensure_utc(value: dt.datetime, *, field: str) -> dt.datetime:
    """Convert an aware datetime to UTC, rejecting naive values."""
    if value.tzinfo is None:
        msg = f"{field} must be timezone-aware"
        raise ValueError(msg)
    return value.astimezone(dt.UTC)


def ensure_not_future(value: dt.datetime, *, field: str) -> dt.datetime:
    """Return ``value`` in UTC, rejecting timestamps in the future."""
    normalized = ensure_utc(value, field=field)
    if normalized > utcnow() + FUTURE_TOLERANCE:
        msg = f"{field} cannot be in the future"
        raise ValueError(msg)
    return normalized


def parse_github_datetime(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp from the GitHub API into aware UTC."""
    text = value.replace("Z", "+00:00")
    parsed = dt.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        msg = f"GitHub datetime missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)
