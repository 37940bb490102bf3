"""Trailing time window and timestamp parsing shared by every tier."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

DEFAULT_WINDOW = timedelta(hours=24)

# Twitter's legacy format, e.g. "Mon Jan 02 15:04:05 +0000 2006"
RUBY_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(UTC)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def is_within_window(
    ts: datetime,
    now: datetime | None = None,
    window: timedelta = DEFAULT_WINDOW,
) -> bool:
    """Check whether ``ts`` falls in the trailing window ending at ``now``.

    ``now`` defaults to the wall clock at the moment of the call, so a
    long-running fetch sees its window slide forward.
    """
    now = _as_utc(now) if now is not None else utc_now()
    ts = _as_utc(ts)
    return now - window <= ts <= now


def parse_timestamp(raw: object) -> datetime | None:
    """Parse a post timestamp.

    Tries the legacy Ruby-date format first, then RFC 3339 / ISO 8601.

    Returns:
        Timezone-aware datetime, or None if neither format matches.
    """
    if not isinstance(raw, str) or not raw:
        return None
    raw = raw.strip()
    try:
        return datetime.strptime(raw, RUBY_DATE_FORMAT)
    except ValueError:
        pass
    try:
        return _as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None
