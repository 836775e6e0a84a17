"""UTC datetime utilities."""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def from_block_time(block_time: int | None) -> datetime:
    """Chain block time (unix seconds) to aware UTC; falls back to now."""
    if block_time is None:
        return utc_now()
    return datetime.fromtimestamp(block_time, tz=timezone.utc)


def window_start(days: int, now: datetime | None = None) -> datetime:
    """Start of a trailing window of `days` days ending at `now`."""
    return (now or utc_now()) - timedelta(days=days)


def day_key(ts: datetime) -> date:
    """Calendar day (UTC) a timestamp falls on."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()
