"""Tests for rwa_common.datetime_utils."""

from datetime import date, datetime, timedelta, timezone

from src.rwa_common.datetime_utils import day_key, from_block_time, utc_now, window_start


def test_utc_now_is_aware() -> None:
    assert utc_now().tzinfo is not None


def test_from_block_time() -> None:
    assert from_block_time(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_from_block_time_none_falls_back_to_now() -> None:
    before = utc_now()
    assert from_block_time(None) >= before


def test_window_start() -> None:
    now = datetime(2026, 3, 31, 12, tzinfo=timezone.utc)
    assert window_start(30, now) == now - timedelta(days=30)


def test_day_key_converts_to_utc() -> None:
    tz = timezone(timedelta(hours=-5))
    assert day_key(datetime(2026, 3, 1, 22, tzinfo=tz)) == date(2026, 3, 2)
