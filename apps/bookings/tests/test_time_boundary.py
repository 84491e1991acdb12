"""Tests for civil date conversion in the booking timezone."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from apps.bookings.domain.time_boundary import (
    civil_date,
    local_date,
    local_instant,
    local_range,
    local_time,
    parse_civil_date,
)


def test_late_evening_utc_belongs_to_same_manila_date():
    # 23:58 in Manila
    assert civil_date(datetime(2024, 6, 1, 15, 58, tzinfo=timezone.utc)) == "2024-06-01"


def test_just_after_local_midnight_is_next_date():
    # 00:02 in Manila, still 2024-06-01 in UTC
    assert civil_date(datetime(2024, 6, 1, 16, 2, tzinfo=timezone.utc)) == "2024-06-02"


def test_early_utc_morning_is_already_afternoon_in_manila():
    instant = datetime(2024, 6, 1, 1, 0, tzinfo=timezone.utc)
    assert local_date(instant) == date(2024, 6, 1)
    assert local_time(instant) == time(9, 0)


def test_explicit_timezone_argument():
    instant = datetime(2024, 6, 1, 15, 58, tzinfo=timezone.utc)
    assert civil_date(instant, "UTC") == "2024-06-01"
    assert civil_date(instant, "Asia/Tokyo") == "2024-06-02"


def test_naive_instant_is_rejected():
    with pytest.raises(ValueError):
        civil_date(datetime(2024, 6, 1, 12, 0))


def test_local_instant_round_trips_through_utc():
    instant = local_instant(date(2024, 6, 1), time(9, 0))
    assert instant.astimezone(timezone.utc) == datetime(2024, 6, 1, 1, 0, tzinfo=timezone.utc)
    assert civil_date(instant) == "2024-06-01"


def test_local_range_is_half_open_interval():
    first = local_range(date(2024, 6, 1), time(9, 0), time(10, 0))
    second = local_range(date(2024, 6, 1), time(10, 0), time(11, 0))
    assert not first.overlaps_with(second)


def test_parse_civil_date_accepts_strings_and_dates():
    assert parse_civil_date("2024-06-01") == date(2024, 6, 1)
    assert parse_civil_date(date(2024, 6, 1)) == date(2024, 6, 1)
    with pytest.raises(TypeError):
        parse_civil_date(datetime(2024, 6, 1, tzinfo=timezone.utc))
