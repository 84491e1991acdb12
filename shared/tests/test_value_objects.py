"""Tests for the TimeRange value object."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shared.domain.value_objects import TimeRange


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 6, 1, hour, minute, tzinfo=timezone.utc)


def test_rejects_empty_or_inverted_range():
    with pytest.raises(ValueError):
        TimeRange(at(10), at(10))
    with pytest.raises(ValueError):
        TimeRange(at(11), at(10))


@pytest.mark.parametrize(
    "other, expected",
    [
        (TimeRange(at(9, 30), at(10, 30)), True),
        (TimeRange(at(10), at(11)), False),
        (TimeRange(at(8), at(9)), False),
        (TimeRange(at(8), at(12)), True),
        (TimeRange(at(9, 15), at(9, 45)), True),
    ],
)
def test_half_open_overlap(other, expected):
    booked = TimeRange(at(9), at(10))
    assert booked.overlaps_with(other) is expected
    assert other.overlaps_with(booked) is expected


def test_overlap_requires_time_range():
    with pytest.raises(TypeError):
        TimeRange(at(9), at(10)).overlaps_with((at(9), at(10)))


def test_contains_excludes_end():
    slot = TimeRange(at(9), at(10))
    assert slot.contains(at(9))
    assert not slot.contains(at(10))


def test_extended_pushes_end_only():
    slot = TimeRange(at(9), at(10)).extended(15)
    assert slot.start == at(9)
    assert slot.end == at(10, 15)
    assert slot.duration == timedelta(minutes=75)
    assert TimeRange(at(9), at(10)).extended(0) == TimeRange(at(9), at(10))
