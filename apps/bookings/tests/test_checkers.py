"""Tests for the conflict checker, blocking events and the daily limit."""

from __future__ import annotations

from datetime import time, timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.test import override_settings

from apps.bookings.exceptions import (
    BlockingEventConflict,
    LimitReachedError,
    PendingCapReached,
    TimeOverlapConflict,
    TransientStoreError,
)
from apps.bookings.models import Reservation
from apps.bookings.services import BlockingEventIndex, ConflictChecker, ConflictResult, DailyLimitEnforcer
from apps.venues.models import Court, CourtEvent, Venue

from conftest import PLAY_DATE, manila

pytestmark = pytest.mark.django_db


def test_free_court_is_ok(court):
    assert ConflictChecker().check(court, PLAY_DATE, time(9), time(10)) is ConflictResult.OK


def test_overlapping_reservation_conflicts(player, court, make_reservation):
    make_reservation(player, court, time(9), time(10))

    assert ConflictChecker().check(court, PLAY_DATE, time(9, 30), time(10, 30)) is ConflictResult.TIME_OVERLAP
    assert ConflictChecker().check(court, "2024-06-01", time(8), time(12)) is ConflictResult.TIME_OVERLAP
    with pytest.raises(TimeOverlapConflict):
        ConflictChecker().ensure_available(court, PLAY_DATE, time(9, 30), time(10, 30))


def test_back_to_back_is_allowed(player, court, make_reservation):
    make_reservation(player, court, time(9), time(10))

    assert ConflictChecker().check(court, PLAY_DATE, time(10), time(11)) is ConflictResult.OK
    assert ConflictChecker().check(court, PLAY_DATE, time(8), time(9)) is ConflictResult.OK


def test_cancelled_and_completed_do_not_block(player, other_player, court, make_reservation):
    make_reservation(player, court, time(9), time(10), status=Reservation.Status.CANCELLED)
    make_reservation(other_player, court, time(11), time(12), status=Reservation.Status.COMPLETED)

    assert ConflictChecker().check(court, PLAY_DATE, time(9), time(10)) is ConflictResult.OK
    assert ConflictChecker().check(court, PLAY_DATE, time(11), time(12)) is ConflictResult.OK


def test_other_court_and_other_date_do_not_block(player, court, second_court, make_reservation):
    make_reservation(player, court, time(9), time(10))

    assert ConflictChecker().check(second_court, PLAY_DATE, time(9), time(10)) is ConflictResult.OK
    assert ConflictChecker().check(court, PLAY_DATE + timedelta(days=1), time(9), time(10)) is ConflictResult.OK


def test_excluded_reservation_is_ignored(player, court, make_reservation):
    existing = make_reservation(player, court, time(9), time(10))

    result = ConflictChecker().check(court, PLAY_DATE, time(9), time(10), exclude_reservation_id=existing.pk)
    assert result is ConflictResult.OK


def test_cleaning_buffer_blocks_following_slot(venue, player, make_reservation):
    court = Court.objects.create(venue=venue, name="Clay", cleaning_time_minutes=15)
    make_reservation(player, court, time(9), time(10))

    checker = ConflictChecker()
    assert checker.check(court, PLAY_DATE, time(10), time(11)) is ConflictResult.TIME_OVERLAP
    assert checker.check(court, PLAY_DATE, time(10, 15), time(11)) is ConflictResult.OK
    # Only the existing reservation's end is extended; ending at its start is fine
    assert checker.check(court, PLAY_DATE, time(8), time(9)) is ConflictResult.OK
    assert checker.check(court, PLAY_DATE, time(8), time(9, 1)) is ConflictResult.TIME_OVERLAP


def test_blocking_event_conflicts(owner, court):
    CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Resurfacing",
        start_at=manila(PLAY_DATE, 12),
        end_at=manila(PLAY_DATE, 14),
        event_type=CourtEvent.EventType.MAINTENANCE,
    )

    checker = ConflictChecker()
    assert checker.check(court, PLAY_DATE, time(13), time(15)) is ConflictResult.BLOCKING_EVENT
    assert checker.check(court, PLAY_DATE, time(14), time(15)) is ConflictResult.OK
    assert checker.check(court, PLAY_DATE, time(11), time(12)) is ConflictResult.OK
    with pytest.raises(BlockingEventConflict, match="Resurfacing"):
        checker.ensure_available(court, PLAY_DATE, time(11), time(13))


def test_non_blocking_event_is_ignored(owner, court):
    CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Open house",
        start_at=manila(PLAY_DATE, 12),
        end_at=manila(PLAY_DATE, 14),
        event_type=CourtEvent.EventType.OTHER,
        blocks_bookings=False,
    )

    assert not BlockingEventIndex().overlaps(court.pk, manila(PLAY_DATE, 12), manila(PLAY_DATE, 13))
    assert ConflictChecker().check(court, PLAY_DATE, time(12), time(13)) is ConflictResult.OK


def test_event_colour_defaults_from_type(owner, court):
    event = CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Deep clean",
        start_at=manila(PLAY_DATE, 6),
        end_at=manila(PLAY_DATE, 7),
        event_type=CourtEvent.EventType.CLEANING,
    )
    assert event.color == "#3b82f6"


def test_conflict_checker_fails_closed(court):
    with mock.patch.object(Reservation.objects, "filter", side_effect=DatabaseError("store down")):
        assert ConflictChecker().check(court, PLAY_DATE, time(9), time(10)) is ConflictResult.TIME_OVERLAP
        with pytest.raises(TransientStoreError) as excinfo:
            ConflictChecker().ensure_available(court, PLAY_DATE, time(9), time(10))
    assert excinfo.value.retryable is True


def test_blocking_event_index_fails_closed(court):
    with mock.patch.object(CourtEvent.objects, "filter", side_effect=DatabaseError("store down")):
        assert BlockingEventIndex().overlaps(court.pk, manila(PLAY_DATE, 9), manila(PLAY_DATE, 10)) is True
        with pytest.raises(TransientStoreError):
            BlockingEventIndex().find_overlapping(court.pk, manila(PLAY_DATE, 9), manila(PLAY_DATE, 10))


def test_daily_limit_counts_non_cancelled_rows_at_venue(player, court, second_court, make_reservation):
    limits = DailyLimitEnforcer()
    assert not limits.would_exceed(player.pk, PLAY_DATE, court.venue_id)

    make_reservation(player, court, time(9), time(10))
    assert limits.would_exceed(player.pk, "2024-06-01", court.venue_id)
    with pytest.raises(LimitReachedError):
        limits.ensure_within_limit(player.pk, PLAY_DATE, second_court.venue_id)

    # Next day is a new civil date
    assert not limits.would_exceed(player.pk, PLAY_DATE + timedelta(days=1), court.venue_id)


def test_daily_limit_ignores_cancelled_and_other_venues(owner, player, court, make_reservation):
    make_reservation(player, court, time(9), time(10), status=Reservation.Status.CANCELLED)
    other_venue = Venue.objects.create(owner=owner, name="Makati Courts")

    limits = DailyLimitEnforcer()
    assert not limits.would_exceed(player.pk, PLAY_DATE, court.venue_id)
    assert not limits.would_exceed(player.pk, PLAY_DATE, other_venue.pk)


def test_daily_limit_counts_completed(player, court, make_reservation):
    make_reservation(player, court, time(9), time(10), status=Reservation.Status.COMPLETED)
    assert DailyLimitEnforcer().would_exceed(player.pk, PLAY_DATE, court.venue_id)


def test_daily_limit_fails_closed(player, court):
    with mock.patch.object(Reservation.objects, "filter", side_effect=DatabaseError("store down")):
        assert DailyLimitEnforcer().would_exceed(player.pk, PLAY_DATE, court.venue_id) is True
        with pytest.raises(TransientStoreError):
            DailyLimitEnforcer().ensure_within_limit(player.pk, PLAY_DATE, court.venue_id)


def test_pending_cap(owner, player, make_reservation):
    for index in range(3):
        venue = Venue.objects.create(owner=owner, name=f"Venue {index}")
        court = Court.objects.create(venue=venue, name="Court")
        make_reservation(player, court, time(9), time(10))

    with override_settings(BOOKING_ENGINE={"MAX_PENDING_PER_PLAYER": 3}):
        with pytest.raises(PendingCapReached):
            DailyLimitEnforcer().ensure_pending_cap(player.pk)
    with override_settings(BOOKING_ENGINE={"MAX_PENDING_PER_PLAYER": None}):
        DailyLimitEnforcer().ensure_pending_cap(player.pk)
    DailyLimitEnforcer().ensure_pending_cap(player.pk)
