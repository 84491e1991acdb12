"""Tests for the reservation commands and the end-to-end booking flow."""

from __future__ import annotations

from datetime import time
from unittest import mock

import pytest
from django.db import DatabaseError

from apps.bookings.application.command_handlers import (
    cancel_booking,
    check_in_booking,
    complete_booking,
    confirm_booking,
    request_booking,
)
from apps.bookings.application.sweeper import sweep_no_shows
from apps.bookings.domain.events import ReservationCancelled, ReservationCreated
from apps.bookings.domain.lifecycle import Actor
from apps.bookings.exceptions import (
    BlockingEventConflict,
    BookingValidationError,
    InvalidTransitionError,
    LimitReachedError,
    ReservationNotFound,
    TimeOverlapConflict,
    TransientStoreError,
)
from apps.bookings.models import Reservation
from apps.bookings.services import ConflictChecker, DailyLimitEnforcer
from apps.venues.models import Court, CourtEvent
from shared.application.message_bus import message_bus

from conftest import PLAY_DATE, manila

pytestmark = pytest.mark.django_db

Status = Reservation.Status
EARLY = manila(PLAY_DATE, 7)


def test_request_creates_pending_reservation(player, court):
    reservation = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    assert reservation.status == Status.PENDING
    assert reservation.venue_id == court.venue_id
    assert reservation.transitions.count() == 1


def test_request_accepts_iso_strings(player, court):
    reservation = request_booking(player, court.pk, "2024-06-01", "09:00", "10:00", now=EARLY)
    assert reservation.start_time == time(9)


def test_venue_auto_confirm(player, court):
    court.venue.auto_confirm_bookings = True
    court.venue.save()

    reservation = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    assert reservation.status == Status.CONFIRMED
    assert reservation.confirmed_at == EARLY


@pytest.mark.parametrize(
    "start, end",
    [
        (time(10), time(9)),
        (time(10), time(10)),
        (time(6), time(7)),
    ],
)
def test_invalid_intervals_are_rejected(player, court, start, end):
    with pytest.raises(BookingValidationError):
        request_booking(player, court.pk, PLAY_DATE, start, end, now=EARLY)
    assert not Reservation.objects.exists()


def test_opening_hours_are_enforced(player, court):
    venue = court.venue
    venue.opening_time = time(8)
    venue.closing_time = time(20)
    venue.save()

    with pytest.raises(BookingValidationError, match="opens at 08:00"):
        request_booking(player, court.pk, PLAY_DATE, time(7, 30), time(8, 30), now=manila(PLAY_DATE, 6))
    with pytest.raises(BookingValidationError, match="closes at 20:00"):
        request_booking(player, court.pk, PLAY_DATE, time(19, 30), time(20, 30), now=manila(PLAY_DATE, 6))


def test_unknown_or_inactive_court_is_rejected(player, venue):
    inactive = Court.objects.create(venue=venue, name="Closed", is_active=False)

    with pytest.raises(BookingValidationError):
        request_booking(player, 999999, PLAY_DATE, time(9), time(10), now=EARLY)
    with pytest.raises(BookingValidationError):
        request_booking(player, inactive.pk, PLAY_DATE, time(9), time(10), now=EARLY)


def test_blocking_event_rejects_request(owner, player, court):
    CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Tournament",
        start_at=manila(PLAY_DATE, 8),
        end_at=manila(PLAY_DATE, 12),
        event_type=CourtEvent.EventType.PRIVATE_EVENT,
    )

    with pytest.raises(BlockingEventConflict):
        request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)


def test_store_failure_is_retryable_and_writes_nothing(player, court):
    with mock.patch.object(Reservation.objects, "filter", side_effect=DatabaseError("store down")):
        with pytest.raises(TransientStoreError) as excinfo:
            request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    assert excinfo.value.retryable
    assert not Reservation.objects.exists()


def test_court_slot_constraint_is_translated(player, other_player, court):
    request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    # Simulates a racing request that passed the checks before the first insert was visible
    with mock.patch.object(ConflictChecker, "ensure_available"):
        with pytest.raises(TimeOverlapConflict):
            request_booking(other_player, court.pk, PLAY_DATE, time(9), time(11), now=EARLY)

    assert Reservation.objects.count() == 1


def test_daily_limit_constraint_is_translated(player, court, second_court):
    request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    with mock.patch.object(DailyLimitEnforcer, "ensure_within_limit"):
        with pytest.raises(LimitReachedError):
            request_booking(player, second_court.pk, PLAY_DATE, time(11), time(12), now=EARLY)

    assert Reservation.objects.count() == 1


def test_events_are_published_after_commit(player, court, django_capture_on_commit_callbacks):
    received = []

    def capture(event):
        received.append(event)

    message_bus.register_event_handler(ReservationCreated, capture)
    message_bus.register_event_handler(ReservationCancelled, capture)
    try:
        with django_capture_on_commit_callbacks(execute=True):
            reservation = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)
        assert [type(event) for event in received] == [ReservationCreated]
        assert received[0].reservation_id == reservation.pk

        with django_capture_on_commit_callbacks(execute=True):
            cancel_booking(reservation.pk, Actor.HOLDER, now=EARLY)
        assert isinstance(received[-1], ReservationCancelled)
        assert received[-1].to_dict()["reason"] == "user_cancelled"
    finally:
        message_bus._event_handlers[ReservationCreated].remove(capture)
        message_bus._event_handlers[ReservationCancelled].remove(capture)


def test_rejected_request_publishes_nothing(player, other_player, court, django_capture_on_commit_callbacks):
    request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    with django_capture_on_commit_callbacks() as callbacks:
        with pytest.raises(TimeOverlapConflict):
            request_booking(other_player, court.pk, PLAY_DATE, time(9, 30), time(10, 30), now=EARLY)

    assert callbacks == []


def test_owner_confirm_then_check_in_and_complete(player, court):
    reservation = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)

    confirm_booking(reservation.pk, now=manila(PLAY_DATE, 7, 30))
    check_in_booking(reservation.pk, now=manila(PLAY_DATE, 8, 50))
    reservation = complete_booking(reservation.pk, now=manila(PLAY_DATE, 10, 5))

    assert reservation.status == Status.COMPLETED
    assert list(reservation.transitions.values_list("to_status", flat=True)) == [
        Status.PENDING,
        Status.CONFIRMED,
        Status.COMPLETED,
    ]


def test_cancel_unknown_reservation(player):
    with pytest.raises(ReservationNotFound):
        cancel_booking(424242, Actor.HOLDER)


def test_second_cancel_is_rejected(player, court):
    reservation = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=EARLY)
    cancel_booking(reservation.pk, Actor.OWNER, now=EARLY)

    with pytest.raises(InvalidTransitionError):
        cancel_booking(reservation.pk, Actor.HOLDER, now=EARLY)

    reservation.refresh_from_db()
    assert reservation.cancellation_reason == Reservation.CancellationReason.OWNER_CANCELLED


def test_end_to_end_no_show_frees_the_slot(player, other_player, court, second_court):
    first = request_booking(player, court.pk, PLAY_DATE, time(9), time(10), now=manila(PLAY_DATE, 8))
    assert first.status == Status.PENDING

    with pytest.raises(LimitReachedError):
        request_booking(player, second_court.pk, PLAY_DATE, time(9), time(10), now=manila(PLAY_DATE, 8))

    with pytest.raises(TimeOverlapConflict):
        request_booking(other_player, court.pk, PLAY_DATE, time(9, 30), time(10, 30), now=manila(PLAY_DATE, 8))

    report = sweep_no_shows(manila(PLAY_DATE, 9, 16))
    assert report.processed == 1
    first.refresh_from_db()
    assert first.status == Status.CANCELLED
    assert first.cancellation_reason == Reservation.CancellationReason.AUTO_CANCELLED_NO_SHOW

    second = request_booking(
        other_player, court.pk, PLAY_DATE, time(9, 30), time(10, 30), now=manila(PLAY_DATE, 9, 20)
    )
    assert second.status == Status.PENDING

    # The cancelled reservation no longer counts towards the player's limit
    third = request_booking(player, second_court.pk, PLAY_DATE, time(11), time(12), now=manila(PLAY_DATE, 9, 20))
    assert third.status == Status.PENDING
