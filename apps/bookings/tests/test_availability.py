"""Tests for the court availability calendar."""

from __future__ import annotations

from datetime import time
from unittest import mock

import pytest

from apps.bookings.exceptions import TransientStoreError
from apps.bookings.models import Reservation
from apps.bookings.services import BlockingEventIndex, SlotState, court_availability
from apps.venues.models import CourtEvent

from conftest import PLAY_DATE, manila

pytestmark = pytest.mark.django_db


def _states(availability):
    return {slot.start_time: slot.state for slot in availability.slots}


def test_default_hours_give_hourly_slots(court):
    availability = court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7))

    assert availability.opening_time == time(8)
    assert availability.closing_time == time(18)
    assert len(availability.slots) == 10
    assert all(slot.state == SlotState.AVAILABLE for slot in availability.slots)
    assert availability.daily_limit_reached is False


def test_venue_hours_are_used(venue, court):
    venue.opening_time = time(6)
    venue.closing_time = time(9)
    venue.save()

    availability = court_availability(court, "2024-06-01", now=manila(PLAY_DATE, 5))

    assert [slot.start_time for slot in availability.slots] == [time(6), time(7), time(8)]


def test_booked_slot_is_marked_mine_for_its_holder(player, other_player, court, make_reservation):
    make_reservation(player, court, time(9), time(10))
    make_reservation(other_player, court, time(14), time(15), status=Reservation.Status.CANCELLED)

    availability = court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7), player=player)
    states = _states(availability)
    mine = {slot.start_time for slot in availability.slots if slot.mine}

    assert states[time(9)] == SlotState.BOOKED
    assert states[time(14)] == SlotState.AVAILABLE
    assert mine == {time(9)}
    assert availability.daily_limit_reached is True

    as_other = court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7), player=other_player)
    assert not any(slot.mine for slot in as_other.slots)
    assert as_other.daily_limit_reached is False


def test_cleaning_buffer_blocks_following_slot(player, court, make_reservation):
    court.cleaning_time_minutes = 15
    court.save()
    make_reservation(player, court, time(9), time(10))

    states = _states(court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7)))

    assert states[time(8)] == SlotState.AVAILABLE
    assert states[time(10)] == SlotState.BOOKED
    assert states[time(11)] == SlotState.AVAILABLE


def test_blocking_event_marks_slots_blocked(owner, court):
    CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Resurfacing",
        start_at=manila(PLAY_DATE, 12),
        end_at=manila(PLAY_DATE, 13, 30),
    )
    CourtEvent.objects.create(
        court=court,
        owner=owner,
        title="Coaching clinic",
        start_at=manila(PLAY_DATE, 15),
        end_at=manila(PLAY_DATE, 16),
        blocks_bookings=False,
    )

    states = _states(court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7)))

    assert states[time(11)] == SlotState.AVAILABLE
    assert states[time(12)] == SlotState.BLOCKED
    assert states[time(13)] == SlotState.BLOCKED
    assert states[time(15)] == SlotState.AVAILABLE


def test_started_slots_are_past_unless_mine(player, court, make_reservation):
    make_reservation(player, court, time(9), time(10))

    states = _states(court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 10, 30), player=player))

    assert states[time(8)] == SlotState.PAST
    assert states[time(9)] == SlotState.BOOKED
    assert states[time(10)] == SlotState.PAST
    assert states[time(11)] == SlotState.AVAILABLE


def test_store_failure_blocks_everything(player, court):
    with mock.patch.object(BlockingEventIndex, "find_overlapping", side_effect=TransientStoreError()):
        availability = court_availability(court, PLAY_DATE, now=manila(PLAY_DATE, 7), player=player)

    assert all(slot.state == SlotState.BLOCKED for slot in availability.slots)
    assert availability.daily_limit_reached is True
