"""Shared fixtures for booking engine tests."""

from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from apps.bookings.models import Reservation
from apps.users.models import User
from apps.venues.models import Court, Venue

MANILA = ZoneInfo("Asia/Manila")
PLAY_DATE = date(2024, 6, 1)


def manila(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=MANILA)


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        email="owner@example.com",
        password="OwnerPass123",
        role=User.RoleChoices.COURT_OWNER,
    )


@pytest.fixture
def player(db):
    return User.objects.create_user(email="p1@example.com", password="PlayerPass123")


@pytest.fixture
def other_player(db):
    return User.objects.create_user(email="p2@example.com", password="PlayerPass123")


@pytest.fixture
def venue(owner):
    return Venue.objects.create(owner=owner, name="Rizal Courts", city="Manila")


@pytest.fixture
def court(venue):
    return Court.objects.create(venue=venue, name="Court 1")


@pytest.fixture
def second_court(venue):
    return Court.objects.create(venue=venue, name="Court 2")


@pytest.fixture
def make_reservation():
    """Insert a reservation row directly, bypassing the checks."""

    def _make(player, court, start: time, end: time, *, day: date = PLAY_DATE, status=Reservation.Status.PENDING, **extra):
        return Reservation.objects.create(
            player=player,
            court=court,
            venue=court.venue,
            date=day,
            start_time=start,
            end_time=end,
            status=status,
            **extra,
        )

    return _make
