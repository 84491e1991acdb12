"""
Reservation Domain Events

Events that represent things that have happened to a reservation.
They are published after the transaction that produced them commits;
notifications, rewards and analytics subscribe to them.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class ReservationCreated(DomainEvent):
    """
    Event: A reservation was created (pending or auto-confirmed)

    Triggers:
    - Notify the player that the request was received
    - Notify the venue owner of a new request
    """
    reservation_id: int
    player_id: int
    court_id: int
    venue_id: int
    date: date
    start_time: time
    end_time: time
    status: str


@dataclass(kw_only=True)
class ReservationConfirmed(DomainEvent):
    """Event: The owner confirmed a pending reservation (pending -> confirmed)"""
    reservation_id: int
    player_id: int
    court_id: int


@dataclass(kw_only=True)
class ReservationCheckedIn(DomainEvent):
    """Event: The player arrived and the owner recorded attendance"""
    reservation_id: int
    player_id: int
    court_id: int
    checked_in_at: datetime


@dataclass(kw_only=True)
class ReservationCompleted(DomainEvent):
    """
    Event: The reservation was played out (confirmed -> completed)

    Triggers:
    - Award points to the player
    """
    reservation_id: int
    player_id: int
    court_id: int


@dataclass(kw_only=True)
class ReservationCancelled(DomainEvent):
    """
    Event: A reservation was cancelled

    The slot is free again as soon as this is published.
    """
    reservation_id: int
    player_id: int
    court_id: int
    previous_status: str
    reason: str
    actor: str
    note: Optional[str] = None
