"""Domain services for reservation checks.

The checkers come in two flavours. The boolean/result methods
(``overlaps``, ``check``, ``would_exceed``) fail closed: if the store
cannot answer they report the slot as unavailable. The ``ensure_*``
methods used inside the booking transaction raise instead, so the caller
can tell a real conflict from a retryable store failure.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable

from django.db import DatabaseError, transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.venues.models import Court, CourtEvent
from shared.domain.value_objects import TimeRange

from .conf import get_setting, get_time_setting
from .domain.time_boundary import local_instant, local_range, parse_civil_date
from .exceptions import (
    BlockingEventConflict,
    LimitReachedError,
    PendingCapReached,
    TimeOverlapConflict,
    TransientStoreError,
)
from .models import Reservation

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class ConflictResult(enum.Enum):
    OK = "ok"
    TIME_OVERLAP = "time_overlap"
    BLOCKING_EVENT = "blocking_event"


class BlockingEventIndex:
    """Answers whether owner-declared court events block an interval."""

    def find_overlapping(self, court_id: int, start: datetime, end: datetime) -> list[CourtEvent]:
        """Return blocking events overlapping ``[start, end)``.

        Raises ``TransientStoreError`` when the lookup fails.
        """

        try:
            return list(
                CourtEvent.objects.filter(
                    court_id=court_id,
                    blocks_bookings=True,
                    start_at__lt=end,
                    end_at__gt=start,
                ).order_by("start_at")
            )
        except DatabaseError as exc:
            logger.error(f"Court event lookup failed for court {court_id}: {exc}", exc_info=True)
            raise TransientStoreError() from exc

    def overlaps(self, court_id: int, start: datetime, end: datetime) -> bool:
        try:
            return bool(self.find_overlapping(court_id, start, end))
        except TransientStoreError:
            return True


class ConflictChecker:
    """Checks a requested interval against a court's reservations and events."""

    def __init__(self, event_index: BlockingEventIndex | None = None):
        self.event_index = event_index or BlockingEventIndex()

    def find_overlapping_reservations(
        self,
        court: Court,
        day,
        start_time: time,
        end_time: time,
        *,
        exclude_reservation_id: int | None = None,
    ) -> list[Reservation]:
        """Active reservations on the court whose interval (plus cleaning buffer) overlaps.

        Raises ``TransientStoreError`` when the lookup fails.
        """

        day = parse_civil_date(day)
        requested = local_range(day, start_time, end_time)
        buffer_minutes = court.cleaning_time_minutes or 0

        try:
            queryset = Reservation.objects.filter(
                court_id=court.pk,
                date=day,
                status__in=Reservation.BLOCKING_STATUSES,
            )
            if exclude_reservation_id is not None:
                queryset = queryset.exclude(pk=exclude_reservation_id)
            existing = list(_lock_queryset_if_possible(queryset))
        except DatabaseError as exc:
            logger.error(f"Reservation lookup failed for court {court.pk} on {day}: {exc}", exc_info=True)
            raise TransientStoreError() from exc

        return [
            reservation
            for reservation in existing
            if _intervals_clash(reservation.time_range, requested, buffer_minutes)
        ]

    def check(
        self,
        court: Court,
        day,
        start_time: time,
        end_time: time,
        *,
        exclude_reservation_id: int | None = None,
    ) -> ConflictResult:
        try:
            overlapping = self.find_overlapping_reservations(
                court,
                day,
                start_time,
                end_time,
                exclude_reservation_id=exclude_reservation_id,
            )
        except TransientStoreError:
            return ConflictResult.TIME_OVERLAP
        if overlapping:
            return ConflictResult.TIME_OVERLAP

        requested = local_range(parse_civil_date(day), start_time, end_time)
        if self.event_index.overlaps(court.pk, requested.start, requested.end):
            return ConflictResult.BLOCKING_EVENT
        return ConflictResult.OK

    def ensure_available(
        self,
        court: Court,
        day,
        start_time: time,
        end_time: time,
        *,
        exclude_reservation_id: int | None = None,
    ) -> None:
        overlapping = self.find_overlapping_reservations(
            court,
            day,
            start_time,
            end_time,
            exclude_reservation_id=exclude_reservation_id,
        )
        if overlapping:
            raise TimeOverlapConflict()

        requested = local_range(parse_civil_date(day), start_time, end_time)
        events = self.event_index.find_overlapping(court.pk, requested.start, requested.end)
        if events:
            raise BlockingEventConflict(
                f"The court is closed for \"{events[0].title}\" during the requested time."
            )


def _intervals_clash(existing, requested, buffer_minutes: int) -> bool:
    # Cleaning buffer trails the existing reservation only
    return existing.extended(buffer_minutes).overlaps_with(requested)


class DailyLimitEnforcer:
    """One non-cancelled reservation per player per venue per civil date."""

    limit = 1

    def count_active(self, player_id: int, day, venue_id: int) -> int:
        try:
            return Reservation.objects.filter(
                player_id=player_id,
                venue_id=venue_id,
                date=parse_civil_date(day),
                status__in=Reservation.ACTIVE_STATUSES,
            ).count()
        except DatabaseError as exc:
            logger.error(f"Daily limit lookup failed for player {player_id}: {exc}", exc_info=True)
            raise TransientStoreError() from exc

    def would_exceed(self, player_id: int, day, venue_id: int) -> bool:
        try:
            return self.count_active(player_id, day, venue_id) >= self.limit
        except TransientStoreError:
            return True

    def ensure_within_limit(self, player_id: int, day, venue_id: int) -> None:
        if self.count_active(player_id, day, venue_id) >= self.limit:
            raise LimitReachedError()

    def ensure_pending_cap(self, player_id: int) -> None:
        cap = get_setting("MAX_PENDING_PER_PLAYER")
        if cap is None:
            return
        try:
            pending = Reservation.objects.filter(
                player_id=player_id,
                status=Reservation.Status.PENDING,
            ).count()
        except DatabaseError as exc:
            logger.error(f"Pending count failed for player {player_id}: {exc}", exc_info=True)
            raise TransientStoreError() from exc
        if pending >= cap:
            raise PendingCapReached(f"You already have {pending} pending reservations (maximum {cap}).")


class SlotState(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED = "blocked"
    PAST = "past"


@dataclass
class Slot:
    start_time: time
    end_time: time
    state: SlotState
    mine: bool = False


@dataclass
class CourtAvailability:
    court_id: int
    date: date
    opening_time: time
    closing_time: time
    slots: list[Slot] = field(default_factory=list)
    daily_limit_reached: bool = False


def venue_hours(venue) -> tuple[time, time]:
    opening = venue.opening_time or get_time_setting("DEFAULT_OPENING_TIME")
    closing = venue.closing_time or get_time_setting("DEFAULT_CLOSING_TIME")
    return opening, closing


def _slot_bounds(day: date, opening: time, closing: time, step_minutes: int) -> Iterable[tuple[datetime, datetime]]:
    cursor = local_instant(day, opening)
    closes_at = local_instant(day, closing)
    step = timedelta(minutes=step_minutes)
    while cursor + step <= closes_at:
        yield cursor, cursor + step
        cursor += step


def court_availability(court: Court, day, *, now: datetime, player=None) -> CourtAvailability:
    """Slot map of a court for one civil date.

    A store failure marks every open slot as blocked and the daily limit as
    reached.
    """

    day = parse_civil_date(day)
    opening, closing = venue_hours(court.venue)
    availability = CourtAvailability(
        court_id=court.pk,
        date=day,
        opening_time=opening,
        closing_time=closing,
    )
    player_id = getattr(player, "pk", None)
    buffer_minutes = court.cleaning_time_minutes or 0

    store_failed = False
    try:
        reservations = list(
            Reservation.objects.filter(
                court_id=court.pk,
                date=day,
                status__in=Reservation.BLOCKING_STATUSES,
            )
        )
    except DatabaseError as exc:
        logger.error(f"Availability lookup failed for court {court.pk} on {day}: {exc}", exc_info=True)
        reservations = []
        store_failed = True

    index = BlockingEventIndex()
    day_start = local_instant(day, time.min)
    try:
        events = index.find_overlapping(court.pk, day_start, day_start + timedelta(days=1))
    except TransientStoreError:
        events = []
        store_failed = True

    for start, end in _slot_bounds(day, opening, closing, get_setting("SLOT_MINUTES")):
        slot_range = TimeRange(start, end)
        state = SlotState.AVAILABLE
        holders = [
            reservation
            for reservation in reservations
            if _intervals_clash(reservation.time_range, slot_range, buffer_minutes)
        ]
        mine = player_id is not None and any(
            reservation.player_id == player_id and reservation.time_range.overlaps_with(slot_range)
            for reservation in holders
        )
        if store_failed or any(event.start_at < end and start < event.end_at for event in events):
            state = SlotState.BLOCKED
        elif holders:
            state = SlotState.BOOKED
        if not mine and start <= now:
            state = SlotState.PAST
        availability.slots.append(Slot(start_time=start.time(), end_time=end.time(), state=state, mine=mine))

    if player_id is not None:
        availability.daily_limit_reached = store_failed or DailyLimitEnforcer().would_exceed(
            player_id, day, court.venue_id
        )
    return availability
