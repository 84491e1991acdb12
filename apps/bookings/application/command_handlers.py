"""
Reservation Command Handlers

These are the use cases of the booking engine. Each one runs inside a
DjangoUnitOfWork, so its checks and writes share one transaction and its
domain events are published only after commit.

Commands:
- RequestBookingCommand: Create a reservation for a player
- CancelBookingCommand: Cancel a reservation (holder, owner or system)
- ConfirmBookingCommand: Owner confirmation of a pending reservation
- CheckInBookingCommand: Record that the player arrived
- CompleteBookingCommand: Mark a played reservation as completed
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError
from django.utils import timezone

from apps.bookings.conf import get_setting
from apps.bookings.domain.lifecycle import Actor, ReservationLifecycle
from apps.bookings.domain.time_boundary import local_instant, parse_civil_date
from apps.bookings.exceptions import (
    BookingError,
    BookingValidationError,
    InvalidTransitionError,
    LimitReachedError,
    ReservationNotFound,
    TimeOverlapConflict,
    TransientStoreError,
)
from apps.bookings.models import Reservation
from apps.bookings.services import (
    ConflictChecker,
    DailyLimitEnforcer,
    _lock_queryset_if_possible,
)
from apps.venues.models import Court
from shared.application.uow import DjangoUnitOfWork

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class RequestBookingCommand:
    """
    Command to request a reservation

    date, start_time and end_time are local to the booking timezone.
    """
    player: Any
    court_id: int
    date: date
    start_time: time
    end_time: time
    source: str = Reservation.Source.API
    actor: str = Actor.HOLDER
    now: Optional[datetime] = None


@dataclass
class CancelBookingCommand:
    """Command to cancel a reservation"""
    reservation_id: int
    actor: str
    reason: Optional[str] = None
    note: str = ''
    now: Optional[datetime] = None


@dataclass
class ConfirmBookingCommand:
    """Command to confirm a pending reservation"""
    reservation_id: int
    now: Optional[datetime] = None


@dataclass
class CheckInBookingCommand:
    """Command to check in the player"""
    reservation_id: int
    now: Optional[datetime] = None


@dataclass
class CompleteBookingCommand:
    """Command to complete a played reservation"""
    reservation_id: int
    actor: str = Actor.OWNER
    now: Optional[datetime] = None


# ===== Command Handlers =====

class RequestBookingHandler:
    """
    Handler for RequestBooking command

    Strategy:
    1. Validate the request (court exists, interval sane, not in the past,
       within opening hours)
    2. Start database transaction (atomic)
    3. Lock the player row, then the court row (SELECT FOR UPDATE)
    4. Check the daily limit and the pending cap
    5. Check reservation overlap and blocking events
    6. Insert through the lifecycle
    7. Commit; events are published after commit
    8. Partial unique constraints on the reservation table as final guard
    """

    def __init__(self, conflicts: ConflictChecker = None, limits: DailyLimitEnforcer = None):
        self.conflicts = conflicts or ConflictChecker()
        self.limits = limits or DailyLimitEnforcer()

    def handle(self, command: RequestBookingCommand) -> Reservation:
        """
        Handle a reservation request

        Returns: The created Reservation

        Raises:
            BookingValidationError: malformed request
            LimitReachedError: daily limit or pending cap reached
            TimeOverlapConflict, BlockingEventConflict: slot not free
            TransientStoreError: the store failed; nothing was written
        """
        now = command.now or timezone.now()
        player = command.player
        day = _parse_date(command.date)
        start_time = _parse_time(command.start_time, 'start_time')
        end_time = _parse_time(command.end_time, 'end_time')

        logger.info(
            f"Booking request: player {player.pk}, court {command.court_id}, "
            f"{day} {start_time:%H:%M}-{end_time:%H:%M}"
        )

        court = self._load_court(command.court_id)
        self._validate_interval(court, day, start_time, end_time, now)

        try:
            with DjangoUnitOfWork() as uow:
                self._lock_player_and_court(player.pk, court.pk)

                self.limits.ensure_within_limit(player.pk, day, court.venue_id)
                self.limits.ensure_pending_cap(player.pk)
                self.conflicts.ensure_available(court, day, start_time, end_time)

                lifecycle = ReservationLifecycle.create(
                    player=player,
                    court=court,
                    date=day,
                    start_time=start_time,
                    end_time=end_time,
                    auto_confirm=_auto_confirm(court.venue),
                    now=now,
                    source=command.source,
                    actor=command.actor,
                )
                uow.collect_events(lifecycle)
        except IntegrityError as exc:
            error = _translate_integrity_error(exc)
            logger.warning(f"Booking insert rejected by storage constraint: {exc}")
            raise error from exc
        except BookingError as exc:
            logger.info(f"Booking request rejected ({exc.code}): {exc}")
            raise
        except DatabaseError as exc:
            logger.error(f"Booking request failed on store error: {exc}", exc_info=True)
            raise TransientStoreError() from exc

        reservation = lifecycle.reservation
        logger.info(
            f"Reservation {reservation.booking_code} created as {reservation.status} "
            f"for player {player.pk} on court {court.pk}"
        )
        return reservation

    def _load_court(self, court_id) -> Court:
        try:
            return Court.objects.select_related('venue').get(
                pk=court_id,
                is_active=True,
                venue__is_active=True,
            )
        except (Court.DoesNotExist, ValueError, TypeError):
            raise BookingValidationError(f"Court {court_id} does not exist or is not bookable.")
        except DatabaseError as exc:
            logger.error(f"Court lookup failed for {court_id}: {exc}", exc_info=True)
            raise TransientStoreError() from exc

    def _validate_interval(self, court: Court, day: date, start_time: time, end_time: time, now: datetime):
        if start_time >= end_time:
            raise BookingValidationError("End time must be after start time.")

        if local_instant(day, start_time) <= now:
            raise BookingValidationError("Cannot book a time slot in the past.")

        venue = court.venue
        if venue.opening_time and start_time < venue.opening_time:
            raise BookingValidationError(
                f"{venue.name} opens at {venue.opening_time:%H:%M}."
            )
        if venue.closing_time and end_time > venue.closing_time:
            raise BookingValidationError(
                f"{venue.name} closes at {venue.closing_time:%H:%M}."
            )

    def _lock_player_and_court(self, player_id, court_id):
        # Player first, then court; every writer takes them in this order
        user_model = get_user_model()
        list(_lock_queryset_if_possible(user_model.objects.filter(pk=player_id)).values_list('pk', flat=True))
        list(_lock_queryset_if_possible(Court.objects.filter(pk=court_id)).values_list('pk', flat=True))


class ReservationTransitionHandler:
    """
    Base handler for commands that move an existing reservation

    Loads the row under a lock, applies one lifecycle transition and
    publishes the resulting events after commit.
    """

    def handle(self, command) -> Reservation:
        now = command.now or timezone.now()
        try:
            with DjangoUnitOfWork() as uow:
                reservation = _load_for_update(command.reservation_id)
                lifecycle = ReservationLifecycle(reservation)
                self.apply(lifecycle, command, now)
                uow.collect_events(lifecycle)
        except InvalidTransitionError as exc:
            logger.warning(f"Reservation {command.reservation_id}: {exc}")
            raise
        except BookingError:
            raise
        except DatabaseError as exc:
            logger.error(
                f"Reservation {command.reservation_id} update failed on store error: {exc}",
                exc_info=True,
            )
            raise TransientStoreError() from exc
        return lifecycle.reservation

    def apply(self, lifecycle: ReservationLifecycle, command, now: datetime):
        raise NotImplementedError


class CancelBookingHandler(ReservationTransitionHandler):
    def apply(self, lifecycle, command: CancelBookingCommand, now):
        lifecycle.cancel(actor=command.actor, reason=command.reason, note=command.note, now=now)


class ConfirmBookingHandler(ReservationTransitionHandler):
    def apply(self, lifecycle, command: ConfirmBookingCommand, now):
        lifecycle.confirm(now=now)


class CheckInBookingHandler(ReservationTransitionHandler):
    def apply(self, lifecycle, command: CheckInBookingCommand, now):
        lifecycle.check_in(now=now)


class CompleteBookingHandler(ReservationTransitionHandler):
    def apply(self, lifecycle, command: CompleteBookingCommand, now):
        lifecycle.complete(actor=command.actor, now=now)


# ===== Helpers =====

def _load_for_update(reservation_id) -> Reservation:
    try:
        return _lock_queryset_if_possible(Reservation.objects.filter(pk=reservation_id)).get()
    except (Reservation.DoesNotExist, ValueError, TypeError):
        raise ReservationNotFound(f"Reservation {reservation_id} not found.")


def _auto_confirm(venue) -> bool:
    if venue.auto_confirm_bookings is not None:
        return venue.auto_confirm_bookings
    return bool(get_setting('AUTO_CONFIRM'))


def _parse_date(value) -> date:
    try:
        return parse_civil_date(value)
    except (TypeError, ValueError):
        raise BookingValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD.")


def _parse_time(value, name: str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise BookingValidationError(f"Invalid {name} {value!r}; expected HH:MM.")


def _translate_integrity_error(exc: IntegrityError) -> BookingError:
    """
    Map a constraint violation on insert to the engine's error

    PostgreSQL names the constraint; SQLite lists the columns.
    """
    message = str(exc)
    if 'reservation_unique_player_venue_day' in message or 'player_id' in message:
        return LimitReachedError()
    if 'reservation_unique_active_court_slot' in message or 'court_id' in message:
        return TimeOverlapConflict()
    if 'reservation_valid_times' in message:
        return BookingValidationError("End time must be after start time.")
    # booking_code collision or anything else: safe to retry
    return TransientStoreError()


# ===== Public API =====

def request_booking(
    player, court_id, date, start_time, end_time, *, now=None, source=Reservation.Source.API, actor=Actor.HOLDER,
) -> Reservation:
    return RequestBookingHandler().handle(RequestBookingCommand(
        player=player,
        court_id=court_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        source=source,
        actor=actor,
        now=now,
    ))


def cancel_booking(reservation_id, actor, reason=None, *, note='', now=None) -> Reservation:
    return CancelBookingHandler().handle(CancelBookingCommand(
        reservation_id=reservation_id,
        actor=actor,
        reason=reason,
        note=note,
        now=now,
    ))


def confirm_booking(reservation_id, *, now=None) -> Reservation:
    return ConfirmBookingHandler().handle(ConfirmBookingCommand(reservation_id=reservation_id, now=now))


def check_in_booking(reservation_id, *, now=None) -> Reservation:
    return CheckInBookingHandler().handle(CheckInBookingCommand(reservation_id=reservation_id, now=now))


def complete_booking(reservation_id, *, actor=Actor.OWNER, now=None) -> Reservation:
    return CompleteBookingHandler().handle(CompleteBookingCommand(
        reservation_id=reservation_id,
        actor=actor,
        now=now,
    ))
