"""
Reservation Lifecycle

The state machine that owns Reservation.status. Nothing else in the code
base assigns a status: the model's save() rejects status changes that did
not come through here.

State transitions:
- (new) -> PENDING (venue requires owner confirmation)
- (new) -> CONFIRMED (venue auto-confirms)
- PENDING -> CONFIRMED (owner confirmation or check-in)
- PENDING -> CANCELLED (holder, owner or the no-show sweep)
- CONFIRMED -> COMPLETED (after check-in, once the interval has elapsed)
- CONFIRMED -> CANCELLED (holder up to the cutoff, owner any time)

CANCELLED and COMPLETED are terminal.
"""

from datetime import datetime, timedelta
import logging

from apps.bookings.conf import get_setting
from apps.bookings.domain.events import (
    ReservationCancelled,
    ReservationCheckedIn,
    ReservationCompleted,
    ReservationConfirmed,
    ReservationCreated,
)
from apps.bookings.domain.time_boundary import local_date
from apps.bookings.exceptions import (
    BookingValidationError,
    CancellationWindowClosed,
    InvalidTransitionError,
)
from apps.bookings.models import Reservation, ReservationTransition
from shared.domain.base import EventRecorder

logger = logging.getLogger(__name__)

Status = Reservation.Status
Reason = Reservation.CancellationReason
Actor = ReservationTransition.Actor

# Keyed by plain values: enum members hash by name, not by value
ALLOWED_TRANSITIONS = {
    Status.PENDING.value: {Status.CONFIRMED.value, Status.CANCELLED.value},
    Status.CONFIRMED.value: {Status.COMPLETED.value, Status.CANCELLED.value},
    Status.CANCELLED.value: set(),
    Status.COMPLETED.value: set(),
}

# Each actor may only cancel with its own reason tag
REASON_BY_ACTOR = {
    Actor.HOLDER.value: Reason.USER_CANCELLED.value,
    Actor.OWNER.value: Reason.OWNER_CANCELLED.value,
    Actor.SYSTEM.value: Reason.AUTO_CANCELLED_NO_SHOW.value,
}


def _plain(value) -> str:
    return getattr(value, 'value', value)


def can_transition(from_status: str, to_status: str) -> bool:
    return _plain(to_status) in ALLOWED_TRANSITIONS.get(_plain(from_status), set())


class ReservationLifecycle(EventRecorder):
    """
    Wraps one Reservation row and applies lifecycle transitions to it

    Must be used inside the caller's transaction (DjangoUnitOfWork); the
    recorded events are drained by uow.collect_events(lifecycle).
    """

    def __init__(self, reservation: Reservation):
        super().__init__()
        self.reservation = reservation

    @classmethod
    def create(
        cls,
        *,
        player,
        court,
        date,
        start_time,
        end_time,
        auto_confirm: bool,
        now: datetime,
        source: str = Reservation.Source.API,
        actor: str = Actor.HOLDER,
    ) -> 'ReservationLifecycle':
        """
        Insert a new reservation as PENDING, or CONFIRMED when auto-confirmed

        actor is who asked for it: the holder, or an owner booking on a
        player's behalf.

        Storage constraints are checked on insert; an IntegrityError
        propagates to the caller unchanged.
        """
        status = Status.CONFIRMED if auto_confirm else Status.PENDING
        reservation = Reservation(
            player=player,
            court=court,
            venue_id=court.venue_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            source=source,
            confirmed_at=now if auto_confirm else None,
        )
        reservation.save()

        lifecycle = cls(reservation)
        lifecycle._record_transition('', status, actor=actor, now=now)
        lifecycle.add_event(ReservationCreated(
            aggregate_id=reservation.pk,
            reservation_id=reservation.pk,
            player_id=reservation.player_id,
            court_id=reservation.court_id,
            venue_id=reservation.venue_id,
            date=reservation.date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            status=status,
        ))
        return lifecycle

    def confirm(self, *, now: datetime, actor: str = Actor.OWNER) -> Reservation:
        """Owner confirmation (PENDING -> CONFIRMED)"""
        self._ensure_allowed(Status.CONFIRMED)
        reservation = self.reservation
        reservation.confirmed_at = now
        self._apply(Status.CONFIRMED, actor=actor, now=now, update_fields=['confirmed_at'])
        self.add_event(ReservationConfirmed(
            aggregate_id=reservation.pk,
            reservation_id=reservation.pk,
            player_id=reservation.player_id,
            court_id=reservation.court_id,
        ))
        return reservation

    def check_in(self, *, now: datetime, actor: str = Actor.OWNER) -> Reservation:
        """
        Record that the player arrived

        A pending reservation is confirmed at the same time. Check-in is
        only possible on the reservation's date and before it ends.
        """
        reservation = self.reservation
        if reservation.is_terminal:
            raise InvalidTransitionError(
                f"Cannot check in a {reservation.status} reservation."
            )
        if reservation.checked_in_at is not None:
            raise InvalidTransitionError("Reservation is already checked in.")
        if local_date(now) != reservation.date or now >= reservation.ends_at:
            raise BookingValidationError("Check-in is only possible during the reservation's day and before it ends.")

        reservation.checked_in_at = now
        if reservation.status == Status.PENDING:
            reservation.confirmed_at = now
            self._apply(
                Status.CONFIRMED,
                actor=actor,
                now=now,
                update_fields=['checked_in_at', 'confirmed_at'],
            )
            self.add_event(ReservationConfirmed(
                aggregate_id=reservation.pk,
                reservation_id=reservation.pk,
                player_id=reservation.player_id,
                court_id=reservation.court_id,
            ))
        else:
            reservation._lifecycle_write = True
            reservation.save(update_fields=['checked_in_at', 'updated_at'])

        self.add_event(ReservationCheckedIn(
            aggregate_id=reservation.pk,
            reservation_id=reservation.pk,
            player_id=reservation.player_id,
            court_id=reservation.court_id,
            checked_in_at=now,
        ))
        return reservation

    def complete(self, *, now: datetime, actor: str = Actor.SYSTEM) -> Reservation:
        """Mark a played reservation as COMPLETED"""
        self._ensure_allowed(Status.COMPLETED)
        reservation = self.reservation
        if reservation.checked_in_at is None:
            raise InvalidTransitionError("Only checked-in reservations can be completed.")
        if now < reservation.ends_at:
            raise InvalidTransitionError("Reservation has not finished yet.")

        reservation.completed_at = now
        self._apply(Status.COMPLETED, actor=actor, now=now, update_fields=['completed_at'])
        self.add_event(ReservationCompleted(
            aggregate_id=reservation.pk,
            reservation_id=reservation.pk,
            player_id=reservation.player_id,
            court_id=reservation.court_id,
        ))
        return reservation

    def cancel(
        self,
        *,
        actor: str,
        now: datetime,
        reason: str | None = None,
        note: str = '',
    ) -> Reservation:
        """
        Cancel the reservation (PENDING/CONFIRMED -> CANCELLED)

        The reason defaults to the actor's tag and must match it. A holder
        can cancel a confirmed reservation only until
        CANCELLATION_CUTOFF_MINUTES before it starts.
        """
        self._ensure_allowed(Status.CANCELLED)
        reservation = self.reservation

        expected_reason = REASON_BY_ACTOR.get(_plain(actor))
        if expected_reason is None:
            raise InvalidTransitionError(f"Unknown actor {actor!r}.")
        reason = reason or expected_reason
        if reason != expected_reason:
            raise InvalidTransitionError(
                f"Reason {reason!r} does not match actor {actor!r}; expected {expected_reason!r}."
            )

        if actor == Actor.HOLDER and reservation.status == Status.CONFIRMED:
            cutoff = reservation.starts_at - timedelta(minutes=get_setting('CANCELLATION_CUTOFF_MINUTES'))
            if now >= cutoff:
                raise CancellationWindowClosed()

        previous_status = reservation.status
        reservation.cancellation_reason = reason
        reservation.cancellation_note = (note or '')[:255]
        reservation.cancelled_at = now
        self._apply(
            Status.CANCELLED,
            actor=actor,
            now=now,
            reason=reason,
            update_fields=['cancellation_reason', 'cancellation_note', 'cancelled_at'],
        )
        self.add_event(ReservationCancelled(
            aggregate_id=reservation.pk,
            reservation_id=reservation.pk,
            player_id=reservation.player_id,
            court_id=reservation.court_id,
            previous_status=previous_status,
            reason=reason,
            actor=actor,
            note=note or None,
        ))
        return reservation

    def _ensure_allowed(self, to_status: str):
        current = self.reservation.status
        if not can_transition(current, to_status):
            raise InvalidTransitionError(
                f"Cannot move reservation from {current} to {to_status}."
            )

    def _apply(self, to_status: str, *, actor: str, now: datetime, update_fields, reason: str = ''):
        reservation = self.reservation
        from_status = reservation.status
        reservation.status = to_status
        reservation._lifecycle_write = True
        reservation.save(update_fields=['status', 'updated_at', *update_fields])
        self._record_transition(from_status, to_status, actor=actor, now=now, reason=reason)
        logger.info(
            f"Reservation {reservation.booking_code} {from_status} -> {to_status} "
            f"by {actor}{f' ({reason})' if reason else ''}"
        )

    def _record_transition(self, from_status: str, to_status: str, *, actor: str, now: datetime, reason: str = ''):
        ReservationTransition.objects.create(
            reservation=self.reservation,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            actor=actor,
            occurred_at=now,
        )
