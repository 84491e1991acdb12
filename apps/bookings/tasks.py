"""Celery tasks for the booking engine."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.dateparse import parse_datetime  # type: ignore

from .application.sweeper import complete_finished_reservations as run_completion_sweep
from .application.sweeper import sweep_no_shows as run_no_show_sweep
from .models import Reservation

logger = logging.getLogger(__name__)


def _as_of(value: str | None):
    if not value:
        return timezone.now()
    parsed = parse_datetime(value)
    if parsed is None or timezone.is_naive(parsed):
        raise ValueError(f"as_of must be an ISO 8601 instant with an offset, got {value!r}")
    return parsed


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.sweep_no_shows")
def sweep_no_shows(as_of: str | None = None) -> dict[str, int]:
    """
    Cancel pending reservations nobody checked in for.

    Runs every NO_SHOW_SWEEP_INTERVAL_SECONDS (60 by default).

    Returns:
        dict: {"cancelled": n, "failed": m}
    """
    report = run_no_show_sweep(_as_of(as_of))
    return report.as_dict("cancelled")


@shared_task(name="bookings.complete_finished_reservations")
def complete_finished_reservations(as_of: str | None = None) -> dict[str, int]:
    """
    Complete checked-in reservations whose interval has elapsed.

    Returns:
        dict: {"completed": n, "failed": m}
    """
    report = run_completion_sweep(_as_of(as_of))
    return report.as_dict("completed")


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

@shared_task(name="bookings.notify_reservation_event")
def notify_reservation_event(payload: dict) -> bool:
    """Deliver a reservation event to the player and the venue owner."""
    reservation_id = payload.get("reservation_id")
    try:
        reservation = Reservation.objects.select_related("player", "court", "venue__owner").get(pk=reservation_id)
    except Reservation.DoesNotExist:
        logger.error(f"Reservation {reservation_id} not found for {payload.get('event_type')} notification")
        return False

    event_type = payload.get("event_type")
    logger.info(
        f"[NOTIFICATION] {event_type}: reservation {reservation.booking_code} "
        f"to player {reservation.player.email}"
    )
    logger.info(
        f"[NOTIFICATION] {event_type}: reservation {reservation.booking_code} "
        f"to venue owner {reservation.venue.owner.email}"
    )
    return True
