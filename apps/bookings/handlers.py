"""Message bus subscriptions for reservation events."""

from __future__ import annotations

import logging

from shared.application.message_bus import message_bus

from .domain.events import (
    ReservationCancelled,
    ReservationCheckedIn,
    ReservationCompleted,
    ReservationConfirmed,
    ReservationCreated,
)

logger = logging.getLogger(__name__)

RESERVATION_EVENTS = (
    ReservationCreated,
    ReservationConfirmed,
    ReservationCheckedIn,
    ReservationCompleted,
    ReservationCancelled,
)


def enqueue_notification(event) -> None:
    from .tasks import notify_reservation_event

    notify_reservation_event.delay(event.to_dict())


def log_slot_released(event: ReservationCancelled) -> None:
    logger.info(
        f"Court {event.court_id} slot released: reservation {event.reservation_id} "
        f"cancelled by {event.actor} ({event.reason})"
    )


def register_handlers() -> None:
    for event_type in RESERVATION_EVENTS:
        message_bus.register_event_handler(event_type, enqueue_notification)
    message_bus.register_event_handler(ReservationCancelled, log_slot_released)
