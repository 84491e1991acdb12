"""
No-show Sweeper

Periodic housekeeping run by Celery Beat:
- sweep_no_shows: cancel pending reservations whose start passed more
  than the grace period ago without a check-in
- complete_finished_reservations: complete checked-in reservations whose
  interval has elapsed

Each reservation is handled in its own transaction, after re-reading it
under a row lock. A row that fails is logged and counted; the run goes on.
Running either sweep twice for the same instant changes nothing the
second time.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
import logging

from django.db.models import Q
from django.utils import timezone

from apps.bookings.conf import get_setting
from apps.bookings.domain.lifecycle import Actor, Reason, ReservationLifecycle
from apps.bookings.domain.time_boundary import local_date, to_local
from apps.bookings.models import Reservation
from apps.bookings.services import _lock_queryset_if_possible
from shared.application.uow import DjangoUnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Outcome of one sweep run"""
    processed: int = 0
    failed: int = 0
    reservation_ids: List[int] = field(default_factory=list)

    def as_dict(self, label: str) -> dict:
        return {label: self.processed, 'failed': self.failed}


class NoShowSweeper:
    """
    Cancels pending reservations nobody turned up for

    A reservation is a no-show at as_of when it is still pending, has no
    check-in, and its local start is at least grace_minutes before as_of.
    Only dates from lookback_days before today's civil date are scanned.
    """

    def __init__(self, grace_minutes: Optional[int] = None, lookback_days: Optional[int] = None):
        if grace_minutes is None:
            grace_minutes = get_setting('NO_SHOW_GRACE_MINUTES')
        if lookback_days is None:
            lookback_days = get_setting('NO_SHOW_LOOKBACK_DAYS')
        self.grace = timedelta(minutes=grace_minutes)
        self.lookback_days = lookback_days

    def candidates(self, as_of: datetime):
        threshold = to_local(as_of - self.grace)
        earliest = local_date(as_of) - timedelta(days=self.lookback_days)
        return Reservation.objects.filter(
            Q(date__lt=threshold.date()) | Q(date=threshold.date(), start_time__lte=threshold.time()),
            status=Reservation.Status.PENDING,
            checked_in_at__isnull=True,
            date__gte=earliest,
        ).order_by('date', 'start_time')

    def is_no_show(self, reservation: Reservation, as_of: datetime) -> bool:
        return (
            reservation.status == Reservation.Status.PENDING
            and reservation.checked_in_at is None
            and reservation.starts_at + self.grace <= as_of
        )

    def sweep(self, as_of: Optional[datetime] = None) -> SweepReport:
        as_of = as_of or timezone.now()
        report = SweepReport()

        candidate_ids = list(self.candidates(as_of).values_list('pk', flat=True))
        for reservation_id in candidate_ids:
            try:
                cancelled = False
                with DjangoUnitOfWork() as uow:
                    reservation = _lock_queryset_if_possible(
                        Reservation.objects.filter(pk=reservation_id)
                    ).get()
                    # Checked in or cancelled since the candidate query ran
                    if self.is_no_show(reservation, as_of):
                        lifecycle = ReservationLifecycle(reservation)
                        lifecycle.cancel(
                            actor=Actor.SYSTEM,
                            reason=Reason.AUTO_CANCELLED_NO_SHOW,
                            now=as_of,
                        )
                        uow.collect_events(lifecycle)
                        cancelled = True
                if cancelled:
                    report.processed += 1
                    report.reservation_ids.append(reservation_id)
                    logger.info(
                        f"Reservation {reservation.booking_code} auto-cancelled as no-show "
                        f"(court {reservation.court_id}, {reservation.date} {reservation.start_time:%H:%M})"
                    )
            except Exception as e:
                report.failed += 1
                logger.error(f"Error sweeping reservation {reservation_id}: {e}", exc_info=True)

        if report.processed or report.failed:
            logger.info(f"No-show sweep at {as_of.isoformat()}: {report.processed} cancelled, {report.failed} failed")
        return report


def sweep_no_shows(as_of: Optional[datetime] = None) -> SweepReport:
    return NoShowSweeper().sweep(as_of)


def complete_finished_reservations(as_of: Optional[datetime] = None) -> SweepReport:
    """Complete confirmed, checked-in reservations whose end has passed"""
    as_of = as_of or timezone.now()
    report = SweepReport()

    candidate_ids = list(
        Reservation.objects.filter(
            status=Reservation.Status.CONFIRMED,
            checked_in_at__isnull=False,
            date__lte=local_date(as_of),
        ).values_list('pk', flat=True)
    )
    for reservation_id in candidate_ids:
        try:
            completed = False
            with DjangoUnitOfWork() as uow:
                reservation = _lock_queryset_if_possible(
                    Reservation.objects.filter(pk=reservation_id)
                ).get()
                if (
                    reservation.status == Reservation.Status.CONFIRMED
                    and reservation.checked_in_at is not None
                    and reservation.ends_at <= as_of
                ):
                    lifecycle = ReservationLifecycle(reservation)
                    lifecycle.complete(actor=Actor.SYSTEM, now=as_of)
                    uow.collect_events(lifecycle)
                    completed = True
            if completed:
                report.processed += 1
                report.reservation_ids.append(reservation_id)
                logger.info(f"Reservation {reservation.booking_code} completed")
        except Exception as e:
            report.failed += 1
            logger.error(f"Error completing reservation {reservation_id}: {e}", exc_info=True)

    if report.processed or report.failed:
        logger.info(f"Completion sweep: {report.processed} completed, {report.failed} failed")
    return report
