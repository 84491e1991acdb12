"""Reservation models for the Courtside booking engine."""

from __future__ import annotations

import secrets

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import TimeRange

from .exceptions import InvalidTransitionError


class Reservation(models.Model):
    """A player's hold on one court for an interval of one civil date.

    ``date``, ``start_time`` and ``end_time`` are venue-local (the booking
    timezone). The row's status is owned by ``ReservationLifecycle``;
    ``save()`` refuses status changes made any other way and any change to
    a cancelled or completed row.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    class CancellationReason(models.TextChoices):
        USER_CANCELLED = "user_cancelled", _("Cancelled by player")
        OWNER_CANCELLED = "owner_cancelled", _("Cancelled by venue owner")
        AUTO_CANCELLED_NO_SHOW = "auto_cancelled_no_show", _("No-show")

    class Source(models.TextChoices):
        WEB = "web", _("Web")
        MOBILE = "mobile", _("Mobile app")
        API = "api", _("API")

    # Statuses that occupy the court
    BLOCKING_STATUSES = (Status.PENDING, Status.CONFIRMED)
    # Statuses that count towards the player's daily limit
    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.COMPLETED)
    TERMINAL_STATUSES = (Status.CANCELLED, Status.COMPLETED)

    player = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    court = models.ForeignKey(
        "venues.Court",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    venue = models.ForeignKey(
        "venues.Venue",
        on_delete=models.PROTECT,
        related_name="reservations",
        help_text=_("Copied from the court when the reservation is created."),
    )
    date = models.DateField(help_text=_("Civil date in the booking timezone."))
    start_time = models.TimeField()
    end_time = models.TimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    cancellation_reason = models.CharField(
        max_length=32,
        choices=CancellationReason.choices,
        blank=True,
    )
    cancellation_note = models.CharField(max_length=255, blank=True)
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.API,
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-date", "-start_time"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="reservation_valid_times",
            ),
            models.UniqueConstraint(
                fields=["court", "date", "start_time"],
                condition=Q(status__in=["pending", "confirmed"]),
                name="reservation_unique_active_court_slot",
            ),
            models.UniqueConstraint(
                fields=["player", "venue", "date"],
                condition=Q(status__in=["pending", "confirmed", "completed"]),
                name="reservation_unique_player_venue_day",
            ),
        ]
        indexes = [
            models.Index(fields=["court", "date", "status"], name="reservation_court_day_idx"),
            models.Index(fields=["player", "date"], name="reservation_player_day_idx"),
            models.Index(fields=["status", "date", "start_time"], name="reservation_sweep_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation #{self.booking_code} on court {self.court_id} {self.date} {self.start_time:%H:%M}"

    @classmethod
    def from_db(cls, db, field_names, values):  # type: ignore
        instance = super().from_db(db, field_names, values)
        instance._loaded_status = instance.__dict__.get("status")
        return instance

    def refresh_from_db(self, *args, **kwargs):  # type: ignore
        super().refresh_from_db(*args, **kwargs)
        self._loaded_status = self.status

    def save(self, *args, **kwargs):  # type: ignore
        try:
            if self._state.adding:
                if not self.booking_code:
                    self.booking_code = self.generate_booking_code()
                if self.court_id and not self.venue_id:
                    self.venue_id = self.court.venue_id
            else:
                self._guard_status_change()
            super().save(*args, **kwargs)
        finally:
            # The lifecycle permission covers this one write, even a failed one
            self._lifecycle_write = False
        self._loaded_status = self.status

    def _guard_status_change(self) -> None:
        loaded = getattr(self, "_loaded_status", None)
        if getattr(self, "_lifecycle_write", False):
            return
        if loaded in self.TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Reservation {self.pk} is {loaded} and can no longer change.")
        if loaded is not None and loaded != self.status:
            raise InvalidTransitionError("Reservation status can only change through the lifecycle.")

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def time_range(self) -> TimeRange:
        from .domain.time_boundary import local_range

        return local_range(self.date, self.start_time, self.end_time)

    @property
    def starts_at(self):
        return self.time_range.start

    @property
    def ends_at(self):
        return self.time_range.end


class ReservationTransition(models.Model):
    """Append-only history of a reservation's status changes."""

    class Actor(models.TextChoices):
        HOLDER = "holder", _("Reservation holder")
        OWNER = "owner", _("Venue owner")
        SYSTEM = "system", _("System")

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="transitions",
    )
    from_status = models.CharField(max_length=20, choices=Reservation.Status.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=Reservation.Status.choices)
    reason = models.CharField(max_length=32, choices=Reservation.CancellationReason.choices, blank=True)
    actor = models.CharField(max_length=10, choices=Actor.choices)
    occurred_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Reservation transition")
        verbose_name_plural = _("Reservation transitions")
        ordering = ["occurred_at", "id"]

    def __str__(self) -> str:
        return f"{self.reservation_id}: {self.from_status or '-'} -> {self.to_status} by {self.actor}"
