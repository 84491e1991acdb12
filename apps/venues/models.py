"""Venue registry models for Courtside.

A venue (a "location" in the player-facing app) owns its courts. Court
events are the owner's calendar entries: maintenance, cleaning, closures
and private events. The booking engine reads them and never writes them.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Venue(models.Model):
    """A physical location containing one or more courts."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="venues",
    )
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    opening_time = models.TimeField(
        null=True,
        blank=True,
        help_text=_("Local opening time; bookings may not start earlier."),
    )
    closing_time = models.TimeField(
        null=True,
        blank=True,
        help_text=_("Local closing time; bookings may not end later."),
    )
    auto_confirm_bookings = models.BooleanField(
        null=True,
        blank=True,
        help_text=_("Create bookings as confirmed. Empty means the platform default."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Venue")
        verbose_name_plural = _("Venues")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(opening_time__isnull=True)
                | Q(closing_time__isnull=True)
                | Q(closing_time__gt=F("opening_time")),
                name="venue_valid_opening_hours",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def is_owned_by(self, user) -> bool:
        return user is not None and self.owner_id == getattr(user, "pk", None)


class Court(models.Model):
    """A single bookable playing surface belonging to a venue."""

    venue = models.ForeignKey(
        Venue,
        on_delete=models.CASCADE,
        related_name="courts",
    )
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    cleaning_time_minutes = models.PositiveSmallIntegerField(
        default=0,
        help_text=_("Minutes the court stays unavailable after each booking."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Court")
        verbose_name_plural = _("Courts")
        ordering = ["venue_id", "name"]
        indexes = [
            models.Index(fields=["venue", "is_active"], name="court_venue_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} at {self.venue.name}"


class CourtEvent(models.Model):
    """Owner-declared interval on a court that may prevent bookings."""

    class EventType(models.TextChoices):
        MAINTENANCE = "maintenance", _("Maintenance")
        CLEANING = "cleaning", _("Cleaning")
        CLOSURE = "closure", _("Closure")
        PRIVATE_EVENT = "private_event", _("Private event")
        OTHER = "other", _("Other")

    # Calendar colours used by the owner dashboard
    DEFAULT_COLORS = {
        "maintenance": "#ef4444",
        "private_event": "#a855f7",
        "cleaning": "#3b82f6",
        "closure": "#dc2626",
        "other": "#6b7280",
    }

    court = models.ForeignKey(
        Court,
        on_delete=models.CASCADE,
        related_name="events",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="court_events",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    event_type = models.CharField(
        max_length=20,
        choices=EventType.choices,
        default=EventType.MAINTENANCE,
    )
    blocks_bookings = models.BooleanField(default=True)
    color = models.CharField(max_length=7, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Court event")
        verbose_name_plural = _("Court events")
        ordering = ["start_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_at__gt=F("start_at")),
                name="court_event_valid_range",
            ),
        ]
        indexes = [
            models.Index(fields=["court", "blocks_bookings", "start_at"], name="court_event_lookup_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.court}: {self.title} ({self.get_event_type_display()})"

    def save(self, *args, **kwargs):  # type: ignore
        if not self.color:
            self.color = self.DEFAULT_COLORS.get(self.event_type, "#6b7280")
        super().save(*args, **kwargs)
