"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Reservation, ReservationTransition


class ReservationTransitionInline(admin.TabularInline):
    model = ReservationTransition
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "reason", "actor", "occurred_at")

    def has_add_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "court",
        "venue",
        "player",
        "date",
        "start_time",
        "end_time",
        "status",
        "checked_in_at",
    )
    list_filter = ("status", "cancellation_reason", "date", "source")
    search_fields = ("booking_code", "court__name", "venue__name", "player__email")
    date_hierarchy = "date"
    inlines = (ReservationTransitionInline,)
    # Status changes go through the lifecycle, never through the admin form
    readonly_fields = (
        "booking_code",
        "player",
        "court",
        "venue",
        "date",
        "start_time",
        "end_time",
        "status",
        "cancellation_reason",
        "confirmed_at",
        "checked_in_at",
        "completed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
