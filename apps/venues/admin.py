"""Admin registrations for the venue registry."""

from __future__ import annotations

from django.contrib import admin

from .models import Court, CourtEvent, Venue


class CourtInline(admin.TabularInline):
    model = Court
    extra = 0
    fields = ("name", "is_active", "cleaning_time_minutes")


@admin.register(Venue)
class VenueAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "city",
        "owner",
        "opening_time",
        "closing_time",
        "auto_confirm_bookings",
        "is_active",
    )
    list_filter = ("is_active", "city", "auto_confirm_bookings")
    search_fields = ("name", "city", "address", "owner__email")
    inlines = (CourtInline,)
    readonly_fields = ("created_at", "updated_at")


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = ("name", "venue", "is_active", "cleaning_time_minutes")
    list_filter = ("is_active",)
    search_fields = ("name", "venue__name")


@admin.register(CourtEvent)
class CourtEventAdmin(admin.ModelAdmin):
    list_display = ("title", "court", "event_type", "start_at", "end_at", "blocks_bookings")
    list_filter = ("event_type", "blocks_bookings")
    search_fields = ("title", "court__name", "court__venue__name")
    date_hierarchy = "start_at"
