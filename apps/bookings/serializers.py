"""Serializers for the booking API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.time_boundary import local_date, local_time
from .models import Reservation, ReservationTransition


class ReservationRequestSerializer(serializers.Serializer):
    """Booking request from a player.

    Either ``date``/``start_time``/``end_time`` (venue-local) or the
    ``starts_at``/``ends_at`` instants must be given. Instants are converted
    to the booking timezone and must fall on one civil date.
    """

    court = serializers.IntegerField(min_value=1)
    date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    starts_at = serializers.DateTimeField(required=False)
    ends_at = serializers.DateTimeField(required=False)
    source = serializers.ChoiceField(
        choices=Reservation.Source.choices,
        default=Reservation.Source.API,
    )

    def validate(self, attrs):  # type: ignore
        local_fields = [attrs.get(name) for name in ("date", "start_time", "end_time")]
        instant_fields = [attrs.get(name) for name in ("starts_at", "ends_at")]

        if all(value is not None for value in local_fields):
            return attrs

        if any(value is not None for value in local_fields) or not all(value is not None for value in instant_fields):
            raise serializers.ValidationError(
                "Provide either date, start_time and end_time, or starts_at and ends_at."
            )

        starts_at, ends_at = instant_fields
        if local_date(starts_at) != local_date(ends_at):
            raise serializers.ValidationError("A reservation must start and end on the same local date.")
        attrs["date"] = local_date(starts_at)
        attrs["start_time"] = local_time(starts_at)
        attrs["end_time"] = local_time(ends_at)
        return attrs


class ReservationTransitionSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReservationTransition
        fields = ["from_status", "to_status", "reason", "actor", "occurred_at"]


class ReservationSerializer(serializers.ModelSerializer):
    """Detailed reservation representation."""

    player_id = serializers.ReadOnlyField(source="player.id")
    court_id = serializers.ReadOnlyField(source="court.id")
    court_name = serializers.ReadOnlyField(source="court.name")
    venue_id = serializers.ReadOnlyField(source="venue.id")
    venue_name = serializers.ReadOnlyField(source="venue.name")
    starts_at = serializers.DateTimeField(read_only=True)
    ends_at = serializers.DateTimeField(read_only=True)
    transitions = ReservationTransitionSerializer(many=True, read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "booking_code",
            "player_id",
            "court_id",
            "court_name",
            "venue_id",
            "venue_name",
            "date",
            "start_time",
            "end_time",
            "starts_at",
            "ends_at",
            "status",
            "cancellation_reason",
            "cancellation_note",
            "source",
            "confirmed_at",
            "checked_in_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
            "transitions",
        ]
        read_only_fields = fields


class CancelReservationSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class AvailabilityQuerySerializer(serializers.Serializer):
    court = serializers.IntegerField(min_value=1)
    date = serializers.DateField()


class SlotSerializer(serializers.Serializer):
    start_time = serializers.TimeField(format="%H:%M")
    end_time = serializers.TimeField(format="%H:%M")
    state = serializers.CharField(source="state.value")
    mine = serializers.BooleanField()


class CourtAvailabilitySerializer(serializers.Serializer):
    court_id = serializers.IntegerField()
    date = serializers.DateField()
    opening_time = serializers.TimeField(format="%H:%M")
    closing_time = serializers.TimeField(format="%H:%M")
    daily_limit_reached = serializers.BooleanField()
    slots = SlotSerializer(many=True)
