"""API views for the booking engine."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from apps.venues.models import Court

from .application.command_handlers import (
    cancel_booking,
    check_in_booking,
    complete_booking,
    confirm_booking,
    request_booking,
)
from .domain.lifecycle import Actor
from .exceptions import (
    BookingConflictError,
    BookingError,
    BookingValidationError,
    InvalidTransitionError,
    LimitReachedError,
    ReservationNotFound,
    TransientStoreError,
)
from .filters import ReservationFilter
from .models import Reservation
from .serializers import (
    AvailabilityQuerySerializer,
    CancelReservationSerializer,
    CourtAvailabilitySerializer,
    ReservationRequestSerializer,
    ReservationSerializer,
)
from .services import court_availability

# Most specific first
ERROR_STATUS = (
    (ReservationNotFound, status.HTTP_404_NOT_FOUND),
    (BookingValidationError, status.HTTP_400_BAD_REQUEST),
    (LimitReachedError, status.HTTP_409_CONFLICT),
    (BookingConflictError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def booking_exception_handler(exc, context):  # type: ignore
    """Render booking engine errors as ``{"code", "detail", "retryable"}``."""

    if isinstance(exc, BookingError):
        http_status = next(
            (code for error_class, code in ERROR_STATUS if isinstance(exc, error_class)),
            status.HTTP_400_BAD_REQUEST,
        )
        return Response(
            {"code": exc.code, "detail": exc.detail, "retryable": exc.retryable},
            status=http_status,
        )
    return exception_handler(exc, context)


def _is_platform_admin(user) -> bool:
    return bool(getattr(user, "is_platform_admin", None) and user.is_platform_admin())


class IsReservationStakeholder(permissions.BasePermission):
    """Players see their own reservations, owners those at their venues, admins all."""

    def has_object_permission(self, request, view, obj: Reservation):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_platform_admin(user):
            return True
        return obj.player_id == user.id or obj.venue.owner_id == user.id


class ReservationViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Request, list and manage court reservations."""

    queryset = Reservation.objects.select_related("player", "court", "venue").prefetch_related("transitions")
    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticated, IsReservationStakeholder]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ReservationFilter

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return ReservationRequestSerializer
        if self.action == "cancel":
            return CancelReservationSerializer
        if self.action == "availability":
            return AvailabilityQuerySerializer
        return ReservationSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if _is_platform_admin(user):
            return qs
        if user.is_court_owner():
            return qs.filter(Q(venue__owner=user) | Q(player=user))
        return qs.filter(player=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reservation = request_booking(
            request.user,
            data["court"],
            data["date"],
            data["start_time"],
            data["end_time"],
            source=data["source"],
        )
        reservation = self.get_queryset().get(pk=reservation.pk)
        read_serializer = ReservationSerializer(reservation, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def _owner_actor(self, reservation: Reservation) -> str:
        user = self.request.user
        if reservation.venue.owner_id == user.id or _is_platform_admin(user):
            return Actor.OWNER
        raise PermissionDenied("Only the venue owner can do this.")

    def _respond(self, reservation_id):
        reservation = Reservation.objects.select_related("player", "court", "venue").get(pk=reservation_id)
        return Response(ReservationSerializer(reservation, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # The holder cancels as holder even when they also own the venue
        actor = Actor.HOLDER if reservation.player_id == request.user.id else self._owner_actor(reservation)
        cancel_booking(reservation.pk, actor, note=serializer.validated_data["note"])
        return self._respond(reservation.pk)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        self._owner_actor(reservation)
        confirm_booking(reservation.pk)
        return self._respond(reservation.pk)

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        self._owner_actor(reservation)
        check_in_booking(reservation.pk)
        return self._respond(reservation.pk)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        actor = self._owner_actor(reservation)
        complete_booking(reservation.pk, actor=actor)
        return self._respond(reservation.pk)

    @action(detail=False, methods=["get"])
    def availability(self, request):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        court_id = query.validated_data["court"]
        try:
            court = Court.objects.select_related("venue").get(pk=court_id, is_active=True)
        except Court.DoesNotExist:
            raise BookingValidationError(f"Court {court_id} does not exist or is not bookable.")

        availability = court_availability(
            court,
            query.validated_data["date"],
            now=timezone.now(),
            player=request.user,
        )
        return Response(CourtAvailabilitySerializer(availability).data)
