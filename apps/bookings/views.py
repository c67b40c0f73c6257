"""API views for the booking domain."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application.command_handlers import (
    CancelBookingCommand,
    CheckInBookingCommand,
    CheckOutBookingCommand,
    CreateBookingCommand,
)
from .bootstrap import bootstrap
from .domain.errors import BookingError
from .filters import BookingFilterSet
from .models import Booking
from .serializers import BookingCancelSerializer, BookingCreateSerializer, BookingSerializer

logger = logging.getLogger(__name__)


class BookingErrorResponseMixin:
    """Answer booking business errors with their code and HTTP status."""

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, BookingError):
            logger.info(f"{self.__class__.__name__}: {exc.code} ({exc.message})")
            return Response(exc.to_dict(), status=exc.http_status)
        return super().handle_exception(exc)

    def get_message_bus(self):  # type: ignore
        return bootstrap()


class IsBookingStakeholder(permissions.BasePermission):
    """The guest who booked and staff can see a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.guest_id == user.id


class BookingViewSet(
    BookingErrorResponseMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Guest bookings: list, create, cancel; staff check-in and check-out."""

    queryset = Booking.objects.select_related("property", "guest").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = BookingFilterSet
    ordering_fields = ["check_in", "created_at", "total"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "cancel":
            return BookingCancelSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user

        receipt = self.get_message_bus().handle_command(
            CreateBookingCommand(
                property_id=data["property"],
                guest_id=user.id,
                check_in=data["check_in"],
                check_out=data["check_out"],
                guests=data["guests"],
                guest_name=data["guest_name"] or user.display_name,
                guest_email=data["guest_email"] or user.email,
                guest_phone=data["guest_phone"] or user.phone,
                special_requests=data["special_requests"],
            )
        )

        booking = self.get_queryset().get(pk=receipt.booking_id)
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        receipt = self.get_message_bus().handle_command(
            CancelBookingCommand(booking_id=booking.pk, reason=serializer.validated_data["reason"])
        )
        return Response(
            {"status": receipt.status, "payment_status": receipt.payment_status},
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def check_in(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        receipt = self.get_message_bus().handle_command(CheckInBookingCommand(booking_id=booking.pk))
        return Response({"status": receipt.status})

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def check_out(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        receipt = self.get_message_bus().handle_command(CheckOutBookingCommand(booking_id=booking.pk))
        return Response({"status": receipt.status})
