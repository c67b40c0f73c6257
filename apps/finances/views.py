"""API views for payment processing.

Guests start the payment of their own pending booking; Stripe reports the
outcome through the webhook, which is the only way a booking becomes
confirmed.
"""

from __future__ import annotations

import logging

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.command_handlers import StartPaymentCommand
from apps.bookings.bootstrap import bootstrap
from apps.bookings.models import Booking
from apps.bookings.views import BookingErrorResponseMixin

from .gateway import WebhookVerificationError, get_payment_gateway
from .models import Payment
from .serializers import PaymentIntentRequestSerializer, PaymentSerializer
from .services import handle_webhook_event

logger = logging.getLogger(__name__)


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Payments of the current user's bookings."""

    queryset = Payment.objects.select_related("booking", "booking__guest").all()
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(booking__guest=user)


class PaymentIntentView(BookingErrorResponseMixin, APIView):
    """Create a Stripe payment intent for a pending booking."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = PaymentIntentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking_id = serializer.validated_data["booking_id"]

        if not Booking.objects.filter(pk=booking_id, guest=request.user).exists():
            return Response(
                {"error": "booking_not_found", "detail": "Booking not found."},
                status=status.HTTP_404_NOT_FOUND,
            )

        started = self.get_message_bus().handle_command(StartPaymentCommand(booking_id=booking_id))
        return Response(
            {
                "booking_id": str(started.booking_id),
                "booking_number": started.booking_number,
                "payment_intent_id": started.payment_intent_id,
                "client_secret": started.client_secret,
                "amount": started.amount_minor,
                "currency": started.currency,
            },
            status=status.HTTP_201_CREATED,
        )


class StripeWebhookView(BookingErrorResponseMixin, APIView):
    """Stripe webhook endpoint, authenticated by the Stripe-Signature header."""

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    def get_gateway(self):  # type: ignore
        return get_payment_gateway()

    def post(self, request):  # type: ignore
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            event = self.get_gateway().parse_webhook(request.body, signature)
        except WebhookVerificationError as e:
            logger.error(f"Stripe webhook rejected: {e}")
            return Response({"error": "invalid_webhook", "detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        outcome = handle_webhook_event(event, self.get_message_bus())
        return Response({"received": True, "outcome": outcome}, status=status.HTTP_200_OK)
