"""Stripe webhook processing."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore

from apps.bookings.application.command_handlers import (
    ConfirmBookingCommand,
    RecordPaymentFailureCommand,
    RefundLatePaymentCommand,
)
from apps.bookings.domain.errors import BookingError, PaymentError, PersistenceError
from apps.bookings.models import Booking
from shared.application.message_bus import MessageBus
from shared.domain.value_objects import Money

from .gateway import WebhookEvent
from .models import Payment, PaymentTransaction
from .repositories import DjangoPaymentRepository

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"


def _booking_id_for(event: WebhookEvent, payment_intent_id: str) -> Optional[UUID]:
    booking_id = event.data.get("metadata", {}).get("booking_id")
    if booking_id:
        try:
            return UUID(str(booking_id))
        except ValueError:
            logger.warning(f"Webhook {event.id} carries a malformed booking_id {booking_id!r}")

    record = DjangoPaymentRepository().find_by_intent(payment_intent_id)
    return record.booking_id if record else None


def _is_cancelled(booking_id: UUID) -> bool:
    return Booking.objects.filter(pk=booking_id, status=Booking.Status.CANCELLED).exists()


def _record_delivery(event: WebhookEvent, payment_intent_id: str) -> None:
    payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
    try:
        with transaction.atomic():
            PaymentTransaction.objects.create(
                payment=payment,
                event_id=event.id,
                event=event.type,
                payload={"object_id": event.object_id, **event.data},
            )
    except IntegrityError:
        # a concurrent delivery of the same event got there first
        logger.info(f"Stripe event {event.id} recorded concurrently")


def _apply(event: WebhookEvent, payment_intent_id: str, bus: MessageBus) -> str:
    if event.type == CHARGE_REFUNDED:
        currency = event.data.get("currency") or settings.BOOKING_DEFAULT_CURRENCY
        amount = Money.from_minor_units(int(event.data.get("amount_refunded") or 0), currency).amount
        DjangoPaymentRepository().mark_refunded(payment_intent_id, amount=amount or None)
        return "refunded"

    if event.type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        logger.debug(f"Ignoring Stripe event type {event.type}")
        return "ignored"

    booking_id = _booking_id_for(event, payment_intent_id)
    if booking_id is None:
        logger.error(f"Stripe event {event.id}: no booking found for intent {payment_intent_id}")
        return "booking_not_found"

    try:
        if event.type == PAYMENT_SUCCEEDED and _is_cancelled(booking_id):
            bus.handle_command(
                RefundLatePaymentCommand(booking_id=booking_id, payment_intent_id=payment_intent_id)
            )
            return "refunded_after_cancellation"

        if event.type == PAYMENT_SUCCEEDED:
            bus.handle_command(
                ConfirmBookingCommand(booking_id=booking_id, payment_intent_id=payment_intent_id)
            )
            return "confirmed"

        bus.handle_command(
            RecordPaymentFailureCommand(
                booking_id=booking_id,
                payment_intent_id=payment_intent_id,
                reason=event.data.get("failure_message") or "",
            )
        )
        return "payment_failed"
    except (PersistenceError, PaymentError):
        raise
    except BookingError as e:
        logger.warning(
            f"Stripe event {event.id} for booking {booking_id} not applied: {e.code} ({e.message})"
        )
        return e.code


def handle_webhook_event(event: WebhookEvent, bus: MessageBus) -> str:
    """
    Apply one verified Stripe event and return a short outcome label.

    A payment captured for a cancelled booking is refunded. Other business
    errors (e.g. a late failure for a confirmed booking) are logged and
    acknowledged so Stripe stops redelivering the event. A data store or
    refund failure propagates; the delivery is not recorded and Stripe
    retries it later.
    """
    payment_intent_id = event.object_id
    if event.type == CHARGE_REFUNDED:
        payment_intent_id = event.data.get("payment_intent") or ""

    if PaymentTransaction.objects.filter(event_id=event.id).exists():
        logger.info(f"Stripe event {event.id} already processed")
        return "already_processed"

    logger.info(f"Stripe webhook {event.type} for intent {payment_intent_id}")
    outcome = _apply(event, payment_intent_id, bus)
    _record_delivery(event, payment_intent_id)
    return outcome
