"""Payment rows behind the booking payment use cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from apps.finances.gateway import PaymentIntent
from apps.finances.models import Payment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRecord:
    booking_id: UUID
    payment_intent_id: str
    amount: Decimal
    currency: str
    status: str


def _record(payment: Payment) -> PaymentRecord:
    return PaymentRecord(
        booking_id=payment.booking_id,
        payment_intent_id=payment.stripe_payment_intent_id,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
    )


class DjangoPaymentRepository:
    def add_intent(self, booking_id: UUID, intent: PaymentIntent, amount: Decimal) -> PaymentRecord:
        # Stripe hands back the same intent for a repeated idempotency key
        payment, _ = Payment.objects.update_or_create(
            stripe_payment_intent_id=intent.id,
            defaults={
                "booking_id": booking_id,
                "status": Payment.Status.PROCESSING,
                "amount": amount,
                "currency": intent.currency,
                "stripe_client_secret": intent.client_secret,
                "metadata": {"amount_minor": intent.amount_minor},
            },
        )
        return _record(payment)

    def find_by_intent(self, payment_intent_id: str) -> Optional[PaymentRecord]:
        payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        return _record(payment) if payment else None

    def latest_completed(self, booking_id: UUID) -> Optional[PaymentRecord]:
        payment = (
            Payment.objects.filter(booking_id=booking_id, status=Payment.Status.COMPLETED)
            .order_by("-paid_at", "-created_at")
            .first()
        )
        return _record(payment) if payment else None

    def open_intents(self, booking_id: UUID) -> List[PaymentRecord]:
        """Intents raised for the booking that have not been captured yet."""
        payments = Payment.objects.filter(
            booking_id=booking_id,
            status__in=(Payment.Status.PENDING, Payment.Status.PROCESSING),
        )
        return [_record(payment) for payment in payments]

    def mark_cancelled(self, payment_intent_id: str) -> None:
        payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        if payment is None:
            logger.warning(f"No payment row for intent {payment_intent_id}")
            return
        payment.mark_cancelled()

    def mark_succeeded(self, payment_intent_id: str, charge_id: str = "") -> None:
        payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        if payment is None:
            logger.warning(f"No payment row for intent {payment_intent_id}")
            return
        if payment.status != Payment.Status.COMPLETED:
            payment.mark_success(charge_id or None)

    def mark_failed(self, payment_intent_id: str, reason: str = "") -> None:
        payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        if payment is None:
            logger.warning(f"No payment row for intent {payment_intent_id}")
            return
        payment.mark_failed(reason)

    def mark_refunded(
        self,
        payment_intent_id: str,
        amount: Optional[Decimal] = None,
        refund_id: str = "",
    ) -> None:
        payment = Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        if payment is None:
            logger.warning(f"No payment row for intent {payment_intent_id}")
            return
        payment.mark_refunded(amount, refund_id or None)
