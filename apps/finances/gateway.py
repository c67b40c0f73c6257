"""
Stripe Payment Gateway Integration

Payment intents for booking totals, refunds on cancellation and webhook
verification. Amounts cross this boundary in minor currency units (cents).
Without STRIPE_SECRET_KEY the gateway emulates Stripe so local development
and tests run without network access.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import stripe  # type: ignore
from django.conf import settings  # type: ignore

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """The payment provider rejected or failed a request."""


class WebhookVerificationError(PaymentGatewayError):
    """Webhook payload could not be parsed or its signature did not match."""


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str
    status: str
    amount_minor: int
    currency: str


@dataclass(frozen=True)
class WebhookEvent:
    id: str
    type: str
    object_id: str
    data: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    def create_payment_intent(
        self,
        booking_id: str,
        amount_minor: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PaymentIntent: ...

    def refund(self, payment_intent_id: str, amount_minor: Optional[int] = None) -> str: ...

    def cancel_payment_intent(self, payment_intent_id: str) -> None: ...

    def parse_webhook(self, payload: bytes, signature: str) -> WebhookEvent: ...


def _field(obj: Any, key: str, default: Any = None) -> Any:
    # Stripe objects support item access but not always dict.get()
    try:
        value = obj[key]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


class StripePaymentGateway:
    """PaymentGateway backed by the stripe SDK."""

    def __init__(self, secret_key: str = "", webhook_secret: str = ""):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    @property
    def emulated(self) -> bool:
        return not self.secret_key

    def create_payment_intent(
        self,
        booking_id: str,
        amount_minor: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PaymentIntent:
        logger.info(
            f"Creating payment intent for booking {booking_id}, amount {amount_minor} {currency}"
        )
        metadata = {"booking_id": str(booking_id), **(metadata or {})}

        if self.emulated:
            logger.warning("Stripe secret key is not configured, emulating payment intent")
            intent_id = f"pi_emulated_{uuid.uuid4().hex[:16]}"
            return PaymentIntent(
                id=intent_id,
                client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:8]}",
                status="requires_payment_method",
                amount_minor=amount_minor,
                currency=currency.upper(),
            )

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=amount_minor,
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=f"booking-{booking_id}-{amount_minor}",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe rejected payment intent for booking {booking_id}: {e}")
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"Stripe payment intent created: {intent['id']}")
        return PaymentIntent(
            id=intent["id"],
            client_secret=intent["client_secret"],
            status=intent["status"],
            amount_minor=amount_minor,
            currency=currency.upper(),
        )

    def refund(self, payment_intent_id: str, amount_minor: Optional[int] = None) -> str:
        """Refund a captured payment intent, fully unless amount_minor is given."""
        logger.info(f"Refunding payment intent {payment_intent_id}")

        if self.emulated:
            logger.warning("Stripe secret key is not configured, emulating refund")
            return f"re_emulated_{uuid.uuid4().hex[:16]}"

        params: Dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_minor is not None:
            params["amount"] = amount_minor
        try:
            refund = stripe.Refund.create(
                api_key=self.secret_key,
                idempotency_key=f"refund-{payment_intent_id}-{amount_minor or 'full'}",
                **params,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe rejected refund of {payment_intent_id}: {e}")
            raise PaymentGatewayError(str(e)) from e
        return refund["id"]

    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        """Cancel an intent that has not been captured yet."""
        logger.info(f"Cancelling payment intent {payment_intent_id}")

        if self.emulated:
            logger.warning("Stripe secret key is not configured, emulating intent cancellation")
            return

        try:
            stripe.PaymentIntent.cancel(
                payment_intent_id,
                api_key=self.secret_key,
                cancellation_reason="abandoned",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe rejected cancellation of {payment_intent_id}: {e}")
            raise PaymentGatewayError(str(e)) from e

    def parse_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookVerificationError("STRIPE_WEBHOOK_SECRET is not configured.")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise WebhookVerificationError("Invalid payload.") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError("Invalid signature.") from e

        obj = _field(_field(event, "data", {}), "object", {})
        return WebhookEvent(
            id=_field(event, "id", ""),
            type=_field(event, "type", ""),
            object_id=_field(obj, "id", ""),
            data={
                "payment_intent": _field(obj, "payment_intent", ""),
                "amount": _field(obj, "amount", 0),
                "amount_refunded": _field(obj, "amount_refunded", 0),
                "currency": str(_field(obj, "currency", "")).upper(),
                "failure_message": _field(
                    _field(obj, "last_payment_error", {}), "message", ""
                ),
                "metadata": dict(_field(obj, "metadata", {}) or {}),
            },
        )


def get_payment_gateway() -> StripePaymentGateway:
    return StripePaymentGateway(
        secret_key=getattr(settings, "STRIPE_SECRET_KEY", ""),
        webhook_secret=getattr(settings, "STRIPE_WEBHOOK_SECRET", ""),
    )
