"""Payment models for StayNeos."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """One Stripe payment intent raised for a booking."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Created, awaiting payment")
        PROCESSING = "PROCESSING", _("Processing")
        COMPLETED = "COMPLETED", _("Paid")
        FAILED = "FAILED", _("Failed")
        REFUNDED = "REFUNDED", _("Refunded")
        CANCELLED = "CANCELLED", _("Cancelled before capture")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PROCESSING)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="CAD")
    stripe_payment_intent_id = models.CharField(max_length=255, unique=True)
    stripe_client_secret = models.CharField(max_length=255, blank=True)
    stripe_charge_id = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["booking", "status"], name="payment_booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Payment {self.stripe_payment_intent_id} ({self.status})"

    def mark_success(self, charge_id: str | None = None) -> None:
        self.status = self.Status.COMPLETED
        if charge_id:
            self.stripe_charge_id = charge_id
        self.paid_at = timezone.now()
        self.save(update_fields=["status", "stripe_charge_id", "paid_at", "updated_at"])

    def mark_failed(self, reason: str | None = None) -> None:
        self.status = self.Status.FAILED
        self.error_message = reason or ""
        self.failed_at = timezone.now()
        self.save(update_fields=["status", "error_message", "failed_at", "updated_at"])

    def mark_cancelled(self) -> None:
        self.status = self.Status.CANCELLED
        self.save(update_fields=["status", "updated_at"])

    def mark_refunded(self, amount: Decimal | None = None, refund_id: str | None = None) -> None:
        self.status = self.Status.REFUNDED
        self.refund_amount = self.amount if amount is None else amount
        if refund_id:
            self.metadata["refund_id"] = refund_id
        self.refunded_at = timezone.now()
        self.save(update_fields=["status", "refund_amount", "metadata", "refunded_at", "updated_at"])


class PaymentTransaction(models.Model):
    """Webhook deliveries received from Stripe."""

    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="transactions",
        null=True,
        blank=True,
    )
    event_id = models.CharField(max_length=255, unique=True)
    event = models.CharField(max_length=100)
    payload = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment transaction")
        verbose_name_plural = _("Payment transactions")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.event} for payment {self.payment_id}"
