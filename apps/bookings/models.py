"""Booking persistence models for StayNeos.

The ORM model is the storage shape of the Booking aggregate in
``apps.bookings.domain.entities``; lifecycle rules live in the aggregate and
the repository maps between the two.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import BLOCKING_STATUSES


class Booking(models.Model):
    """Reservation of a property with its price snapshot."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending payment")
        CONFIRMED = "CONFIRMED", _("Confirmed")
        CHECKED_IN = "CHECKED_IN", _("Checked in")
        CHECKED_OUT = "CHECKED_OUT", _("Checked out")
        CANCELLED = "CANCELLED", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", _("Awaiting payment")
        PROCESSING = "PROCESSING", _("Processing")
        COMPLETED = "COMPLETED", _("Paid")
        FAILED = "FAILED", _("Failed")
        REFUNDED = "REFUNDED", _("Refunded")

    BLOCKING_STATUSES = tuple(status.value for status in BLOCKING_STATUSES)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_number = models.CharField(max_length=32, unique=True, editable=False)
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    check_in = models.DateField()
    check_out = models.DateField()
    nights = models.PositiveSmallIntegerField()
    guests = models.PositiveSmallIntegerField(default=1)

    guest_name = models.CharField(max_length=255, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=20, blank=True)
    special_requests = models.TextField(blank=True)

    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Nightly rate of the property when the booking was made."),
    )
    discounted_nightly_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    cleaning_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    service_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="CAD")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(nights__gte=1),
                name="booking_positive_nights",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["guest", "status"], name="booking_guest_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_number} for {self.property_id}"
