"""
Booking Repositories

Django ORM implementations of the data access the booking use cases need:
property terms lookup, blocking reservation query, booking reads and writes.
They translate between ORM rows and domain objects so the domain layer
never sees a model instance.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.bookings.domain.availability import Reservation
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    PaymentStatus,
    PropertyTerms,
)
from apps.bookings.domain.errors import BookingNotFound, PropertyNotFound
from apps.bookings.domain.pricing import MONTHLY_STAY_NIGHTS, PriceBreakdown
from apps.bookings.models import Booking as BookingModel
from apps.properties.models import Property as PropertyModel
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class DjangoPropertyRepository:
    """Read access to the property catalog"""

    def get_terms(self, property_id: int, *, active_only: bool = True, lock: bool = False) -> PropertyTerms:
        """
        Pricing and stay rules of a property.

        With lock=True the property row is locked for the rest of the
        transaction; concurrent bookings of the same property queue up
        behind it.
        """
        qs = PropertyModel.objects.filter(pk=property_id)
        if active_only:
            qs = qs.filter(status=PropertyModel.Status.ACTIVE)
        if lock:
            qs = _lock_queryset_if_possible(qs)

        property_obj = qs.first()
        if property_obj is None:
            raise PropertyNotFound(f"Property {property_id} not found or not active.")
        return property_obj.terms()


class DjangoBookingRepository:
    """Booking aggregate persistence"""

    def get(self, booking_id: UUID, *, lock: bool = False) -> Booking:
        qs = BookingModel.objects.filter(pk=booking_id)
        if lock:
            qs = _lock_queryset_if_possible(qs)
        model = qs.first()
        if model is None:
            raise BookingNotFound(f"Booking {booking_id} not found.")
        return self._to_domain(model)

    def get_by_number(self, booking_number: str) -> Booking:
        model = BookingModel.objects.filter(booking_number=booking_number).first()
        if model is None:
            raise BookingNotFound(f"Booking {booking_number} not found.")
        return self._to_domain(model)

    def number_exists(self, booking_number: str) -> bool:
        return BookingModel.objects.filter(booking_number=booking_number).exists()

    def reservations_between(
        self,
        property_id: int,
        check_in: date,
        check_out: date,
        *,
        exclude_booking_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        """Blocking reservations of the property overlapping [check_in, check_out)"""
        qs = BookingModel.objects.filter(
            property_id=property_id,
            status__in=BookingModel.BLOCKING_STATUSES,
            check_in__lt=check_out,
            check_out__gt=check_in,
        )
        if exclude_booking_id is not None:
            qs = qs.exclude(pk=exclude_booking_id)

        return [
            Reservation(
                check_in=row.check_in,
                check_out=row.check_out,
                status=BookingStatus(row.status),
                booking_id=row.id,
                booking_number=row.booking_number,
            )
            for row in qs.only("id", "booking_number", "check_in", "check_out", "status")
        ]

    def add(self, booking: Booking) -> None:
        model = BookingModel(id=booking.id)
        self._apply(booking, model)
        model.save(force_insert=True)
        logger.debug(f"Inserted booking {booking.booking_number} (ID: {booking.id})")

    def save(self, booking: Booking) -> None:
        model = BookingModel.objects.get(pk=booking.id)
        self._apply(booking, model)
        model.save()
        logger.debug(f"Updated booking {booking.booking_number} -> {booking.status.value}")

    # ===== mapping =====

    @staticmethod
    def _apply(booking: Booking, model: BookingModel) -> None:
        price = booking.price
        model.booking_number = booking.booking_number
        model.property_id = booking.property_id
        model.guest_id = booking.guest_id
        model.check_in = booking.check_in_date
        model.check_out = booking.check_out_date
        model.nights = price.nights
        model.guests = booking.guests
        model.guest_name = booking.guest_name
        model.guest_email = booking.guest_email
        model.guest_phone = booking.guest_phone
        model.special_requests = booking.special_requests
        model.base_price = price.base_price
        model.discounted_nightly_price = price.discounted_nightly_price
        model.subtotal = price.subtotal
        model.cleaning_fee = price.cleaning_fee
        model.service_fee = price.service_fee
        model.discount_amount = price.discount_amount
        model.discount_percentage = price.discount_percentage
        model.tax = price.tax
        model.total = price.total
        model.currency = price.currency
        model.status = booking.status.value
        model.payment_status = booking.payment_status.value
        model.cancellation_reason = booking.cancellation_reason
        model.confirmed_at = booking.confirmed_at
        model.checked_in_at = booking.checked_in_at
        model.checked_out_at = booking.checked_out_at
        model.cancelled_at = booking.cancelled_at

    @staticmethod
    def _to_domain(model: BookingModel) -> Booking:
        pct = model.discount_percentage
        price = PriceBreakdown(
            nights=model.nights,
            base_price=model.base_price,
            discounted_nightly_price=model.discounted_nightly_price,
            subtotal=model.subtotal,
            cleaning_fee=model.cleaning_fee,
            service_fee=model.service_fee,
            discount_amount=model.discount_amount,
            discount_rate=(Decimal("100") - pct) / Decimal("100") if pct > 0 else Decimal("1"),
            discount_percentage=pct,
            tax=model.tax,
            total=model.total,
            currency=model.currency,
            is_monthly=model.nights >= MONTHLY_STAY_NIGHTS,
        )
        return Booking(
            id=model.id,
            created_at=model.created_at,
            updated_at=model.updated_at,
            booking_number=model.booking_number,
            property_id=model.property_id,
            guest_id=model.guest_id,
            dates=DateRange(model.check_in, model.check_out),
            guests=model.guests,
            price=price,
            guest_name=model.guest_name,
            guest_email=model.guest_email,
            guest_phone=model.guest_phone,
            special_requests=model.special_requests,
            status=BookingStatus(model.status),
            payment_status=PaymentStatus(model.payment_status),
            cancellation_reason=model.cancellation_reason,
            confirmed_at=model.confirmed_at,
            checked_in_at=model.checked_in_at,
            checked_out_at=model.checked_out_at,
            cancelled_at=model.cancelled_at,
        )
