"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Main aggregate representing a reservation
- BookingStatus: FSM states for booking lifecycle
- PaymentStatus: Payment state tracking
- PropertyTerms / StayRequest: inputs of a pricing attempt
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from shared.domain.base import Aggregate, utcnow
from shared.domain.value_objects import Money, DateRange
from apps.bookings.domain.errors import (
    AlreadyCancelled,
    InvalidStatusTransition,
    NotCancellable,
)
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCheckedOut,
    BookingConfirmed,
    BookingCreated,
    BookingPaymentFailed,
)
from apps.bookings.domain.pricing import PriceBreakdown


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (payment succeeded)
    - PENDING -> CANCELLED
    - CONFIRMED -> CHECKED_IN (guest arrived)
    - CONFIRMED -> CANCELLED
    - CHECKED_IN -> CHECKED_OUT (guest left)
    """
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    CHECKED_IN = 'CHECKED_IN'
    CHECKED_OUT = 'CHECKED_OUT'
    CANCELLED = 'CANCELLED'


class PaymentStatus(Enum):
    """
    Payment status, tracked independently of the booking status

    PENDING -> PROCESSING -> COMPLETED | FAILED, FAILED -> PROCESSING on retry,
    COMPLETED -> REFUNDED when a paid booking is cancelled.
    """
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'


# Only these reservations keep other guests off the property's dates
BLOCKING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN})

CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


@dataclass(frozen=True)
class PropertyTerms:
    """Pricing and stay rules of a property at the time of a request"""
    property_id: int
    base_price: Decimal
    currency: str = 'CAD'
    cleaning_fee: Decimal = Decimal('0')
    min_nights: int = 1
    max_nights: Optional[int] = None
    monthly_discount_pct: Decimal = Decimal('0')
    max_guests: Optional[int] = None
    title: str = ''


@dataclass(frozen=True)
class StayRequest:
    check_in: date
    check_out: date
    guests: int = 1

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def as_range(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)


@dataclass(eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Represents a guest's reservation of a property for specific dates.
    The price breakdown is a snapshot taken at creation and never
    recalculated afterwards.

    Key invariants:
    - check_in < check_out (enforced by DateRange)
    - only CONFIRMED / CHECKED_IN bookings block property dates
    - CHECKED_IN and CHECKED_OUT bookings cannot be cancelled
    """

    booking_number: str
    property_id: int
    guest_id: int
    dates: DateRange
    guests: int
    price: PriceBreakdown

    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    special_requests: str = ''

    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING

    cancellation_reason: str = ''

    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def create(cls, *, booking_number: str, property_id: int, guest_id: int,
               stay: StayRequest, price: PriceBreakdown, **contact) -> 'Booking':
        """New PENDING booking; records BookingCreated"""
        booking = cls(
            booking_number=booking_number,
            property_id=property_id,
            guest_id=guest_id,
            dates=stay.as_range(),
            guests=stay.guests,
            price=price,
            **contact,
        )
        booking.add_event(BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            booking_number=booking.booking_number,
            property_id=property_id,
            guest_id=guest_id,
            dates=booking.dates,
            total=booking.total,
            guest_email=booking.guest_email,
        ))
        return booking

    def _transition_error(self, action: str) -> InvalidStatusTransition:
        return InvalidStatusTransition(
            f"Cannot {action} booking {self.booking_number} "
            f"in status {self.status.value}/{self.payment_status.value}."
        )

    def confirm(self, at: Optional[datetime] = None):
        """
        Confirm payment (PENDING -> CONFIRMED)

        Called when the payment processor reports success.
        Events: BookingConfirmed
        """
        if self.status != BookingStatus.PENDING:
            raise self._transition_error("confirm")

        self.status = BookingStatus.CONFIRMED
        self.payment_status = PaymentStatus.COMPLETED
        self.confirmed_at = at or utcnow()
        self.touch()

        self.add_event(BookingConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            booking_number=self.booking_number,
            property_id=self.property_id,
            guest_id=self.guest_id,
        ))

    def check_in(self, at: Optional[datetime] = None):
        """Check in guest (CONFIRMED -> CHECKED_IN)"""
        if self.status != BookingStatus.CONFIRMED:
            raise self._transition_error("check in")

        self.status = BookingStatus.CHECKED_IN
        self.checked_in_at = at or utcnow()
        self.touch()

        self.add_event(BookingCheckedIn(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
        ))

    def check_out(self, at: Optional[datetime] = None):
        """Check out guest (CHECKED_IN -> CHECKED_OUT)"""
        if self.status != BookingStatus.CHECKED_IN:
            raise self._transition_error("check out")

        self.status = BookingStatus.CHECKED_OUT
        self.checked_out_at = at or utcnow()
        self.touch()

        self.add_event(BookingCheckedOut(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
            guest_id=self.guest_id,
        ))

    def cancel(self, reason: str = '', at: Optional[datetime] = None):
        """
        Cancel booking (PENDING | CONFIRMED -> CANCELLED)

        Payment status becomes REFUNDED. Whether money actually has to go
        back is carried on the event as refund_due.
        Events: BookingCancelled
        """
        if self.status == BookingStatus.CANCELLED:
            raise AlreadyCancelled(f"Booking {self.booking_number} is already cancelled.")
        if self.status not in CANCELLABLE_STATUSES:
            raise NotCancellable(
                f"Booking {self.booking_number} cannot be cancelled "
                f"after check-in (status {self.status.value})."
            )

        old_status = self.status
        refund_due = self.payment_status == PaymentStatus.COMPLETED

        self.status = BookingStatus.CANCELLED
        self.payment_status = PaymentStatus.REFUNDED
        self.cancellation_reason = reason
        self.cancelled_at = at or utcnow()
        self.touch()

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            booking_number=self.booking_number,
            property_id=self.property_id,
            reason=reason,
            old_status=old_status.value,
            refund_due=refund_due,
        ))

    def start_payment(self):
        """
        Payment intent created (PENDING | FAILED -> PROCESSING)

        A booking already PROCESSING may get a fresh intent when the guest
        abandons the first checkout.
        """
        if self.status != BookingStatus.PENDING or self.payment_status not in (
            PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED
        ):
            raise self._transition_error("start payment for")
        self.payment_status = PaymentStatus.PROCESSING
        self.touch()

    def payment_failed(self, reason: str = ''):
        """Processor declined the payment (PENDING | PROCESSING -> FAILED)"""
        if self.payment_status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            raise self._transition_error("fail payment for")
        self.payment_status = PaymentStatus.FAILED
        self.touch()

        self.add_event(BookingPaymentFailed(
            aggregate_id=self.id,
            booking_id=self.id,
            booking_number=self.booking_number,
            reason=reason,
        ))

    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATUSES

    def blocks_dates(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def check_in_date(self) -> date:
        return self.dates.start_date

    @property
    def check_out_date(self) -> date:
        return self.dates.end_date

    @property
    def nights(self) -> int:
        return len(self.dates)

    @property
    def total(self) -> Money:
        return Money(self.price.total, self.price.currency)

    def __str__(self):
        return f"Booking {self.booking_number} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_number={self.booking_number}, "
            f"status={self.status.value}, dates={self.dates})"
        )
