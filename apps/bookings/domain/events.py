"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money, DateRange


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (PENDING/PENDING)

    Triggers:
    - Send booking received e-mail to guest
    - Notify the admin mailbox
    """
    booking_id: UUID
    booking_number: str
    property_id: int
    guest_id: int
    dates: DateRange
    total: Money
    guest_email: str = ''


@dataclass
class BookingConfirmed(DomainEvent):
    """
    Event: Booking paid and confirmed (PENDING -> CONFIRMED)

    Triggers:
    - Send booking confirmed e-mail to guest
    """
    booking_id: UUID
    booking_number: str
    property_id: int
    guest_id: int


@dataclass
class BookingCheckedIn(DomainEvent):
    """Event: Guest has checked in (CONFIRMED -> CHECKED_IN)"""
    booking_id: UUID
    property_id: int


@dataclass
class BookingCheckedOut(DomainEvent):
    """Event: Guest has checked out (CHECKED_IN -> CHECKED_OUT)"""
    booking_id: UUID
    property_id: int
    guest_id: int


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    refund_due is set when the guest had already paid.
    """
    booking_id: UUID
    booking_number: str
    property_id: int
    reason: str
    old_status: str
    refund_due: bool = False


@dataclass
class BookingPaymentFailed(DomainEvent):
    """Event: The payment processor declined the booking payment"""
    booking_id: UUID
    booking_number: str
    reason: str = ''
