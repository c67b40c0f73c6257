"""Tests for the booking use cases, run through the message bus."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from itertools import count
from uuid import uuid4

import pytest
from django.db import DatabaseError

from apps.bookings.application.command_handlers import (
    BOOKING_NUMBER_ATTEMPTS,
    CancelBookingCommand,
    CheckInBookingCommand,
    CheckOutBookingCommand,
    ConfirmBookingCommand,
    CreateBookingCommand,
    RecordPaymentFailureCommand,
    RefundLatePaymentCommand,
    StartPaymentCommand,
)
from apps.bookings.bootstrap import bootstrap
from apps.bookings.domain.booking_number import BOOKING_NUMBER_RE
from apps.bookings.domain.dates import DateError
from apps.bookings.domain.errors import (
    AvailabilityConflict,
    BookingNotFound,
    DateValidationFailed,
    InvalidStatusTransition,
    NotCancellable,
    PaymentError,
    PersistenceError,
    PropertyNotFound,
    ValidationError,
)
from apps.bookings.domain.events import BookingCreated
from apps.bookings.models import Booking
from apps.bookings.repositories import DjangoBookingRepository
from apps.finances.gateway import PaymentGatewayError, PaymentIntent
from apps.finances.models import Payment
from apps.properties.models import Property
from apps.users.models import CustomUser

pytestmark = pytest.mark.django_db

TODAY = date(2026, 2, 20)


class FakeGateway:
    """In-memory payment gateway recording what the handlers asked for."""

    def __init__(self, fail_intents: bool = False, fail_refunds: bool = False, fail_cancels: bool = False):
        self.fail_intents = fail_intents
        self.fail_refunds = fail_refunds
        self.fail_cancels = fail_cancels
        self.intents: list[tuple[str, int, str]] = []
        self.refunds: list[str] = []
        self.cancelled: list[str] = []
        self._ids = count(1)

    def create_payment_intent(self, booking_id, amount_minor, currency, metadata=None):
        if self.fail_intents:
            raise PaymentGatewayError("card network unavailable")
        self.intents.append((booking_id, amount_minor, currency))
        intent_id = f"pi_fake_{next(self._ids)}"
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            status="requires_payment_method",
            amount_minor=amount_minor,
            currency=currency.upper(),
        )

    def refund(self, payment_intent_id, amount_minor=None):
        if self.fail_refunds:
            raise PaymentGatewayError("refund declined")
        self.refunds.append(payment_intent_id)
        return f"re_fake_{len(self.refunds)}"

    def cancel_payment_intent(self, payment_intent_id):
        if self.fail_cancels:
            raise PaymentGatewayError("This PaymentIntent has already succeeded")
        self.cancelled.append(payment_intent_id)

    def parse_webhook(self, payload, signature):  # pragma: no cover - unused here
        raise NotImplementedError


@pytest.fixture
def guest() -> CustomUser:
    return CustomUser.objects.create_user(email="guest@example.com", password="GuestPass123")


@pytest.fixture
def listing() -> Property:
    return Property.objects.create(
        title="Loft on King Street",
        city="Toronto",
        status=Property.Status.ACTIVE,
        base_price=Decimal("680.00"),
        cleaning_fee=Decimal("80.00"),
        monthly_discount=Decimal("20.00"),
        min_nights=28,
        max_guests=4,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def bus(gateway: FakeGateway):
    return bootstrap(gateway=gateway, today=lambda: TODAY, register_notifications=False)


def _create(bus, listing, guest, check_in="2026-03-01", check_out="2026-03-31", guests=2):
    return bus.handle_command(
        CreateBookingCommand(
            property_id=listing.pk,
            guest_id=guest.pk,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            guest_email=guest.email,
        )
    )


def _paid_booking(bus, listing, guest, **dates):
    receipt = _create(bus, listing, guest, **dates)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))
    bus.handle_command(
        ConfirmBookingCommand(booking_id=receipt.booking_id, payment_intent_id=started.payment_intent_id)
    )
    return receipt, started


# ===== Create =====

def test_create_booking_snapshots_price(bus, listing, guest) -> None:
    receipt = _create(bus, listing, guest)

    assert receipt.status == "PENDING"
    assert receipt.payment_status == "PENDING"
    assert receipt.total == Decimal("20376")
    assert receipt.currency == "CAD"
    assert BOOKING_NUMBER_RE.match(receipt.booking_number)

    booking = Booking.objects.get(pk=receipt.booking_id)
    assert booking.nights == 30
    assert booking.guests == 2
    assert booking.discounted_nightly_price == Decimal("544")
    assert booking.discount_amount == Decimal("4080")
    assert booking.tax == Decimal("2344")
    assert booking.total == Decimal("20376")


def test_stay_below_minimum_is_rejected(bus, listing, guest) -> None:
    with pytest.raises(DateValidationFailed) as excinfo:
        _create(bus, listing, guest, check_out="2026-03-15")

    assert excinfo.value.date_error is DateError.BELOW_MINIMUM_STAY
    assert excinfo.value.to_dict()["reason"] == "below_minimum_stay"
    assert not Booking.objects.exists()


def test_past_check_in_is_rejected(bus, listing, guest) -> None:
    with pytest.raises(DateValidationFailed) as excinfo:
        _create(bus, listing, guest, check_in="2026-01-01", check_out="2026-02-15")

    assert excinfo.value.date_error is DateError.PAST_CHECK_IN


def test_guest_count_over_capacity_is_rejected(bus, listing, guest) -> None:
    with pytest.raises(ValidationError):
        _create(bus, listing, guest, guests=5)


def test_stay_over_max_nights_is_rejected(bus, listing, guest) -> None:
    listing.max_nights = 29
    listing.save()

    with pytest.raises(ValidationError):
        _create(bus, listing, guest)


def test_inactive_property_is_not_bookable(bus, listing, guest) -> None:
    listing.status = Property.Status.INACTIVE
    listing.save()

    with pytest.raises(PropertyNotFound):
        _create(bus, listing, guest)


def test_pending_bookings_do_not_block_dates(bus, listing, guest) -> None:
    _create(bus, listing, guest)
    _create(bus, listing, guest, check_in="2026-03-10", check_out="2026-04-10")

    assert Booking.objects.count() == 2


def test_confirmed_booking_blocks_overlapping_stay(bus, listing, guest) -> None:
    _paid_booking(bus, listing, guest)

    with pytest.raises(AvailabilityConflict):
        _create(bus, listing, guest, check_in="2026-03-15", check_out="2026-04-15")


def test_back_to_back_stay_is_accepted(bus, listing, guest) -> None:
    _paid_booking(bus, listing, guest)

    receipt = _create(bus, listing, guest, check_in="2026-03-31", check_out="2026-04-30")

    assert receipt.status == "PENDING"


def test_booking_number_collision_draws_again(listing, guest, gateway) -> None:
    numbers = iter(["STY-1-AAAA", "STY-1-AAAA", "STY-1-BBBB"])
    bus = bootstrap(
        gateway=gateway,
        today=lambda: TODAY,
        number_generator=lambda: next(numbers),
        register_notifications=False,
    )

    first = _create(bus, listing, guest)
    second = _create(bus, listing, guest)

    assert first.booking_number == "STY-1-AAAA"
    assert second.booking_number == "STY-1-BBBB"


def test_booking_number_attempts_are_bounded(listing, guest, gateway) -> None:
    calls = []

    def same_number() -> str:
        calls.append(1)
        return "STY-1-AAAA"

    bus = bootstrap(
        gateway=gateway,
        today=lambda: TODAY,
        number_generator=same_number,
        register_notifications=False,
    )
    _create(bus, listing, guest)

    with pytest.raises(PersistenceError):
        _create(bus, listing, guest)
    assert len(calls) == 1 + BOOKING_NUMBER_ATTEMPTS
    assert Booking.objects.count() == 1


def test_data_store_failure_becomes_persistence_error(
    bus, listing, guest, monkeypatch, django_capture_on_commit_callbacks
) -> None:
    published = []
    bus.register_event_handler(BookingCreated, published.append)

    with django_capture_on_commit_callbacks(execute=True):
        _create(bus, listing, guest)
    assert len(published) == 1

    def failing_add(self, booking) -> None:
        raise DatabaseError("disk I/O error")

    monkeypatch.setattr(DjangoBookingRepository, "add", failing_add)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(PersistenceError) as excinfo:
            _create(bus, listing, guest, check_in="2026-04-01", check_out="2026-05-01")

    assert excinfo.value.http_status == 500
    assert isinstance(excinfo.value.__cause__, DatabaseError)
    assert callbacks == []
    assert len(published) == 1
    assert Booking.objects.count() == 1


# ===== Payment =====

def test_start_payment_creates_intent_in_minor_units(bus, listing, guest, gateway) -> None:
    receipt = _create(bus, listing, guest)

    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    assert started.amount_minor == 2037600
    assert started.currency == "CAD"
    assert gateway.intents == [(str(receipt.booking_id), 2037600, "CAD")]

    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.PROCESSING
    assert payment.amount == Decimal("20376")
    assert Booking.objects.get(pk=receipt.booking_id).payment_status == "PROCESSING"


def test_gateway_failure_leaves_booking_pending(listing, guest) -> None:
    bus = bootstrap(
        gateway=FakeGateway(fail_intents=True), today=lambda: TODAY, register_notifications=False
    )
    receipt = _create(bus, listing, guest)

    with pytest.raises(PaymentError):
        bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    booking = Booking.objects.get(pk=receipt.booking_id)
    assert booking.status == "PENDING"
    assert booking.payment_status == "PENDING"
    assert not Payment.objects.exists()


def test_confirm_is_idempotent(bus, listing, guest) -> None:
    receipt, started = _paid_booking(bus, listing, guest)

    again = bus.handle_command(
        ConfirmBookingCommand(booking_id=receipt.booking_id, payment_intent_id=started.payment_intent_id)
    )

    assert again.status == "CONFIRMED"
    assert again.payment_status == "COMPLETED"
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.COMPLETED
    assert payment.paid_at is not None


def test_payment_failure_is_recorded(bus, listing, guest) -> None:
    receipt = _create(bus, listing, guest)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    result = bus.handle_command(
        RecordPaymentFailureCommand(
            booking_id=receipt.booking_id,
            payment_intent_id=started.payment_intent_id,
            reason="Your card was declined.",
        )
    )

    assert result.status == "PENDING"
    assert result.payment_status == "FAILED"
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.FAILED
    assert payment.error_message == "Your card was declined."


def test_late_payment_failure_does_not_touch_confirmed_booking(bus, listing, guest) -> None:
    receipt, _ = _paid_booking(bus, listing, guest)

    result = bus.handle_command(RecordPaymentFailureCommand(booking_id=receipt.booking_id))

    assert result.status == "CONFIRMED"
    assert result.payment_status == "COMPLETED"


# ===== Cancel, check-in, check-out =====

def test_cancel_unpaid_booking_skips_refund(bus, listing, guest, gateway) -> None:
    receipt = _create(bus, listing, guest)

    result = bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id, reason="plans changed"))

    assert result.status == "CANCELLED"
    assert gateway.refunds == []
    booking = Booking.objects.get(pk=receipt.booking_id)
    assert booking.cancellation_reason == "plans changed"
    assert booking.cancelled_at is not None


def test_cancel_paid_booking_refunds_payment(bus, listing, guest, gateway) -> None:
    receipt, started = _paid_booking(bus, listing, guest)

    bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))

    assert gateway.refunds == [started.payment_intent_id]
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.REFUNDED
    assert payment.refund_amount == Decimal("20376")
    assert payment.metadata["refund_id"] == "re_fake_1"


def test_refund_failure_keeps_booking_cancelled(listing, guest, caplog) -> None:
    gateway = FakeGateway(fail_refunds=True)
    bus = bootstrap(gateway=gateway, today=lambda: TODAY, register_notifications=False)
    receipt, started = _paid_booking(bus, listing, guest)

    with caplog.at_level(logging.ERROR, logger="apps.bookings.application.command_handlers"):
        result = bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))

    assert result.status == "CANCELLED"
    assert "Refund failed" in caplog.text
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.COMPLETED


def test_check_in_and_out(bus, listing, guest) -> None:
    receipt, _ = _paid_booking(bus, listing, guest)

    assert bus.handle_command(CheckInBookingCommand(booking_id=receipt.booking_id)).status == "CHECKED_IN"

    with pytest.raises(NotCancellable):
        bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))

    assert bus.handle_command(CheckOutBookingCommand(booking_id=receipt.booking_id)).status == "CHECKED_OUT"
    booking = Booking.objects.get(pk=receipt.booking_id)
    assert booking.checked_in_at is not None
    assert booking.checked_out_at is not None


def test_check_in_requires_confirmed_booking(bus, listing, guest) -> None:
    receipt = _create(bus, listing, guest)

    with pytest.raises(InvalidStatusTransition):
        bus.handle_command(CheckInBookingCommand(booking_id=receipt.booking_id))


def test_unknown_booking(bus) -> None:
    with pytest.raises(BookingNotFound):
        bus.handle_command(CancelBookingCommand(booking_id=uuid4()))


def test_cancel_during_payment_voids_open_intent(bus, listing, guest, gateway) -> None:
    receipt = _create(bus, listing, guest)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    result = bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))

    assert result.status == "CANCELLED"
    assert gateway.cancelled == [started.payment_intent_id]
    assert gateway.refunds == []
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.CANCELLED


def test_payment_captured_after_cancellation_is_refunded(listing, guest, caplog) -> None:
    gateway = FakeGateway(fail_cancels=True)
    bus = bootstrap(gateway=gateway, today=lambda: TODAY, register_notifications=False)
    receipt = _create(bus, listing, guest)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    with caplog.at_level(logging.WARNING, logger="apps.bookings.application.command_handlers"):
        bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))
    assert "Could not cancel intent" in caplog.text
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.PROCESSING

    late = RefundLatePaymentCommand(booking_id=receipt.booking_id, payment_intent_id=started.payment_intent_id)
    result = bus.handle_command(late)
    bus.handle_command(late)

    assert result.status == "CANCELLED"
    assert gateway.refunds == [started.payment_intent_id]
    payment.refresh_from_db()
    assert payment.status == Payment.Status.REFUNDED
    assert payment.refund_amount == Decimal("20376")
    assert payment.paid_at is not None


def test_late_payment_refund_requires_cancelled_booking(bus, listing, guest, gateway) -> None:
    receipt = _create(bus, listing, guest)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))

    with pytest.raises(InvalidStatusTransition):
        bus.handle_command(
            RefundLatePaymentCommand(booking_id=receipt.booking_id, payment_intent_id=started.payment_intent_id)
        )
    assert gateway.refunds == []


def test_late_payment_refund_failure_raises_payment_error(listing, guest) -> None:
    gateway = FakeGateway(fail_cancels=True, fail_refunds=True)
    bus = bootstrap(gateway=gateway, today=lambda: TODAY, register_notifications=False)
    receipt = _create(bus, listing, guest)
    started = bus.handle_command(StartPaymentCommand(booking_id=receipt.booking_id))
    bus.handle_command(CancelBookingCommand(booking_id=receipt.booking_id))

    with pytest.raises(PaymentError):
        bus.handle_command(
            RefundLatePaymentCommand(booking_id=receipt.booking_id, payment_intent_id=started.payment_intent_id)
        )
    payment = Payment.objects.get(stripe_payment_intent_id=started.payment_intent_id)
    assert payment.status == Payment.Status.PROCESSING


def test_only_confirmed_and_checked_in_rows_hold_dates(bus, listing, guest) -> None:
    assert set(Booking.BLOCKING_STATUSES) == {"CONFIRMED", "CHECKED_IN"}

    pending = _create(bus, listing, guest)
    paid, _ = _paid_booking(bus, listing, guest, check_in="2026-04-01", check_out="2026-05-01")

    reservations = DjangoBookingRepository().reservations_between(
        listing.pk, date(2026, 3, 1), date(2026, 6, 1)
    )

    assert [r.booking_id for r in reservations] == [paid.booking_id]
    assert pending.booking_id not in {r.booking_id for r in reservations}
