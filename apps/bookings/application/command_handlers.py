"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Validate, check availability, price and persist a booking
- CancelBookingCommand: Cancel a booking, refund or void its payment
- ConfirmBookingCommand: Confirm a booking after successful payment
- CheckInBookingCommand / CheckOutBookingCommand: Guest arrival and departure
- StartPaymentCommand: Create a payment intent for the booking total
- RecordPaymentFailureCommand: Payment processor declined the payment
- RefundLatePaymentCommand: Payment captured after the booking was cancelled

Handlers receive their collaborators (repositories, payment gateway, unit
of work factory, clock) from apps.bookings.bootstrap; nothing here reaches
for a global database handle.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Union
from uuid import UUID
import logging

from django.db import DatabaseError
from django.utils import timezone

from shared.application.uow import AbstractUnitOfWork
from apps.bookings.domain.availability import conflicting_reservations
from apps.bookings.domain.booking_number import generate_booking_number
from apps.bookings.domain.dates import parse_stay_date, validate_stay
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    PaymentStatus,
    StayRequest,
)
from apps.bookings.domain.errors import (
    AvailabilityConflict,
    DateValidationFailed,
    InvalidStatusTransition,
    PaymentError,
    PersistenceError,
    ValidationError,
)
from apps.bookings.domain.pricing import calculate_price, to_minor_units
from apps.finances.gateway import PaymentGatewayError

logger = logging.getLogger(__name__)

DateInput = Union[date, str]

# Attempts at drawing a booking number nobody holds yet
BOOKING_NUMBER_ATTEMPTS = 5


@contextmanager
def _persistence_guard(action: str):
    """Turn data store failures into PersistenceError"""
    try:
        yield
    except DatabaseError as e:
        logger.error(f"Data store failure while trying to {action}: {e}", exc_info=True)
        raise PersistenceError(f"Could not {action}. Please try again later.") from e


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    Dates may be date objects or ISO strings straight from the request;
    parsing them is part of date validation.
    """
    property_id: int
    guest_id: int
    check_in: DateInput
    check_out: DateInput
    guests: int = 1
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    special_requests: str = ''


@dataclass
class CancelBookingCommand:
    booking_id: UUID
    reason: str = ''


@dataclass
class ConfirmBookingCommand:
    """Command to confirm a booking after successful payment"""
    booking_id: UUID
    payment_intent_id: str = ''
    charge_id: str = ''


@dataclass
class CheckInBookingCommand:
    booking_id: UUID


@dataclass
class CheckOutBookingCommand:
    booking_id: UUID


@dataclass
class StartPaymentCommand:
    booking_id: UUID


@dataclass
class RecordPaymentFailureCommand:
    booking_id: UUID
    payment_intent_id: str = ''
    reason: str = ''


@dataclass
class RefundLatePaymentCommand:
    booking_id: UUID
    payment_intent_id: str
    charge_id: str = ''


# ===== Results =====

@dataclass(frozen=True)
class BookingReceipt:
    booking_id: UUID
    booking_number: str
    total: Decimal
    currency: str
    status: str
    payment_status: str

    @classmethod
    def of(cls, booking: Booking) -> 'BookingReceipt':
        return cls(
            booking_id=booking.id,
            booking_number=booking.booking_number,
            total=booking.price.total,
            currency=booking.price.currency,
            status=booking.status.value,
            payment_status=booking.payment_status.value,
        )


@dataclass(frozen=True)
class PaymentStarted:
    booking_id: UUID
    booking_number: str
    payment_intent_id: str
    client_secret: str
    amount_minor: int
    currency: str


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Order of checks: property exists, stay dates, guest count and stay
    limits, availability, then price. The property row is locked for the
    whole transaction so two requests for overlapping dates are serialized
    and the second one sees the first one's booking.
    """

    def __init__(
        self,
        property_repo,
        booking_repo,
        uow_factory: Callable[[], AbstractUnitOfWork],
        today: Callable[[], date] = timezone.localdate,
        number_generator: Callable[[], str] = generate_booking_number,
    ):
        self.property_repo = property_repo
        self.booking_repo = booking_repo
        self.uow_factory = uow_factory
        self.today = today
        self.number_generator = number_generator

    def handle(self, command: CreateBookingCommand) -> BookingReceipt:
        logger.info(
            f"Creating booking for property {command.property_id}, "
            f"guest {command.guest_id}, dates {command.check_in} - {command.check_out}"
        )

        with _persistence_guard("create the booking"):
            with self.uow_factory() as uow:
                terms = self.property_repo.get_terms(command.property_id, lock=True)

                validation = validate_stay(
                    command.check_in, command.check_out, terms.min_nights, today=self.today()
                )
                if not validation:
                    raise DateValidationFailed(validation.error, validation.message)

                stay = StayRequest(
                    check_in=parse_stay_date(command.check_in),
                    check_out=parse_stay_date(command.check_out),
                    guests=command.guests,
                )
                self._check_limits(terms, stay)

                reservations = self.booking_repo.reservations_between(
                    terms.property_id, stay.check_in, stay.check_out
                )
                conflicts = conflicting_reservations(reservations, stay)
                if conflicts:
                    logger.info(
                        f"Property {terms.property_id} busy for {stay.check_in} - {stay.check_out}: "
                        f"{', '.join(r.booking_number for r in conflicts)}"
                    )
                    raise AvailabilityConflict("The property is not available for the selected dates.")

                price = calculate_price(
                    terms.base_price,
                    validation.nights,
                    terms.cleaning_fee,
                    terms.monthly_discount_pct,
                    currency=terms.currency,
                )

                booking = Booking.create(
                    booking_number=self._unique_booking_number(),
                    property_id=terms.property_id,
                    guest_id=command.guest_id,
                    stay=stay,
                    price=price,
                    guest_name=command.guest_name,
                    guest_email=command.guest_email,
                    guest_phone=command.guest_phone,
                    special_requests=command.special_requests,
                )
                self.booking_repo.add(booking)
                uow.collect_events(booking)

        logger.info(
            f"Booking created successfully: {booking.booking_number} "
            f"(ID: {booking.id}, total {price.total} {price.currency})"
        )
        return BookingReceipt.of(booking)

    @staticmethod
    def _check_limits(terms, stay: StayRequest):
        if stay.guests < 1:
            raise ValidationError("At least one guest is required.")
        if terms.max_guests and stay.guests > terms.max_guests:
            raise ValidationError(
                f"Guests count ({stay.guests}) exceeds property capacity ({terms.max_guests})."
            )
        if terms.max_nights and stay.nights > terms.max_nights:
            raise ValidationError(f"A stay can last at most {terms.max_nights} nights.")

    def _unique_booking_number(self) -> str:
        """
        Draw booking numbers until one is free

        The unique constraint on the column still has the final word; a
        collision that slips between this check and the insert surfaces as
        a PersistenceError.
        """
        for _ in range(BOOKING_NUMBER_ATTEMPTS):
            number = self.number_generator()
            if not self.booking_repo.number_exists(number):
                return number
            logger.warning(f"Booking number collision on {number}, drawing another one")
        raise PersistenceError("Could not allocate a booking number. Please try again.")


class CancelBookingHandler:
    """
    Handler for cancelling a booking

    After the cancellation is committed a captured payment is refunded and
    any intent still awaiting capture is cancelled at the gateway. Gateway
    failures are logged and left for manual follow-up; the booking stays
    cancelled. An intent that gets captured anyway is refunded when its
    success webhook arrives (RefundLatePaymentCommand).
    """

    def __init__(self, booking_repo, payment_repo, gateway, uow_factory,
                 now: Callable[[], datetime] = timezone.now):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.now = now

    def handle(self, command: CancelBookingCommand) -> BookingReceipt:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason!r}")

        with _persistence_guard("cancel the booking"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                refund_due = booking.payment_status == PaymentStatus.COMPLETED

                booking.cancel(command.reason, at=self.now())

                self.booking_repo.save(booking)
                uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} cancelled successfully")

        if refund_due:
            self._refund(booking)
        self._cancel_open_intents(booking)
        return BookingReceipt.of(booking)

    def _refund(self, booking: Booking):
        payment = self.payment_repo.latest_completed(booking.id)
        if payment is None:
            logger.warning(
                f"Booking {booking.booking_number} was paid but has no completed payment to refund"
            )
            return

        try:
            refund_id = self.gateway.refund(payment.payment_intent_id)
        except PaymentGatewayError as e:
            logger.error(
                f"Refund failed for booking {booking.booking_number} "
                f"(intent {payment.payment_intent_id}): {e}"
            )
            return

        self.payment_repo.mark_refunded(payment.payment_intent_id, refund_id=refund_id)
        logger.info(f"Refund {refund_id} issued for booking {booking.booking_number}")

    def _cancel_open_intents(self, booking: Booking):
        for payment in self.payment_repo.open_intents(booking.id):
            try:
                self.gateway.cancel_payment_intent(payment.payment_intent_id)
            except PaymentGatewayError as e:
                # most likely captured meanwhile; its success webhook refunds it
                logger.warning(
                    f"Could not cancel intent {payment.payment_intent_id} "
                    f"of booking {booking.booking_number}: {e}"
                )
                continue
            self.payment_repo.mark_cancelled(payment.payment_intent_id)
            logger.info(
                f"Intent {payment.payment_intent_id} of booking {booking.booking_number} cancelled"
            )


class RefundLatePaymentHandler:
    """
    Handler for a payment captured after its booking was cancelled

    The money goes straight back to the guest. A gateway failure raises
    PaymentError so the webhook delivery is retried; refunds carry an
    idempotency key, a retry never pays out twice.
    """

    def __init__(self, booking_repo, payment_repo, gateway, uow_factory):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo
        self.gateway = gateway
        self.uow_factory = uow_factory

    def handle(self, command: RefundLatePaymentCommand) -> BookingReceipt:
        logger.info(
            f"Payment {command.payment_intent_id} captured for booking {command.booking_id}, "
            f"checking whether it must be refunded"
        )

        booking = self.booking_repo.get(command.booking_id)
        if booking.status != BookingStatus.CANCELLED:
            raise InvalidStatusTransition(
                f"Booking {booking.booking_number} is {booking.status.value}, not cancelled."
            )

        payment = self.payment_repo.find_by_intent(command.payment_intent_id)
        if payment is not None and payment.status == PaymentStatus.REFUNDED.value:
            logger.info(f"Intent {command.payment_intent_id} already refunded")
            return BookingReceipt.of(booking)

        try:
            refund_id = self.gateway.refund(command.payment_intent_id)
        except PaymentGatewayError as e:
            raise PaymentError(f"Refund of a late payment failed: {e}") from e

        with _persistence_guard("record the refund"):
            with self.uow_factory():
                self.payment_repo.mark_succeeded(command.payment_intent_id, command.charge_id)
                self.payment_repo.mark_refunded(command.payment_intent_id, refund_id=refund_id)

        logger.warning(
            f"Refund {refund_id} issued for payment {command.payment_intent_id} "
            f"captured after booking {booking.booking_number} was cancelled"
        )
        return BookingReceipt.of(booking)


class ConfirmBookingHandler:
    """
    Handler for confirming booking after payment

    Payment webhooks can be delivered more than once, so confirming an
    already confirmed booking is a no-op.
    """

    def __init__(self, booking_repo, payment_repo, uow_factory,
                 now: Callable[[], datetime] = timezone.now):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo
        self.uow_factory = uow_factory
        self.now = now

    def handle(self, command: ConfirmBookingCommand) -> BookingReceipt:
        logger.info(f"Confirming booking {command.booking_id}")

        with _persistence_guard("confirm the booking"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)

                if booking.status == BookingStatus.CONFIRMED:
                    logger.info(f"Booking {booking.booking_number} already confirmed")
                    return BookingReceipt.of(booking)

                booking.confirm(at=self.now())

                self.booking_repo.save(booking)
                if command.payment_intent_id:
                    self.payment_repo.mark_succeeded(command.payment_intent_id, command.charge_id)
                uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} confirmed successfully")
        return BookingReceipt.of(booking)


class CheckInBookingHandler:
    """Handler for checking in guest"""

    def __init__(self, booking_repo, uow_factory, now: Callable[[], datetime] = timezone.now):
        self.booking_repo = booking_repo
        self.uow_factory = uow_factory
        self.now = now

    def handle(self, command: CheckInBookingCommand) -> BookingReceipt:
        logger.info(f"Checking in booking {command.booking_id}")

        with _persistence_guard("check in the booking"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                booking.check_in(at=self.now())
                self.booking_repo.save(booking)
                uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} checked in successfully")
        return BookingReceipt.of(booking)


class CheckOutBookingHandler:
    """Handler for checking out guest"""

    def __init__(self, booking_repo, uow_factory, now: Callable[[], datetime] = timezone.now):
        self.booking_repo = booking_repo
        self.uow_factory = uow_factory
        self.now = now

    def handle(self, command: CheckOutBookingCommand) -> BookingReceipt:
        logger.info(f"Checking out booking {command.booking_id}")

        with _persistence_guard("check out the booking"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                booking.check_out(at=self.now())
                self.booking_repo.save(booking)
                uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} checked out successfully")
        return BookingReceipt.of(booking)


class StartPaymentHandler:
    """
    Handler for starting the payment of a booking

    Creates a payment intent for the booking total in minor units. When the
    gateway fails the transaction rolls back and the booking keeps its
    previous payment status, ready for another attempt.
    """

    def __init__(self, booking_repo, payment_repo, gateway, uow_factory):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo
        self.gateway = gateway
        self.uow_factory = uow_factory

    def handle(self, command: StartPaymentCommand) -> PaymentStarted:
        logger.info(f"Starting payment for booking {command.booking_id}")

        with _persistence_guard("start the payment"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                booking.start_payment()

                amount_minor = to_minor_units(booking.price.total, booking.price.currency)
                try:
                    intent = self.gateway.create_payment_intent(
                        str(booking.id),
                        amount_minor,
                        booking.price.currency,
                        metadata={
                            "booking_number": booking.booking_number,
                            "property_id": str(booking.property_id),
                            "guest_email": booking.guest_email,
                        },
                    )
                except PaymentGatewayError as e:
                    raise PaymentError(f"Payment could not be started: {e}") from e

                self.payment_repo.add_intent(booking.id, intent, booking.price.total)
                self.booking_repo.save(booking)
                uow.collect_events(booking)

        logger.info(f"Payment intent {intent.id} created for booking {booking.booking_number}")
        return PaymentStarted(
            booking_id=booking.id,
            booking_number=booking.booking_number,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount_minor=amount_minor,
            currency=intent.currency,
        )


class RecordPaymentFailureHandler:
    """Handler for a payment the processor declined"""

    def __init__(self, booking_repo, payment_repo, uow_factory):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo
        self.uow_factory = uow_factory

    def handle(self, command: RecordPaymentFailureCommand) -> BookingReceipt:
        logger.info(f"Recording payment failure for booking {command.booking_id}: {command.reason}")

        with _persistence_guard("record the payment failure"):
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)

                if command.payment_intent_id:
                    self.payment_repo.mark_failed(command.payment_intent_id, command.reason)

                if booking.payment_status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
                    booking.payment_failed(command.reason)
                    self.booking_repo.save(booking)
                    uow.collect_events(booking)
                else:
                    logger.info(
                        f"Ignoring payment failure for booking {booking.booking_number} "
                        f"with payment status {booking.payment_status.value}"
                    )

        return BookingReceipt.of(booking)
