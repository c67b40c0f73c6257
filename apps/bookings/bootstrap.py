"""
Bookings composition root

Builds the message bus with every booking command handler wired to its
collaborators. Callers (views, webhooks, tests) get a fresh bus per use;
nothing is cached at module level, and tests swap collaborators through
the keyword arguments.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from django.utils import timezone  # type: ignore

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CheckInBookingCommand,
    CheckInBookingHandler,
    CheckOutBookingCommand,
    CheckOutBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    RecordPaymentFailureCommand,
    RecordPaymentFailureHandler,
    RefundLatePaymentCommand,
    RefundLatePaymentHandler,
    StartPaymentCommand,
    StartPaymentHandler,
)
from apps.bookings.domain.booking_number import generate_booking_number
from apps.bookings.repositories import DjangoBookingRepository, DjangoPropertyRepository
from apps.finances.gateway import PaymentGateway, get_payment_gateway
from apps.finances.repositories import DjangoPaymentRepository
from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork


def bootstrap(
    *,
    gateway: Optional[PaymentGateway] = None,
    today: Callable[[], date] = timezone.localdate,
    now: Callable[[], datetime] = timezone.now,
    number_generator: Callable[[], str] = generate_booking_number,
    register_notifications: bool = True,
) -> MessageBus:
    bus = MessageBus()

    if register_notifications:
        from apps.notifications import handlers as notification_handlers

        notification_handlers.register(bus)

    gateway = gateway or get_payment_gateway()
    property_repo = DjangoPropertyRepository()
    booking_repo = DjangoBookingRepository()
    payment_repo = DjangoPaymentRepository()

    def uow_factory() -> DjangoUnitOfWork:
        return DjangoUnitOfWork(bus)

    handlers = {
        CreateBookingCommand: CreateBookingHandler(
            property_repo, booking_repo, uow_factory, today=today, number_generator=number_generator
        ),
        CancelBookingCommand: CancelBookingHandler(
            booking_repo, payment_repo, gateway, uow_factory, now=now
        ),
        ConfirmBookingCommand: ConfirmBookingHandler(booking_repo, payment_repo, uow_factory, now=now),
        CheckInBookingCommand: CheckInBookingHandler(booking_repo, uow_factory, now=now),
        CheckOutBookingCommand: CheckOutBookingHandler(booking_repo, uow_factory, now=now),
        StartPaymentCommand: StartPaymentHandler(booking_repo, payment_repo, gateway, uow_factory),
        RecordPaymentFailureCommand: RecordPaymentFailureHandler(booking_repo, payment_repo, uow_factory),
        RefundLatePaymentCommand: RefundLatePaymentHandler(booking_repo, payment_repo, gateway, uow_factory),
    }
    for command_type, handler in handlers.items():
        bus.register_command_handler(command_type, handler.handle)

    return bus
