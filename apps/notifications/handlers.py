"""Booking event subscribers that queue the notification tasks."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import BookingConfirmed, BookingCreated
from shared.application.message_bus import MessageBus

from .tasks import send_booking_confirmed_email_task, send_booking_created_emails

logger = logging.getLogger(__name__)


def on_booking_created(event: BookingCreated) -> None:
    logger.info(f"Queueing e-mails for new booking {event.booking_number}")
    send_booking_created_emails.delay(str(event.booking_id))


def on_booking_confirmed(event: BookingConfirmed) -> None:
    logger.info(f"Queueing confirmation e-mail for booking {event.booking_number}")
    send_booking_confirmed_email_task.delay(str(event.booking_id))


def register(bus: MessageBus) -> None:
    bus.register_event_handler(BookingCreated, on_booking_created)
    bus.register_event_handler(BookingConfirmed, on_booking_confirmed)
