"""Celery tasks for booking e-mails."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from apps.bookings.models import Booking

from .services import (
    send_booking_confirmed_email,
    send_booking_received_email,
    send_new_booking_admin_email,
)

logger = logging.getLogger(__name__)


def _load_booking(booking_id: str) -> Booking | None:
    booking = Booking.objects.select_related("property", "guest").filter(pk=booking_id).first()
    if booking is None:
        logger.warning(f"Booking {booking_id} vanished before its e-mail was sent")
    return booking


@shared_task(name="notifications.send_booking_created_emails")
def send_booking_created_emails(booking_id: str) -> dict[str, bool]:
    """Guest receipt plus admin alert for a new booking."""
    booking = _load_booking(booking_id)
    if booking is None:
        return {"guest": False, "admin": False}
    return {
        "guest": send_booking_received_email(booking),
        "admin": send_new_booking_admin_email(booking),
    }


@shared_task(name="notifications.send_booking_confirmed_email")
def send_booking_confirmed_email_task(booking_id: str) -> bool:
    booking = _load_booking(booking_id)
    if booking is None:
        return False
    return send_booking_confirmed_email(booking)
