"""Booking e-mail notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import escape, strip_tags  # type: ignore

from .models import EmailLog

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)

TEMPLATE_BOOKING_RECEIVED = "BOOKING_RECEIVED"
TEMPLATE_ADMIN_NOTIFICATION = "ADMIN_NOTIFICATION"
TEMPLATE_BOOKING_CONFIRMED = "BOOKING_CONFIRMED"


def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
    log_template: str = "",
    recipient_type: str = EmailLog.RecipientType.GUEST,
    booking: "Booking | None" = None,
) -> bool:
    """
    Send one e-mail and record the attempt in EmailLog.

    Returns True if the mail backend accepted the message. Failures are
    logged and reported through the return value; they never propagate,
    a booking must not fail because an e-mail could not be sent.
    """
    status = EmailLog.Status.SENT
    error_message = ""
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )
        logger.info(f"Email sent successfully to {recipient_email}: {subject}")

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        status = EmailLog.Status.FAILED
        error_message = str(e)

    EmailLog.objects.create(
        booking=booking,
        recipient=recipient_email,
        recipient_type=recipient_type,
        subject=subject[:255],
        template=log_template or (template_name or "")[:50],
        status=status,
        error_message=error_message,
    )
    return status == EmailLog.Status.SENT


def _booking_context(booking: "Booking") -> dict:
    guest = booking.guest
    return {
        "booking": booking,
        "guest_name": booking.guest_name or getattr(guest, "display_name", "") or guest.email,
        "guest_email": booking.guest_email or guest.email,
        "guest_phone": booking.guest_phone,
        "property_title": booking.property.title,
        "check_in": booking.check_in.strftime("%Y-%m-%d"),
        "check_out": booking.check_out.strftime("%Y-%m-%d"),
        "nights": booking.nights,
        "guests": booking.guests,
        "subtotal": booking.subtotal,
        "cleaning_fee": booking.cleaning_fee,
        "service_fee": booking.service_fee,
        "tax": booking.tax,
        "total": booking.total,
        "currency": booking.currency,
        "booking_number": booking.booking_number,
    }


def _escaped(context: dict) -> dict:
    """Context values safe to drop into an HTML body."""
    return {key: escape(value) if isinstance(value, str) else value for key, value in context.items()}


def send_booking_received_email(booking: "Booking") -> bool:
    """Receipt sent to the guest right after the booking is created."""
    context = _booking_context(booking)
    subject = f"Booking received - {context['property_title']} - {booking.booking_number}"
    html = _escaped(context)

    html_message = f"""
    <html>
    <body>
        <h2>Hello {html['guest_name']},</h2>
        <p>We have received your booking request. It will be confirmed as soon as the payment goes through.</p>

        <h3>Booking details:</h3>
        <ul>
            <li><strong>Booking number:</strong> {html['booking_number']}</li>
            <li><strong>Property:</strong> {html['property_title']}</li>
            <li><strong>Check-in:</strong> {html['check_in']}</li>
            <li><strong>Check-out:</strong> {html['check_out']}</li>
            <li><strong>Nights:</strong> {html['nights']}</li>
            <li><strong>Guests:</strong> {html['guests']}</li>
        </ul>

        <h3>Price:</h3>
        <ul>
            <li>Stay: {html['subtotal']} {html['currency']}</li>
            <li>Cleaning fee: {html['cleaning_fee']} {html['currency']}</li>
            <li>Service fee: {html['service_fee']} {html['currency']}</li>
            <li>HST: {html['tax']} {html['currency']}</li>
            <li><strong>Total: {html['total']} {html['currency']}</strong></li>
        </ul>

        <p>Thank you,<br>The StayNeos team</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=context["guest_email"],
        subject=subject,
        template_name=None,
        context=context,
        html_message=html_message,
        log_template=TEMPLATE_BOOKING_RECEIVED,
        recipient_type=EmailLog.RecipientType.GUEST,
        booking=booking,
    )


def send_new_booking_admin_email(booking: "Booking") -> bool:
    """Alert for the operations mailbox about a new booking."""
    admin_email = getattr(settings, "BOOKING_ADMIN_EMAIL", "")
    if not admin_email:
        logger.warning("BOOKING_ADMIN_EMAIL is not configured, skipping admin notification")
        return False

    context = _booking_context(booking)
    subject = f"New booking - {context['property_title']} - {booking.booking_number}"
    html = _escaped(context)

    html_message = f"""
    <html>
    <body>
        <h2>New booking</h2>

        <ul>
            <li><strong>Booking number:</strong> {html['booking_number']}</li>
            <li><strong>Property:</strong> {html['property_title']}</li>
            <li><strong>Guest:</strong> {html['guest_name']} ({html['guest_email']})</li>
            <li><strong>Phone:</strong> {html['guest_phone'] or '-'}</li>
            <li><strong>Dates:</strong> {html['check_in']} - {html['check_out']} ({html['nights']} nights)</li>
            <li><strong>Total:</strong> {html['total']} {html['currency']}</li>
        </ul>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=admin_email,
        subject=subject,
        template_name=None,
        context=context,
        html_message=html_message,
        log_template=TEMPLATE_ADMIN_NOTIFICATION,
        recipient_type=EmailLog.RecipientType.ADMIN,
        booking=booking,
    )


def send_booking_confirmed_email(booking: "Booking") -> bool:
    """Sent to the guest once the payment has been captured."""
    context = _booking_context(booking)
    subject = f"Booking {booking.booking_number} confirmed!"
    html = _escaped(context)

    html_message = f"""
    <html>
    <body>
        <h2>Hello {html['guest_name']},</h2>
        <p>Your payment went through and your booking is confirmed.</p>

        <ul>
            <li><strong>Booking number:</strong> {html['booking_number']}</li>
            <li><strong>Property:</strong> {html['property_title']}</li>
            <li><strong>Check-in:</strong> {html['check_in']}</li>
            <li><strong>Check-out:</strong> {html['check_out']}</li>
            <li><strong>Paid:</strong> {html['total']} {html['currency']}</li>
        </ul>

        <p>Check-in instructions will follow closer to your arrival.</p>

        <p>Thank you,<br>The StayNeos team</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=context["guest_email"],
        subject=subject,
        template_name=None,
        context=context,
        html_message=html_message,
        log_template=TEMPLATE_BOOKING_CONFIRMED,
        recipient_type=EmailLog.RecipientType.GUEST,
        booking=booking,
    )
