"""Integration tests for payment intents and the Stripe webhook."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock

import stripe
from django.core import mail
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.application.command_handlers import CreateBookingCommand
from apps.bookings.bootstrap import bootstrap
from apps.bookings.models import Booking
from apps.finances.gateway import PaymentGatewayError
from apps.finances.models import Payment, PaymentTransaction
from apps.properties.models import Property
from apps.users.models import CustomUser


def stripe_event(event_id: str, event_type: str, obj: dict) -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


class PaymentAPITests(APITestCase):
    """Payment intent creation in emulation mode and webhook processing."""

    def setUp(self) -> None:
        self.guest = CustomUser.objects.create_user(email="guest@example.com", password="GuestPass123")
        self.stranger = CustomUser.objects.create_user(email="stranger@example.com", password="Pass12345")
        self.property = Property.objects.create(
            title="Loft on King Street",
            city="Toronto",
            status=Property.Status.ACTIVE,
            base_price=Decimal("680.00"),
            cleaning_fee=Decimal("80.00"),
            monthly_discount=Decimal("20.00"),
            min_nights=2,
            max_guests=4,
        )
        check_in = timezone.localdate() + timedelta(days=7)
        receipt = bootstrap(register_notifications=False).handle_command(
            CreateBookingCommand(
                property_id=self.property.id,
                guest_id=self.guest.id,
                check_in=check_in,
                check_out=check_in + timedelta(days=30),
                guests=2,
                guest_email=self.guest.email,
            )
        )
        self.booking = Booking.objects.get(pk=receipt.booking_id)
        self.intent_url = reverse("finances:payment-intent")
        self.webhook_url = reverse("finances:stripe-webhook")

    def _start_payment(self) -> dict:
        self.client.force_authenticate(self.guest)
        response = self.client.post(self.intent_url, {"booking_id": str(self.booking.id)}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.client.force_authenticate(None)
        return response.data

    def _deliver(self, event: dict):
        with mock.patch("stripe.Webhook.construct_event", return_value=event) as construct:
            response = self.client.post(
                self.webhook_url,
                data=b'{"id": "evt"}',
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=signature",
            )
        construct.assert_called_once_with(b'{"id": "evt"}', "t=1,v1=signature", "whsec_test")
        return response

    def test_payment_intent_in_emulation_mode(self) -> None:
        data = self._start_payment()

        self.assertEqual(data["amount"], 2037600)
        self.assertEqual(data["currency"], "CAD")
        self.assertEqual(data["booking_number"], self.booking.booking_number)
        self.assertTrue(data["payment_intent_id"].startswith("pi_emulated_"))
        self.assertTrue(data["client_secret"])

        payment = Payment.objects.get(stripe_payment_intent_id=data["payment_intent_id"])
        self.assertEqual(payment.booking, self.booking)
        self.assertEqual(payment.amount, Decimal("20376"))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.PROCESSING)

    def test_payment_intent_for_someone_elses_booking(self) -> None:
        self.client.force_authenticate(self.stranger)
        response = self.client.post(self.intent_url, {"booking_id": str(self.booking.id)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(Payment.objects.exists())

    def test_payment_intent_for_cancelled_booking(self) -> None:
        Booking.objects.filter(pk=self.booking.pk).update(status=Booking.Status.CANCELLED)
        self.client.force_authenticate(self.guest)

        response = self.client.post(self.intent_url, {"booking_id": str(self.booking.id)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "invalid_status_transition")

    def test_successful_payment_confirms_booking(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        event = stripe_event(
            "evt_succeeded_1",
            "payment_intent.succeeded",
            {"id": intent_id, "metadata": {"booking_id": str(self.booking.id)}},
        )

        with self.captureOnCommitCallbacks(execute=True):
            response = self._deliver(event)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["outcome"], "confirmed")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.COMPLETED)
        self.assertEqual(
            Payment.objects.get(stripe_payment_intent_id=intent_id).status, Payment.Status.COMPLETED
        )
        self.assertTrue(PaymentTransaction.objects.filter(event_id="evt_succeeded_1").exists())
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("confirmed", mail.outbox[0].subject)

    def test_duplicate_event_is_acknowledged_once(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        event = stripe_event("evt_dup", "payment_intent.succeeded", {"id": intent_id, "metadata": {}})

        first = self._deliver(event)
        second = self._deliver(event)

        self.assertEqual(first.data["outcome"], "confirmed")
        self.assertEqual(second.data["outcome"], "already_processed")
        self.assertEqual(PaymentTransaction.objects.filter(event_id="evt_dup").count(), 1)

    def test_failed_payment_is_recorded(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        event = stripe_event(
            "evt_failed_1",
            "payment_intent.payment_failed",
            {
                "id": intent_id,
                "metadata": {"booking_id": str(self.booking.id)},
                "last_payment_error": {"message": "Your card was declined."},
            },
        )

        response = self._deliver(event)

        self.assertEqual(response.data["outcome"], "payment_failed")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.PENDING)
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.FAILED)
        payment = Payment.objects.get(stripe_payment_intent_id=intent_id)
        self.assertEqual(payment.error_message, "Your card was declined.")

    def _cancel_booking(self) -> None:
        self.client.force_authenticate(self.guest)
        response = self.client.post(
            reverse("bookings:booking-cancel", args=[self.booking.id]), {}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.client.force_authenticate(None)

    def test_cancelling_during_payment_voids_the_intent(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]

        self._cancel_booking()

        payment = Payment.objects.get(stripe_payment_intent_id=intent_id)
        self.assertEqual(payment.status, Payment.Status.CANCELLED)

    def test_payment_captured_after_cancellation_is_refunded(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        self._cancel_booking()
        event = stripe_event(
            "evt_late", "payment_intent.succeeded", {"id": intent_id, "metadata": {}}
        )

        response = self._deliver(event)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["outcome"], "refunded_after_cancellation")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CANCELLED)
        payment = Payment.objects.get(stripe_payment_intent_id=intent_id)
        self.assertEqual(payment.status, Payment.Status.REFUNDED)
        self.assertEqual(payment.refund_amount, Decimal("20376"))
        self.assertTrue(payment.metadata["refund_id"].startswith("re_emulated_"))

    def test_failed_refund_of_late_payment_is_retried(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        self._cancel_booking()
        event = stripe_event(
            "evt_late_retry", "payment_intent.succeeded", {"id": intent_id, "metadata": {}}
        )

        with mock.patch(
            "apps.finances.gateway.StripePaymentGateway.refund",
            side_effect=PaymentGatewayError("api unavailable"),
        ):
            failed = self._deliver(event)
        retried = self._deliver(event)

        self.assertEqual(failed.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(failed.data["error"], "payment_error")
        self.assertEqual(retried.data["outcome"], "refunded_after_cancellation")
        self.assertEqual(PaymentTransaction.objects.filter(event_id="evt_late_retry").count(), 1)

    def test_refund_event_marks_payment_refunded(self) -> None:
        intent_id = self._start_payment()["payment_intent_id"]
        event = stripe_event(
            "evt_refund",
            "charge.refunded",
            {"id": "ch_1", "payment_intent": intent_id, "amount_refunded": 500000, "currency": "cad"},
        )

        response = self._deliver(event)

        self.assertEqual(response.data["outcome"], "refunded")
        payment = Payment.objects.get(stripe_payment_intent_id=intent_id)
        self.assertEqual(payment.status, Payment.Status.REFUNDED)
        self.assertEqual(payment.refund_amount, Decimal("5000"))

    def test_unknown_event_type_is_ignored(self) -> None:
        response = self._deliver(stripe_event("evt_other", "customer.created", {"id": "cus_1"}))

        self.assertEqual(response.data["outcome"], "ignored")

    def test_event_for_unknown_intent(self) -> None:
        response = self._deliver(
            stripe_event("evt_lost", "payment_intent.succeeded", {"id": "pi_unknown", "metadata": {}})
        )

        self.assertEqual(response.data["outcome"], "booking_not_found")

    def test_invalid_signature_is_rejected(self) -> None:
        error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=bad")
        with mock.patch("stripe.Webhook.construct_event", side_effect=error):
            response = self.client.post(
                self.webhook_url,
                data=b"{}",
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=bad",
            )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "invalid_webhook")
        self.assertFalse(PaymentTransaction.objects.exists())

    def test_guest_lists_own_payments(self) -> None:
        self._start_payment()

        self.client.force_authenticate(self.guest)
        own = self.client.get(reverse("finances:payment-list"))
        self.client.force_authenticate(self.stranger)
        other = self.client.get(reverse("finances:payment-list"))

        self.assertEqual(own.data["count"], 1)
        self.assertEqual(own.data["results"][0]["booking_number"], self.booking.booking_number)
        self.assertEqual(other.data["count"], 0)
