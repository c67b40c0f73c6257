"""Finances app package.

Payments for bookings through Stripe: payment intents for the booking
total, refunds on cancellation and the webhook that confirms bookings once
the money has arrived.
"""
