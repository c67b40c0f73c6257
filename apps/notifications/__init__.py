"""Notifications app package.

Sends the booking e-mails (guest receipt, admin alert, confirmation) from
Celery tasks triggered by booking domain events, and keeps a delivery log
of every attempt.
"""
