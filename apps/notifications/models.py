"""E-mail delivery log.

Every booking e-mail attempt is recorded, successful or not, so support
staff can see what a guest was told and when.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class EmailLog(models.Model):
    """One attempt at sending one e-mail."""

    class RecipientType(models.TextChoices):
        GUEST = "GUEST", _("Guest")
        ADMIN = "ADMIN", _("Admin")

    class Status(models.TextChoices):
        SENT = "SENT", _("Sent")
        FAILED = "FAILED", _("Failed")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="email_logs",
    )
    recipient = models.EmailField()
    recipient_type = models.CharField(max_length=10, choices=RecipientType.choices)
    subject = models.CharField(max_length=255)
    template = models.CharField(max_length=50)
    status = models.CharField(max_length=10, choices=Status.choices)
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-sent_at']
        verbose_name = _("E-mail log")
        verbose_name_plural = _("E-mail logs")

    def __str__(self) -> str:
        return f"{self.template} to {self.recipient}: {self.status}"
