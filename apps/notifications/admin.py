"""Admin registrations for notifications."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import EmailLog


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display = ("sent_at", "template", "recipient", "recipient_type", "status", "booking")
    list_filter = ("status", "recipient_type", "template")
    search_fields = ("recipient", "subject", "booking__booking_number")
    readonly_fields = [field.name for field in EmailLog._meta.fields]
