"""Admin registrations for payments."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Payment, PaymentTransaction


class PaymentTransactionInline(admin.TabularInline):
    model = PaymentTransaction
    extra = 0
    fields = ("event_id", "event", "created_at")
    readonly_fields = fields


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("stripe_payment_intent_id", "booking", "status", "amount", "currency", "paid_at", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("stripe_payment_intent_id", "booking__booking_number", "booking__guest__email")
    readonly_fields = ("created_at", "updated_at", "paid_at", "failed_at", "refunded_at")
    inlines = (PaymentTransactionInline,)
