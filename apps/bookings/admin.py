"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_number",
        "property",
        "guest",
        "status",
        "payment_status",
        "check_in",
        "check_out",
        "total",
        "currency",
        "created_at",
    )
    list_filter = ("status", "payment_status", "check_in", "check_out")
    search_fields = ("booking_number", "property__title", "guest__email", "guest_email")
    readonly_fields = (
        "booking_number",
        "nights",
        "base_price",
        "discounted_nightly_price",
        "subtotal",
        "cleaning_fee",
        "service_fee",
        "discount_amount",
        "discount_percentage",
        "tax",
        "total",
        "currency",
        "created_at",
        "updated_at",
    )
