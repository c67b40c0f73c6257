"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingCreateSerializer(serializers.Serializer):
    """
    Booking request from a guest.

    Only the shape is checked here. Dates stay strings so the date
    validator reports unreadable dates with its own reason code, and the
    property is looked up by the create use case.
    """

    property = serializers.IntegerField(min_value=1)
    check_in = serializers.CharField()
    check_out = serializers.CharField()
    guests = serializers.IntegerField(min_value=1, default=1)
    guest_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    guest_email = serializers.EmailField(required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Booking with its price snapshot."""

    guest_id = serializers.ReadOnlyField(source="guest.id")
    property_id = serializers.ReadOnlyField(source="property.id")
    property_title = serializers.ReadOnlyField(source="property.title")

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "guest_id",
            "property_id",
            "property_title",
            "check_in",
            "check_out",
            "nights",
            "guests",
            "guest_name",
            "guest_email",
            "guest_phone",
            "special_requests",
            "status",
            "payment_status",
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
            "cancellation_reason",
            "confirmed_at",
            "checked_in_at",
            "checked_out_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
