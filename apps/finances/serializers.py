"""Serializers for payments."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    booking_number = serializers.ReadOnlyField(source="booking.booking_number")

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "booking_number",
            "status",
            "amount",
            "currency",
            "stripe_payment_intent_id",
            "refund_amount",
            "paid_at",
            "failed_at",
            "refunded_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentIntentRequestSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
