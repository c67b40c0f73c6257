"""Serializers for the properties domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    owner = serializers.ReadOnlyField(source="owner_id")

    class Meta:
        model = Property
        fields = [
            "id",
            "owner",
            "title",
            "slug",
            "description",
            "status",
            "city",
            "address_line",
            "bedrooms",
            "bathrooms",
            "max_guests",
            "base_price",
            "currency",
            "cleaning_fee",
            "monthly_discount",
            "min_nights",
            "max_nights",
            "published_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class QuoteQuerySerializer(serializers.Serializer):
    """Query string of the quote endpoint.

    Dates stay plain strings here; parsing them is the date validator's job so
    that an unreadable date is reported the same way everywhere.
    """

    check_in = serializers.CharField()
    check_out = serializers.CharField()
    guests = serializers.IntegerField(min_value=1, required=False, default=1)
