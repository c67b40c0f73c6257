"""Admin registrations for properties domain."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "city",
        "status",
        "base_price",
        "currency",
        "monthly_discount",
        "min_nights",
        "max_guests",
        "owner",
    )
    list_filter = ("status", "city", "currency")
    search_fields = ("title", "city", "owner__email")
    readonly_fields = ("created_at", "updated_at", "published_at")
    prepopulated_fields = {"slug": ("title",)}
