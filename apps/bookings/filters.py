"""FilterSet for the guest's booking list."""

from __future__ import annotations

import django_filters  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """``status`` groups bookings the way the guest dashboard tabs do."""

    STATUS_GROUPS = (
        ("all", "All"),
        ("upcoming", "Upcoming"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    )

    status = django_filters.ChoiceFilter(choices=STATUS_GROUPS, method="filter_status")
    property = django_filters.NumberFilter(field_name="property_id")
    check_in_from = django_filters.DateFilter(field_name="check_in", lookup_expr="gte")
    check_in_to = django_filters.DateFilter(field_name="check_in", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = ["status", "property", "payment_status"]

    def filter_status(self, queryset, name, value):  # type: ignore
        if value == "upcoming":
            return queryset.filter(
                status__in=[Booking.Status.PENDING, Booking.Status.CONFIRMED],
                check_in__gte=timezone.localdate(),
            )
        if value == "active":
            return queryset.filter(status__in=[Booking.Status.CONFIRMED, Booking.Status.CHECKED_IN])
        if value == "completed":
            return queryset.filter(status=Booking.Status.CHECKED_OUT)
        if value == "cancelled":
            return queryset.filter(status=Booking.Status.CANCELLED)
        return queryset
