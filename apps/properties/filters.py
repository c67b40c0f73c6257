"""FilterSet definitions for property listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Property


class PropertyFilterSet(django_filters.FilterSet):
    """FilterSet for Property with the filters used by the listing page."""

    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    price_min = django_filters.NumberFilter(field_name="base_price", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="base_price", lookup_expr="lte")
    bedrooms_min = django_filters.NumberFilter(field_name="bedrooms", lookup_expr="gte")
    guests = django_filters.NumberFilter(field_name="max_guests", lookup_expr="gte")
    monthly = django_filters.BooleanFilter(method="filter_monthly")

    class Meta:
        model = Property
        fields = ["city", "currency"]

    def filter_monthly(self, queryset, name, value):  # type: ignore
        # properties offering a discount on stays of a month or longer
        if value is None:
            return queryset
        if value:
            return queryset.filter(monthly_discount__gt=0)
        return queryset.filter(monthly_discount=0)
