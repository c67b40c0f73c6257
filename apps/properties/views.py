"""Property API views."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.domain.availability import has_conflict
from apps.bookings.domain.dates import DateError, parse_stay_date, validate_stay
from apps.bookings.domain.entities import StayRequest
from apps.bookings.domain.errors import DateValidationFailed
from apps.bookings.domain.pricing import quote_stay
from apps.bookings.repositories import DjangoBookingRepository

from .filters import PropertyFilterSet
from .models import Property
from .serializers import PropertySerializer, QuoteQuerySerializer

logger = logging.getLogger(__name__)

# without a usable date range there is nothing to price
_UNPRICEABLE = {DateError.INVALID_DATE, DateError.INVALID_RANGE}


class PropertyViewSet(viewsets.ReadOnlyModelViewSet):
    """Public catalog of bookable properties."""

    queryset = Property.objects.select_related("owner")
    serializer_class = PropertySerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = PropertyFilterSet
    ordering_fields = ["base_price", "created_at", "min_nights"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if getattr(user, "is_staff", False):
            return qs
        return qs.filter(status=Property.Status.ACTIVE)

    def filter_queryset(self, queryset):  # type: ignore
        # the quote query string shares the "guests" name with the catalog filter
        if self.action == "quote":
            return queryset
        return super().filter_queryset(queryset)

    @action(detail=True, methods=["get"], url_path="quote")
    def quote(self, request, pk=None):  # type: ignore
        """
        Price a stay without booking it.

        Query: check_in, check_out (YYYY-MM-DD) and optional guests.
        The response carries the itemised price together with the date
        validation outcome and whether the dates are still free, so the
        booking form can show all three at once.
        """
        property_obj = self.get_object()
        query = QuoteQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        terms = property_obj.terms()
        validation = validate_stay(
            query.validated_data["check_in"],
            query.validated_data["check_out"],
            terms.min_nights,
        )
        if validation.error in _UNPRICEABLE:
            error = DateValidationFailed(validation.error, validation.message)
            return Response(error.to_dict(), status=error.http_status)

        check_in = parse_stay_date(query.validated_data["check_in"])
        check_out = parse_stay_date(query.validated_data["check_out"])
        # a past check-in stops validation before the range check
        if check_out <= check_in:
            error = DateValidationFailed(
                DateError.INVALID_RANGE, "Check-out date must be after the check-in date."
            )
            return Response(error.to_dict(), status=error.http_status)

        stay = StayRequest(check_in=check_in, check_out=check_out, guests=query.validated_data["guests"])
        quote = quote_stay(terms, stay)
        reservations = DjangoBookingRepository().reservations_between(
            property_obj.pk, stay.check_in, stay.check_out
        )
        available = not has_conflict(reservations, stay)

        logger.debug(
            f"Quote for property {property_obj.pk}: {stay.check_in}..{stay.check_out} "
            f"total={quote.breakdown.total} available={available}"
        )
        return Response(
            {
                "property": property_obj.pk,
                "check_in": stay.check_in.isoformat(),
                "check_out": stay.check_out.isoformat(),
                "guests": stay.guests,
                "valid": validation.valid,
                "reason": validation.error.value if validation.error else None,
                "message": validation.message,
                "min_nights": quote.min_nights,
                "meets_min_nights": quote.meets_min_nights,
                "within_capacity": stay.guests <= terms.max_guests,
                "available": available,
                "price": quote.breakdown.to_dict(),
            },
            status=status.HTTP_200_OK,
        )
