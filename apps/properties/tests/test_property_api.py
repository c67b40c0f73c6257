"""Integration tests for the property catalog and price quotes."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.properties.models import Property
from apps.users.models import CustomUser


class PropertyAPITests(APITestCase):
    """Catalog listing, filtering and the quote endpoint."""

    def setUp(self) -> None:
        self.owner = CustomUser.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
        )
        self.loft = Property.objects.create(
            owner=self.owner,
            title="Loft on King Street",
            city="Toronto",
            status=Property.Status.ACTIVE,
            base_price=Decimal("680.00"),
            cleaning_fee=Decimal("80.00"),
            monthly_discount=Decimal("20.00"),
            min_nights=28,
            bedrooms=2,
            max_guests=4,
        )
        self.studio = Property.objects.create(
            owner=self.owner,
            title="Studio in the Plateau",
            city="Montreal",
            status=Property.Status.ACTIVE,
            base_price=Decimal("120.00"),
            min_nights=2,
            bedrooms=1,
            max_guests=2,
        )
        self.draft = Property.objects.create(
            owner=self.owner,
            title="Unpublished condo",
            city="Toronto",
            base_price=Decimal("300.00"),
        )
        self.start = timezone.localdate() + timedelta(days=14)

    def _quote_url(self, prop: Property) -> str:
        return reverse("properties:property-quote", args=[prop.id])

    def _ids(self, response) -> set[int]:
        return {item["id"] for item in response.data["results"]}

    def test_list_shows_only_active_properties(self) -> None:
        response = self.client.get(reverse("properties:property-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._ids(response), {self.loft.id, self.studio.id})

    def test_filters(self) -> None:
        url = reverse("properties:property-list")

        self.assertEqual(self._ids(self.client.get(url, {"city": "toronto"})), {self.loft.id})
        self.assertEqual(self._ids(self.client.get(url, {"price_max": "200"})), {self.studio.id})
        self.assertEqual(self._ids(self.client.get(url, {"guests": 3})), {self.loft.id})
        self.assertEqual(self._ids(self.client.get(url, {"monthly": "true"})), {self.loft.id})
        self.assertEqual(self._ids(self.client.get(url, {"bedrooms_min": 2})), {self.loft.id})

    def test_draft_property_detail_is_hidden(self) -> None:
        response = self.client.get(reverse("properties:property-detail", args=[self.draft.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_monthly_quote(self) -> None:
        response = self.client.get(
            self._quote_url(self.loft),
            {"check_in": str(self.start), "check_out": str(self.start + timedelta(days=30)), "guests": 2},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["valid"])
        self.assertTrue(response.data["meets_min_nights"])
        self.assertTrue(response.data["available"])
        self.assertTrue(response.data["within_capacity"])
        price = response.data["price"]
        self.assertEqual(price["nights"], 30)
        self.assertEqual(Decimal(price["discounted_nightly_price"]), Decimal("544"))
        self.assertEqual(Decimal(price["discount_amount"]), Decimal("4080"))
        self.assertEqual(Decimal(price["tax"]), Decimal("2344"))
        self.assertEqual(Decimal(price["total"]), Decimal("20376"))

    def test_short_quote_is_priced_but_flagged(self) -> None:
        response = self.client.get(
            self._quote_url(self.loft),
            {"check_in": str(self.start), "check_out": str(self.start + timedelta(days=14))},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["valid"])
        self.assertEqual(response.data["reason"], "below_minimum_stay")
        self.assertFalse(response.data["meets_min_nights"])
        self.assertEqual(Decimal(response.data["price"]["discount_amount"]), Decimal("0"))

    def test_quote_over_capacity_is_flagged(self) -> None:
        response = self.client.get(
            self._quote_url(self.studio),
            {"check_in": str(self.start), "check_out": str(self.start + timedelta(days=3)), "guests": 5},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["within_capacity"])

    def test_quote_reports_unavailable_dates(self) -> None:
        Booking.objects.create(
            booking_number="STY-TEST-0001",
            guest=self.owner,
            property=self.studio,
            check_in=self.start,
            check_out=self.start + timedelta(days=4),
            nights=4,
            guests=1,
            base_price=Decimal("120"),
            discounted_nightly_price=Decimal("120"),
            subtotal=Decimal("480"),
            service_fee=Decimal("48"),
            tax=Decimal("69"),
            total=Decimal("597"),
            status=Booking.Status.CONFIRMED,
        )

        overlapping = self.client.get(
            self._quote_url(self.studio),
            {"check_in": str(self.start + timedelta(days=2)), "check_out": str(self.start + timedelta(days=5))},
        )
        back_to_back = self.client.get(
            self._quote_url(self.studio),
            {"check_in": str(self.start + timedelta(days=4)), "check_out": str(self.start + timedelta(days=6))},
        )

        self.assertFalse(overlapping.data["available"])
        self.assertTrue(back_to_back.data["available"])

    def test_quote_with_reversed_dates_is_rejected(self) -> None:
        response = self.client.get(
            self._quote_url(self.studio),
            {"check_in": str(self.start), "check_out": str(self.start - timedelta(days=2))},
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["reason"], "invalid_range")

    def test_quote_with_past_and_reversed_dates_is_rejected(self) -> None:
        past = timezone.localdate() - timedelta(days=3)
        response = self.client.get(
            self._quote_url(self.studio),
            {"check_in": str(past), "check_out": str(past - timedelta(days=1))},
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["reason"], "invalid_range")

    def test_quote_with_unreadable_date(self) -> None:
        response = self.client.get(
            self._quote_url(self.studio), {"check_in": "soon", "check_out": str(self.start)}
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["reason"], "invalid_date")

    def test_fractional_prices_are_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            Property.objects.create(
                title="Condo with odd pricing",
                city="Toronto",
                base_price=Decimal("99.50"),
                cleaning_fee=Decimal("80.25"),
            )

        self.assertEqual(set(ctx.exception.message_dict), {"base_price", "cleaning_fee"})
        self.assertFalse(Property.objects.filter(title="Condo with odd pricing").exists())

        self.loft.base_price = Decimal("680.40")
        with self.assertRaises(ValidationError):
            self.loft.save()
        self.loft.refresh_from_db()
        self.assertEqual(self.loft.base_price, Decimal("680.00"))
