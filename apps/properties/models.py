"""Property catalog models for StayNeos.

A property carries everything the booking engine needs to price a stay:
nightly base price, cleaning fee, monthly discount and stay limits.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import PropertyTerms

# The booking engine rounds every amount to whole units
WHOLE_UNIT_FIELDS = ("base_price", "cleaning_fee")


class Property(models.Model):
    """Furnished rental listed for short and monthly stays."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    class Currency(models.TextChoices):
        CAD = "CAD", _("Canadian dollar")
        USD = "USD", _("US dollar")
        EUR = "EUR", _("Euro")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="properties",
    )
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    city = models.CharField(max_length=100)
    address_line = models.CharField(max_length=255, blank=True)
    bedrooms = models.PositiveSmallIntegerField(default=1)
    bathrooms = models.PositiveSmallIntegerField(default=1)
    max_guests = models.PositiveSmallIntegerField(default=2)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Undiscounted nightly rate."),
    )
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.CAD)
    cleaning_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    monthly_discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text=_("Percentage off the nightly rate for stays of 28 nights or more."),
    )
    min_nights = models.PositiveSmallIntegerField(default=28, validators=[MinValueValidator(1)])
    max_nights = models.PositiveSmallIntegerField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(monthly_discount__gte=0) & models.Q(monthly_discount__lte=100),
                name="property_monthly_discount_range",
            ),
            models.CheckConstraint(
                condition=models.Q(max_nights__isnull=True) | models.Q(max_nights__gte=models.F("min_nights")),
                name="property_stay_limits_valid",
            ),
        ]
        indexes = [
            models.Index(fields=["status"], name="property_status_idx"),
            models.Index(fields=["city", "status"], name="property_city_status_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def activate(self) -> None:
        if self.status != self.Status.ACTIVE:
            self.status = self.Status.ACTIVE
            self.published_at = timezone.now()
            self.save(update_fields=["status", "published_at"])

    def terms(self) -> PropertyTerms:
        """Snapshot of the pricing and stay rules used by the booking engine."""
        return PropertyTerms(
            property_id=self.pk,
            base_price=self.base_price,
            currency=self.currency,
            cleaning_fee=self.cleaning_fee,
            min_nights=self.min_nights,
            max_nights=self.max_nights,
            monthly_discount_pct=self.monthly_discount,
            max_guests=self.max_guests,
            title=self.title,
        )

    def clean(self) -> None:
        errors = {}
        for name in WHOLE_UNIT_FIELDS:
            value = getattr(self, name)
            if value is not None and Decimal(str(value)) % 1:
                errors[name] = _("Prices are charged in whole currency units.")
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):  # type: ignore
        self.clean()
        if not self.slug:
            base_slug = slugify(self.title)[:200] or "property"
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)
