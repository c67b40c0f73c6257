from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("slug", models.SlugField(blank=True, max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("active", "Active"), ("inactive", "Inactive")],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("city", models.CharField(max_length=100)),
                ("address_line", models.CharField(blank=True, max_length=255)),
                ("bedrooms", models.PositiveSmallIntegerField(default=1)),
                ("bathrooms", models.PositiveSmallIntegerField(default=1)),
                ("max_guests", models.PositiveSmallIntegerField(default=2)),
                (
                    "base_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Undiscounted nightly rate.",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        choices=[("CAD", "Canadian dollar"), ("USD", "US dollar"), ("EUR", "Euro")],
                        default="CAD",
                        max_length=3,
                    ),
                ),
                (
                    "cleaning_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "monthly_discount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Percentage off the nightly rate for stays of 28 nights or more.",
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                (
                    "min_nights",
                    models.PositiveSmallIntegerField(
                        default=28, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("max_nights", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="property_status_idx"),
                    models.Index(fields=["city", "status"], name="property_city_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("monthly_discount__gte", 0), ("monthly_discount__lte", 100)),
                        name="property_monthly_discount_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_nights__isnull", True),
                            ("max_nights__gte", models.F("min_nights")),
                            _connector="OR",
                        ),
                        name="property_stay_limits_valid",
                    ),
                ],
            },
        ),
    ]
