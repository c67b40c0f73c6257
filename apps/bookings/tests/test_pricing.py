"""Tests for the stay price calculator."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from apps.bookings.domain.entities import PropertyTerms, StayRequest
from apps.bookings.domain.pricing import (
    calculate_price,
    quote_stay,
    remaining_amount,
    to_minor_units,
)


def test_monthly_stay_with_discount() -> None:
    price = calculate_price(Decimal("680"), 30, Decimal("80"), Decimal("20"))

    assert price.is_monthly
    assert price.discount_rate == Decimal("0.8")
    assert price.discounted_nightly_price == Decimal("544")
    assert price.subtotal == Decimal("16320")
    assert price.service_fee == Decimal("1632")
    assert price.discount_amount == Decimal("4080")
    assert price.tax == Decimal("2344")
    assert price.total == Decimal("20376")
    assert price.discount_percentage == Decimal("20")
    assert price.currency == "CAD"


@pytest.mark.parametrize("nights", [1, 7, 27])
def test_short_stays_never_get_the_monthly_discount(nights: int) -> None:
    price = calculate_price(680, nights, 80, 50)

    assert not price.is_monthly
    assert price.discount_rate == Decimal("1")
    assert price.discount_amount == Decimal("0")
    assert price.discounted_nightly_price == Decimal("680")


def test_monthly_stay_without_configured_discount() -> None:
    price = calculate_price(100, 28, 0, None)

    assert price.is_monthly
    assert price.discount_rate == Decimal("1")
    assert price.subtotal == Decimal("2800")


def test_each_step_rounds_half_up() -> None:
    # 99 * 0.85 = 84.15 -> 84; 28 * 84 = 2352; fee 235.2 -> 235
    price = calculate_price(99, 28, 15, 15)

    assert price.discounted_nightly_price == Decimal("84")
    assert price.subtotal == Decimal("2352")
    assert price.service_fee == Decimal("235")
    # (2352 + 15 + 235) * 0.13 = 338.26
    assert price.tax == Decimal("338")


@pytest.mark.parametrize(
    "base, nights, cleaning, pct",
    [(680, 30, 80, 20), (99, 3, 0, 0), (151, 45, 60, 12.5), (1, 1, 0, 0)],
)
def test_total_is_sum_of_parts(base, nights, cleaning, pct) -> None:
    price = calculate_price(base, nights, cleaning, pct)

    assert price.total == price.subtotal + price.cleaning_fee + price.service_fee + price.tax


def test_calculation_is_idempotent() -> None:
    assert calculate_price(680, 30, 80, 20) == calculate_price(680, 30, 80, 20)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_price": 100, "nights": 0},
        {"base_price": -1, "nights": 3},
        {"base_price": 100, "nights": 3, "cleaning_fee": -5},
        {"base_price": 100, "nights": 30, "monthly_discount_pct": 120},
        {"base_price": Decimal("99.50"), "nights": 3},
        {"base_price": 100, "nights": 3, "cleaning_fee": Decimal("80.25")},
    ],
)
def test_programming_errors_raise_value_error(kwargs) -> None:
    with pytest.raises(ValueError):
        calculate_price(**kwargs)


def test_to_dict_serialises_decimals_as_strings() -> None:
    data = calculate_price(680, 30, 80, 20).to_dict()

    assert data["total"] == "20376"
    assert data["nights"] == 30
    assert data["is_monthly"] is True


def test_quote_stay_flags_minimum_stay() -> None:
    terms = PropertyTerms(
        property_id=1,
        base_price=Decimal("680"),
        cleaning_fee=Decimal("80"),
        min_nights=28,
        monthly_discount_pct=Decimal("20"),
    )

    short = quote_stay(terms, StayRequest(date(2026, 3, 1), date(2026, 3, 15)))
    long = quote_stay(terms, StayRequest(date(2026, 3, 1), date(2026, 3, 31)))

    assert not short.meets_min_nights
    assert short.breakdown.nights == 14
    assert long.meets_min_nights
    assert long.breakdown.total == Decimal("20376")


def test_minor_units_and_remaining_amount() -> None:
    assert to_minor_units(Decimal("20376")) == 2037600
    assert to_minor_units("12.345") == 1235
    assert remaining_amount(20376, 5000) == Decimal("15376")
    assert remaining_amount(100, 250) == Decimal("0")
