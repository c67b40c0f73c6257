"""
Booking Price Calculator

Itemised price for a stay: nightly rate with the monthly discount,
cleaning fee, 10% service fee and 13% HST on top.

Every amount is rounded to a whole currency unit (half-up) at the step that
produces it, not once at the end. Totals quoted to guests and charged to
cards depend on this order, so it must not be "simplified".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Union

from shared.domain.value_objects import Money

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.domain.entities import PropertyTerms, StayRequest

Number = Union[int, float, Decimal, str]

MONTHLY_STAY_NIGHTS = 28
SERVICE_FEE_RATE = Decimal("0.10")
TAX_RATE = Decimal("0.13")
DEFAULT_CURRENCY = "CAD"

_WHOLE_UNIT = Decimal("1")
_HUNDRED = Decimal("100")


def _decimal(value: Number | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from dragging binary noise along
    return Decimal(str(value))


def round_amount(value: Decimal) -> Decimal:
    """Round half-up to a whole currency unit"""
    return value.quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    base_price: Decimal
    discounted_nightly_price: Decimal
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    discount_amount: Decimal
    discount_rate: Decimal
    discount_percentage: Decimal
    tax: Decimal
    total: Decimal
    currency: str = DEFAULT_CURRENCY
    is_monthly: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = str(value)
        return data


def calculate_price(
    base_price: Number,
    nights: int,
    cleaning_fee: Number | None = 0,
    monthly_discount_pct: Number | None = 0,
    *,
    currency: str = DEFAULT_CURRENCY,
) -> PriceBreakdown:
    """
    Price a stay of ``nights`` nights.

    The monthly discount only applies from 28 nights on, and only when the
    property has a positive discount percentage configured.
    """
    base = _decimal(base_price)
    cleaning = _decimal(cleaning_fee)
    pct = _decimal(monthly_discount_pct)

    if nights < 1:
        raise ValueError(f"nights must be at least 1, got {nights}")
    if base < 0 or cleaning < 0:
        raise ValueError("prices cannot be negative")
    if base != base.to_integral_value() or cleaning != cleaning.to_integral_value():
        raise ValueError(f"prices are whole currency units, got {base} and {cleaning}")
    if not 0 <= pct <= 100:
        raise ValueError(f"monthly discount must be between 0 and 100, got {pct}")

    is_monthly = nights >= MONTHLY_STAY_NIGHTS
    if is_monthly and pct > 0:
        discount_rate = (_HUNDRED - pct) / _HUNDRED
        discount_percentage = pct
    else:
        discount_rate = Decimal("1")
        discount_percentage = Decimal("0")

    discounted_nightly = round_amount(base * discount_rate)
    subtotal = nights * discounted_nightly
    service_fee = round_amount(subtotal * SERVICE_FEE_RATE)
    discount_amount = nights * base - subtotal
    taxable_amount = subtotal + cleaning + service_fee
    tax = round_amount(taxable_amount * TAX_RATE)
    total = subtotal + cleaning + service_fee + tax

    return PriceBreakdown(
        nights=nights,
        base_price=base,
        discounted_nightly_price=discounted_nightly,
        subtotal=subtotal,
        cleaning_fee=cleaning,
        service_fee=service_fee,
        discount_amount=discount_amount,
        discount_rate=discount_rate,
        discount_percentage=discount_percentage,
        tax=tax,
        total=total,
        currency=currency,
        is_monthly=is_monthly,
    )


@dataclass(frozen=True)
class Quote:
    """Price for a stay plus whether it satisfies the minimum stay"""

    breakdown: PriceBreakdown
    min_nights: int
    meets_min_nights: bool


def quote_stay(terms: "PropertyTerms", stay: "StayRequest") -> Quote:
    breakdown = calculate_price(
        terms.base_price,
        stay.nights,
        terms.cleaning_fee,
        terms.monthly_discount_pct,
        currency=terms.currency,
    )
    return Quote(
        breakdown=breakdown,
        min_nights=terms.min_nights,
        meets_min_nights=stay.nights >= terms.min_nights,
    )


def remaining_amount(total: Number, paid: Number) -> Decimal:
    return max(Decimal("0"), _decimal(total) - _decimal(paid))


def to_minor_units(amount: Number, currency: str = DEFAULT_CURRENCY) -> int:
    """Whole-unit amount in cents, as the payment gateway charges it."""
    return Money(_decimal(amount), currency).to_minor_units()
