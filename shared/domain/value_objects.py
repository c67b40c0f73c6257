"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
- DateRange: Represents a range of dates (check-in to check-out)
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('CAD', 'USD', 'EUR')

# Every supported currency has two decimal places in its minor unit.
MINOR_UNITS_PER_UNIT = 100


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    A non-negative amount in one of the supported currencies. Amounts
    cross the payment gateway boundary in minor units.
    """
    amount: Decimal
    currency: str = 'CAD'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    def to_minor_units(self) -> int:
        """Amount in cents, as payment processors expect it"""
        cents = (self.amount * MINOR_UNITS_PER_UNIT).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
        return int(cents)

    @classmethod
    def from_minor_units(cls, cents: int, currency: str = 'CAD') -> 'Money':
        return cls(Decimal(cents) / MINOR_UNITS_PER_UNIT, currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    Used for booking periods.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def __len__(self) -> int:
        """Number of nights in this range"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
