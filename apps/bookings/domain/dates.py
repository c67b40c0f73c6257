"""Stay date validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from django.utils import timezone  # type: ignore
from django.utils.dateparse import parse_date  # type: ignore

DateInput = Union[date, str, None]

ONE_DAY = timedelta(days=1)


class DateError(Enum):
    INVALID_DATE = "invalid_date"
    PAST_CHECK_IN = "past_check_in"
    INVALID_RANGE = "invalid_range"
    BELOW_MINIMUM_STAY = "below_minimum_stay"


@dataclass(frozen=True)
class StayValidation:
    """Outcome of validate_stay(); truthy when the stay is acceptable."""

    valid: bool
    error: Optional[DateError] = None
    message: str = ""
    nights: Optional[int] = None

    def __bool__(self) -> bool:
        return self.valid


def parse_stay_date(value: DateInput) -> Optional[date]:
    """Return a date for a date/datetime/ISO string, or None if it can't be read."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return parse_date(value.strip())
    except ValueError:
        # well formed but impossible, e.g. 2026-02-30
        return None


def count_nights(check_in: date, check_out: date) -> int:
    return math.ceil((check_out - check_in) / ONE_DAY)


def validate_stay(
    check_in: DateInput,
    check_out: DateInput,
    min_nights: int = 1,
    *,
    today: Optional[date] = None,
) -> StayValidation:
    """
    Check stay dates against the calendar and the property's minimum stay.

    Checks run in order and the first failure wins: unreadable date,
    check-in before today, check-out not after check-in, too few nights.
    """
    start = parse_stay_date(check_in)
    end = parse_stay_date(check_out)
    if start is None or end is None:
        return StayValidation(False, DateError.INVALID_DATE, "Please choose valid dates.")

    today = today or timezone.localdate()
    if start < today:
        return StayValidation(False, DateError.PAST_CHECK_IN, "Check-in date cannot be in the past.")

    if end <= start:
        return StayValidation(
            False, DateError.INVALID_RANGE, "Check-out date must be after the check-in date."
        )

    nights = count_nights(start, end)
    if nights < min_nights:
        return StayValidation(
            False,
            DateError.BELOW_MINIMUM_STAY,
            f"A minimum stay of {min_nights} nights is required.",
            nights,
        )

    return StayValidation(True, nights=nights)
