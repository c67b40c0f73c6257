"""Human-readable booking numbers, e.g. STY-MF3K9Z2A-7QX2."""

from __future__ import annotations

import re
import secrets
import string
import time
from typing import Callable, Optional

PREFIX = "STY"
RANDOM_LENGTH = 4
BOOKING_NUMBER_RE = re.compile(r"^STY-[0-9A-Z]+-[0-9A-Z]{4}$")

_BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_booking_number(
    *,
    now_ms: Optional[int] = None,
    choice: Callable[[str], str] = secrets.choice,
) -> str:
    """
    STY-<base36 millisecond timestamp>-<4 random base36 chars>

    Collision resistance comes only from the timestamp and the random part;
    callers persisting the number must still rely on a unique constraint.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    random_part = "".join(choice(_BASE36_ALPHABET) for _ in range(RANDOM_LENGTH))
    return f"{PREFIX}-{to_base36(now_ms)}-{random_part}"


def is_booking_number(value: str) -> bool:
    return bool(BOOKING_NUMBER_RE.match(value or ""))
