"""
Availability Check

Decides whether a requested stay collides with the reservations a property
already holds. Stays are half-open ranges [check_in, check_out): the
check-out day is free for the next guest, so back-to-back stays are fine.

This check alone is not atomic. Callers run it inside a transaction that
has locked the property row (see DjangoBookingRepository.reservations_between),
so two concurrent requests for the same property cannot both pass it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Protocol
from uuid import UUID

from apps.bookings.domain.entities import BLOCKING_STATUSES, BookingStatus


class Stay(Protocol):
    check_in: date
    check_out: date


@dataclass(frozen=True)
class Reservation:
    """An existing booking as seen by the availability check"""

    check_in: date
    check_out: date
    status: BookingStatus = BookingStatus.CONFIRMED
    booking_id: Optional[UUID] = None
    booking_number: str = ""

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


def ranges_overlap(first: Stay, second: Stay) -> bool:
    return first.check_in < second.check_out and first.check_out > second.check_in


def conflicting_reservations(
    existing_reservations: Iterable[Reservation],
    candidate: Stay,
) -> List[Reservation]:
    """Blocking reservations that share at least one night with the candidate"""
    return [
        reservation
        for reservation in existing_reservations
        if reservation.is_blocking and ranges_overlap(reservation, candidate)
    ]


def has_conflict(existing_reservations: Iterable[Reservation], candidate: Stay) -> bool:
    """
    True if any confirmed or checked-in reservation overlaps the candidate.

    Pending and cancelled reservations never block.
    """
    return any(
        reservation.is_blocking and ranges_overlap(reservation, candidate)
        for reservation in existing_reservations
    )
