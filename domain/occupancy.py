"""Occupancy Accounting and Admission Decision

Occupancy is derived on every request from the pending/confirmed
reservations that overlap the queried window. A stay is admitted only if it
fits on every single night it touches (peak occupancy), not on average.

Two availability views are kept apart:

* inventory-aware: ``compute_occupancy`` / ``decide_admission`` /
  ``build_inventory_calendar`` count rooms against ``total_rooms``;
* single-room: ``find_blocking_reservation`` / ``build_booked_calendar``
  treat any overlapping reservation as fully blocking.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from domain.entities import Reservation
from domain.value_objects import DateRange

DEFAULT_HORIZON_DAYS = 30


class ReservationWindow(BaseModel):
    """Summary of an existing reservation reported back on a conflict"""
    reservation_id: UUID
    booking_reference: str
    check_in: date
    check_out: date
    rooms: int
    status: str

    @classmethod
    def of(cls, reservation: Reservation) -> "ReservationWindow":
        return cls(
            reservation_id=reservation.reservation_id,
            booking_reference=reservation.booking_reference,
            check_in=reservation.date_range.check_in,
            check_out=reservation.date_range.check_out,
            rooms=reservation.rooms,
            status=reservation.status.value
        )

    class Config:
        frozen = True


class OccupancySnapshot(BaseModel):
    """Rooms committed per night over a window"""
    window: DateRange
    total_rooms: int
    daily: Dict[date, int]

    @property
    def peak_occupancy(self) -> int:
        return max(self.daily.values(), default=0)

    @property
    def available_rooms(self) -> int:
        return max(self.total_rooms - self.peak_occupancy, 0)

    class Config:
        frozen = True


class AdmissionDecision(BaseModel):
    admitted: bool
    requested_rooms: int
    available_rooms: int
    peak_occupancy: int
    total_rooms: int
    conflicting_reservation: Optional[ReservationWindow] = None

    class Config:
        frozen = True


class CalendarDay(BaseModel):
    day: date
    available: bool

    class Config:
        frozen = True


class InventoryDay(BaseModel):
    day: date
    booked_rooms: int
    available_rooms: int
    available: bool

    class Config:
        frozen = True


def _ordering_key(reservation: Reservation):
    return (reservation.date_range.check_in, reservation.created_at)


def overlapping_reservations(
    reservations: Iterable[Reservation],
    window: DateRange,
    exclude_reservation_id: Optional[UUID] = None
) -> List[Reservation]:
    """Active reservations sharing at least one night with the window, earliest first"""
    found = [
        r for r in reservations
        if r.is_active()
        and r.reservation_id != exclude_reservation_id
        and r.date_range.overlaps(window)
    ]
    return sorted(found, key=_ordering_key)


def compute_daily_occupancy(
    reservations: Iterable[Reservation],
    window: DateRange,
    exclude_reservation_id: Optional[UUID] = None
) -> Dict[date, int]:
    """Map every night of the window to the number of rooms already committed"""
    daily = {day: 0 for day in window.days()}
    for reservation in overlapping_reservations(reservations, window, exclude_reservation_id):
        shared = reservation.date_range.intersection(window)
        for day in shared.days():
            daily[day] += reservation.rooms
    return daily


def compute_occupancy(
    reservations: Iterable[Reservation],
    window: DateRange,
    total_rooms: int,
    exclude_reservation_id: Optional[UUID] = None
) -> OccupancySnapshot:
    return OccupancySnapshot(
        window=window,
        total_rooms=total_rooms,
        daily=compute_daily_occupancy(reservations, window, exclude_reservation_id)
    )


def decide_admission(
    snapshot: OccupancySnapshot,
    requested_rooms: int,
    reservations: Iterable[Reservation] = (),
    exclude_reservation_id: Optional[UUID] = None
) -> AdmissionDecision:
    """Admit iff the requested rooms fit on the busiest night of the window.

    On rejection, the earliest existing reservation that covers an
    oversold night is reported.
    """
    available = snapshot.available_rooms
    if requested_rooms <= available:
        return AdmissionDecision(
            admitted=True,
            requested_rooms=requested_rooms,
            available_rooms=available,
            peak_occupancy=snapshot.peak_occupancy,
            total_rooms=snapshot.total_rooms
        )

    oversold = {
        day for day, count in snapshot.daily.items()
        if count + requested_rooms > snapshot.total_rooms
    }
    conflicting = None
    for reservation in overlapping_reservations(reservations, snapshot.window, exclude_reservation_id):
        if any(reservation.date_range.contains(day) for day in oversold):
            conflicting = ReservationWindow.of(reservation)
            break

    return AdmissionDecision(
        admitted=False,
        requested_rooms=requested_rooms,
        available_rooms=available,
        peak_occupancy=snapshot.peak_occupancy,
        total_rooms=snapshot.total_rooms,
        conflicting_reservation=conflicting
    )


def find_blocking_reservation(
    reservations: Iterable[Reservation],
    window: DateRange,
    exclude_reservation_id: Optional[UUID] = None
) -> Optional[Reservation]:
    """Single-room check: any overlapping active reservation blocks the window"""
    found = overlapping_reservations(reservations, window, exclude_reservation_id)
    return found[0] if found else None


def calendar_window(start: date, horizon_days: int = DEFAULT_HORIZON_DAYS) -> DateRange:
    """Window covering start .. start + horizon_days, both days included"""
    return DateRange(check_in=start, check_out=start + timedelta(days=horizon_days + 1))


def build_booked_calendar(
    reservations: Iterable[Reservation],
    start: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS
) -> List[CalendarDay]:
    """Green/red day cells: a day is booked if any active reservation covers it"""
    window = calendar_window(start, horizon_days)
    booked = set()
    for reservation in overlapping_reservations(reservations, window):
        booked.update(reservation.date_range.days())
    return [CalendarDay(day=day, available=day not in booked) for day in window.days()]


def build_inventory_calendar(
    reservations: Iterable[Reservation],
    total_rooms: int,
    start: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    rooms_requested: int = 1
) -> List[InventoryDay]:
    """Per-day room counts against the type's physical inventory"""
    window = calendar_window(start, horizon_days)
    daily = compute_daily_occupancy(reservations, window)
    calendar = []
    for day in window.days():
        free = max(total_rooms - daily[day], 0)
        calendar.append(InventoryDay(
            day=day,
            booked_rooms=daily[day],
            available_rooms=free,
            available=free >= rooms_requested
        ))
    return calendar
