"""Domain Entities - Aggregates"""
import random
import string
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional, List
from decimal import Decimal

from domain.enums import ReservationStatus, RoomCategory, RuleCode
from domain.exceptions import InvalidStateError, NotCancellableError, ValidationFailedError
from domain.value_objects import (
    CancellationPolicy, DateRange, GuestContact, GuestCount, PriceBreakdown
)

REFERENCE_PREFIX = "BK-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoomType(BaseModel):
    """Room type as published by the catalog; read-only to the engine"""

    room_type_id: str
    name: str
    category: RoomCategory = RoomCategory.STANDARD
    description: str = ""
    price_per_night: Decimal = Field(ge=0)

    # Guests allowed on one booking of this type
    capacity: int = Field(ge=1)
    # Rooms allowed on one booking; None means no cap
    max_rooms_per_booking: Optional[int] = Field(default=None, ge=1)
    # Physical rooms of this type
    total_rooms: int = Field(ge=0)

    amenities: List[str] = []
    is_available: bool = True

    class Config:
        from_attributes = True


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    booking_reference: str

    # References to other contexts
    room_type_id: str

    # Value Objects
    date_range: DateRange
    guest_count: GuestCount
    contact: GuestContact
    pricing: PriceBreakdown
    cancellation_policy: CancellationPolicy = CancellationPolicy()
    special_requests: Optional[str] = None

    status: ReservationStatus = ReservationStatus.CONFIRMED

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    created_by: str = "SYSTEM"
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_type_id: str,
        date_range: DateRange,
        guest_count: GuestCount,
        contact: GuestContact,
        pricing: PriceBreakdown,
        today: date,
        special_requests: Optional[str] = None,
        cancellation_policy: Optional[CancellationPolicy] = None,
        status: ReservationStatus = ReservationStatus.CONFIRMED,
        created_by: str = "SYSTEM"
    ) -> "Reservation":
        """Create an admitted reservation with a fresh booking reference"""
        Reservation._validate_date_range(date_range, today)

        if status == ReservationStatus.CANCELLED:
            raise InvalidStateError("A reservation cannot be created as cancelled")

        return Reservation(
            booking_reference=Reservation.generate_booking_reference(),
            room_type_id=room_type_id,
            date_range=date_range,
            guest_count=guest_count,
            contact=contact,
            pricing=pricing,
            cancellation_policy=cancellation_policy or CancellationPolicy(),
            special_requests=special_requests,
            status=status,
            created_by=created_by
        )

    # ==================== MODIFICATION METHODS ====================
    def reschedule(
        self,
        new_date_range: DateRange,
        new_guest_count: GuestCount,
        new_pricing: Optional[PriceBreakdown] = None
    ) -> None:
        """Apply an already admitted change of window or counts"""
        if not self.is_active():
            raise InvalidStateError(
                f"Cannot modify reservation with status {self.status.value}"
            )

        self.date_range = new_date_range
        self.guest_count = new_guest_count
        if new_pricing is not None:
            # Snapshots are frozen; a re-price swaps in a new one
            self.pricing = new_pricing

        self._touch()

    def update_details(
        self,
        contact: Optional[GuestContact] = None,
        special_requests: Optional[str] = None
    ) -> None:
        if not self.is_active():
            raise InvalidStateError(
                f"Cannot modify reservation with status {self.status.value}"
            )
        if contact is not None:
            self.contact = contact
        if special_requests is not None:
            self.special_requests = special_requests
        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> None:
        if self.status != ReservationStatus.PENDING:
            raise InvalidStateError(
                f"Cannot confirm reservation with status {self.status.value}"
            )
        self.status = ReservationStatus.CONFIRMED
        self._touch()

    def cancel(
        self,
        now: datetime,
        cancelled_by: Optional[str] = None,
        reason: Optional[str] = None
    ) -> None:
        """Cancel reservation; terminal"""
        if self.status == ReservationStatus.CANCELLED:
            raise NotCancellableError(
                f"Reservation {self.booking_reference} is already cancelled"
            )

        if not self.cancellation_policy.allows_cancellation(self.date_range, now):
            raise NotCancellableError(
                "Booking cannot be cancelled (must be at least "
                f"{self.cancellation_policy.deadline_hours} hours before check-in)"
            )

        self.status = ReservationStatus.CANCELLED
        self.cancelled_at = now
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self._touch(now)

    # ==================== QUERY METHODS ====================
    @property
    def rooms(self) -> int:
        return self.guest_count.rooms

    def is_active(self) -> bool:
        """Pending and confirmed reservations hold inventory"""
        return self.status in ReservationStatus.occupying()

    # ==================== PRIVATE METHODS ====================
    @staticmethod
    def _validate_date_range(date_range: DateRange, today: date) -> None:
        if date_range.check_in < today:
            raise ValidationFailedError("Check-in date cannot be in the past", RuleCode.PAST_DATE)

    @staticmethod
    def generate_booking_reference() -> str:
        """Generate booking reference, e.g. BK-7Q2M9XKD"""
        suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))
        return f"{REFERENCE_PREFIX}{suffix}"

    def _touch(self, when: Optional[datetime] = None) -> None:
        self.modified_at = when or _utcnow()
        self.version += 1
