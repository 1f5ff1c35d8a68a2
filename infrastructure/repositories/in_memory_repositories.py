"""In-Memory Repository Implementations"""
from decimal import Decimal
from typing import Optional, List, Dict, Iterable
from uuid import UUID
from datetime import date

from domain.repositories import ReservationRepository, RoomTypeRepository
from domain.entities import Reservation, RoomType
from domain.enums import ReservationStatus, RoomCategory
from domain.exceptions import DuplicateReferenceError, NotFoundError, StoreUnavailableError
from domain.value_objects import DateRange


DEFAULT_ROOM_TYPES = [
    RoomType(
        room_type_id="deluxe-mountain-view",
        name="Deluxe Mountain View",
        category=RoomCategory.DELUXE,
        description="Spacious room with stunning mountain views and modern amenities",
        price_per_night=Decimal("3500"),
        capacity=2,
        max_rooms_per_booking=2,
        total_rooms=2,
        amenities=["WiFi", "TV", "AC", "Mini Fridge", "Tea/Coffee Maker"],
    ),
    RoomType(
        room_type_id="family-suite",
        name="Family Suite",
        category=RoomCategory.SUITE,
        description="Perfect for families with separate living area and kitchenette",
        price_per_night=Decimal("5500"),
        capacity=4,
        max_rooms_per_booking=2,
        total_rooms=2,
        amenities=["WiFi", "TV", "AC", "Kitchenette", "Living Area"],
    ),
    RoomType(
        room_type_id="cozy-mountain-cabin",
        name="Cozy Mountain Cabin",
        category=RoomCategory.CABIN,
        description="Rustic charm with modern comforts and garden views",
        price_per_night=Decimal("4200"),
        capacity=3,
        total_rooms=3,
        amenities=["WiFi", "Fireplace", "Tea Corner", "Garden Access"],
    ),
]


class _InMemoryStore:
    """Open/close lifecycle shared by the in-memory repositories"""

    def __init__(self):
        self._open = False

    async def open(self) -> None:
        self._open = True

    async def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def _ensure_open(self) -> None:
        if not self._open:
            raise StoreUnavailableError(f"{type(self).__name__} is not open")


class InMemoryRoomTypeRepository(_InMemoryStore, RoomTypeRepository):
    """In-memory room type catalog"""

    def __init__(self, room_types: Optional[Iterable[RoomType]] = None):
        super().__init__()
        self._storage: Dict[str, RoomType] = {}
        for room_type in (DEFAULT_ROOM_TYPES if room_types is None else room_types):
            self._storage[room_type.room_type_id] = room_type

    async def find_by_id(self, room_type_id: str) -> Optional[RoomType]:
        self._ensure_open()
        return self._storage.get(room_type_id)

    async def find_all(self, only_available: bool = False) -> List[RoomType]:
        self._ensure_open()
        room_types = sorted(self._storage.values(), key=lambda rt: rt.price_per_night)
        if only_available:
            return [rt for rt in room_types if rt.is_available]
        return room_types

    async def save(self, room_type: RoomType) -> RoomType:
        self._ensure_open()
        self._storage[room_type.room_type_id] = room_type
        return room_type


class InMemoryReservationRepository(_InMemoryStore, ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        super().__init__()
        self._storage: Dict[UUID, Reservation] = {}
        self._by_reference: Dict[str, UUID] = {}

    @staticmethod
    def _copy(reservation: Reservation) -> Reservation:
        # Callers never hold a reference into the store
        return reservation.model_copy(deep=True)

    async def save(self, reservation: Reservation) -> Reservation:
        """Insert reservation; booking references are unique"""
        self._ensure_open()
        if reservation.booking_reference in self._by_reference:
            raise DuplicateReferenceError(
                f"Booking reference {reservation.booking_reference} already exists"
            )
        self._storage[reservation.reservation_id] = self._copy(reservation)
        self._by_reference[reservation.booking_reference] = reservation.reservation_id
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        self._ensure_open()
        reservation = self._storage.get(reservation_id)
        return self._copy(reservation) if reservation else None

    async def find_by_reference(self, booking_reference: str) -> Optional[Reservation]:
        self._ensure_open()
        reservation_id = self._by_reference.get(booking_reference)
        if reservation_id is None:
            return None
        return self._copy(self._storage[reservation_id])

    async def find_active_overlapping(
        self,
        room_type_id: str,
        date_range: DateRange,
        exclude_reservation_id: Optional[UUID] = None
    ) -> List[Reservation]:
        self._ensure_open()
        return [
            self._copy(r) for r in self._storage.values()
            if r.room_type_id == room_type_id
            and r.is_active()
            and r.reservation_id != exclude_reservation_id
            and r.date_range.overlaps(date_range)
        ]

    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        room_type_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Reservation]:
        self._ensure_open()
        results = []
        for r in self._storage.values():
            if status is not None and r.status != status:
                continue
            if room_type_id is not None and r.room_type_id != room_type_id:
                continue
            if start_date is not None and r.date_range.check_in < start_date:
                continue
            if end_date is not None and r.date_range.check_in > end_date:
                continue
            results.append(self._copy(r))
        return sorted(results, key=lambda r: r.created_at, reverse=True)

    async def update(self, reservation: Reservation) -> Reservation:
        self._ensure_open()
        if reservation.reservation_id not in self._storage:
            raise NotFoundError("Reservation not found")
        self._storage[reservation.reservation_id] = self._copy(reservation)
        return reservation

    async def delete(self, reservation_id: UUID) -> bool:
        self._ensure_open()
        reservation = self._storage.pop(reservation_id, None)
        if reservation is None:
            return False
        self._by_reference.pop(reservation.booking_reference, None)
        return True
