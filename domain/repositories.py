"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID
from datetime import date

from domain.entities import Reservation, RoomType
from domain.enums import ReservationStatus
from domain.value_objects import DateRange


class StoreHandle(ABC):
    """Explicit open/close lifecycle owned by the caller"""

    @abstractmethod
    async def open(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass


class RoomTypeRepository(StoreHandle):
    """Repository interface for the room type catalog"""

    @abstractmethod
    async def find_by_id(self, room_type_id: str) -> Optional[RoomType]:
        """Find room type by ID"""
        pass

    @abstractmethod
    async def find_all(self, only_available: bool = False) -> List[RoomType]:
        """Find all room types"""
        pass

    @abstractmethod
    async def save(self, room_type: RoomType) -> RoomType:
        """Save room type"""
        pass


class ReservationRepository(StoreHandle):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Insert a new reservation; raises DuplicateReferenceError on reference collision"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_reference(self, booking_reference: str) -> Optional[Reservation]:
        """Find reservation by booking reference"""
        pass

    @abstractmethod
    async def find_active_overlapping(
        self,
        room_type_id: str,
        date_range: DateRange,
        exclude_reservation_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Pending/confirmed reservations of a room type overlapping the window"""
        pass

    @abstractmethod
    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        room_type_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Reservation]:
        """Find reservations, newest first; dates filter on check-in"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        pass
