"""Notification dispatch interface"""
from abc import ABC, abstractmethod

from domain.entities import Reservation


class NotificationDispatcher(ABC):
    """Receives a finalized reservation after it has been persisted"""

    @abstractmethod
    async def notify_reservation_created(self, reservation: Reservation, room_type_name: str) -> None:
        pass
