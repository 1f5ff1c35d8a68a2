"""Notification dispatchers"""
import logging

from domain.entities import Reservation
from domain.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Writes the admin booking notice to the application log"""

    async def notify_reservation_created(self, reservation: Reservation, room_type_name: str) -> None:
        guest_count = reservation.guest_count
        logger.info(
            "New booking %s: %s <%s, %s> booked %d x %s from %s to %s "
            "(%d adults, %d children, %d nights, total %s %s)",
            reservation.booking_reference,
            reservation.contact.name,
            reservation.contact.email,
            reservation.contact.phone,
            guest_count.rooms,
            room_type_name,
            reservation.date_range.check_in.isoformat(),
            reservation.date_range.check_out.isoformat(),
            guest_count.adults,
            guest_count.children,
            reservation.pricing.nights,
            reservation.pricing.total_price,
            reservation.pricing.currency,
        )
        if reservation.special_requests:
            logger.info("Special requests for %s: %s", reservation.booking_reference, reservation.special_requests)
