"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def occupying(cls) -> tuple:
        """Statuses that count toward room occupancy"""
        return (cls.PENDING, cls.CONFIRMED)


class RuleCode(str, Enum):
    """Classification of a failed field or policy rule"""
    MISSING_FIELD = "missing_field"
    INVALID_FORMAT = "invalid_format"
    INVALID_DATE_RANGE = "invalid_date_range"
    PAST_DATE = "past_date"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    ROOM_COUNT_INVALID = "room_count_invalid"


class FailureKind(str, Enum):
    CLIENT_ERROR = "client_error"
    NOT_FOUND = "not_found"


class RoomCategory(str, Enum):
    DELUXE = "deluxe"
    SUITE = "suite"
    CABIN = "cabin"
    STANDARD = "standard"
