"""Domain Exceptions"""
from typing import Optional

from domain.enums import RuleCode


class ReservationError(Exception):
    """Base class for every failure raised by the reservation engine"""

    code = "reservation_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationFailedError(ReservationError):
    """Malformed or missing input, correctable by the client"""

    code = "validation_error"

    def __init__(self, message: str, rule: RuleCode):
        super().__init__(message)
        self.rule = rule

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["rule"] = self.rule.value
        return data


class CapacityExceededError(ValidationFailedError):
    code = "capacity_exceeded"

    def __init__(self, message: str):
        super().__init__(message, RuleCode.CAPACITY_EXCEEDED)


class RoomCountInvalidError(ValidationFailedError):
    code = "room_count_invalid"

    def __init__(self, message: str):
        super().__init__(message, RuleCode.ROOM_COUNT_INVALID)


class NotFoundError(ReservationError):
    """Referenced room type or reservation does not exist"""

    code = "not_found"


class RoomTypeUnavailableError(ReservationError):
    """Room type exists but has been switched off in the catalog"""

    code = "room_unavailable"

    def __init__(self, room_type_id: str, name: str):
        super().__init__(f"{name} is currently unavailable")
        self.room_type_id = room_type_id
        self.name = name


class ConflictError(ReservationError):
    """Not enough inventory left for the requested window"""

    code = "conflict"

    def __init__(self, message: str, requested_rooms: int, available_rooms: int,
                 conflicting_reservation: Optional[dict] = None):
        super().__init__(message)
        self.requested_rooms = requested_rooms
        self.available_rooms = available_rooms
        self.conflicting_reservation = conflicting_reservation

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["requested_rooms"] = self.requested_rooms
        data["available_rooms"] = self.available_rooms
        data["conflicting_reservation"] = self.conflicting_reservation
        return data


class NotCancellableError(ReservationError):
    code = "not_cancellable"


class InvalidStateError(ReservationError):
    """Operation not allowed in the reservation's current status"""

    code = "invalid_state"


class DuplicateReferenceError(ReservationError):
    """Generated booking reference collided with an existing one"""

    code = "duplicate"
    retryable = True


class StoreUnavailableError(ReservationError):
    """Underlying store unreachable or timed out"""

    code = "unavailable"
    retryable = True
