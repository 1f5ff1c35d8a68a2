"""Field & Policy Validator

Each rule is a pure predicate returning a ``RuleResult``. The booking chain
evaluates them in a fixed order and stops at the first failure:

    1. required fields
    2. guest name has no digits
    3. phone is 10 digits
    4. guest and children counts
    5. special-request word ceiling, then email looks like an address
    6. date parsing, ordering, not in the past
    7. guest capacity of the room type
    8. per-type maximum rooms
    9. enough rooms for the guests-per-room ratio

Rules 1-6 need only the request; 7-9 need the room type, so the service
runs them after the catalog lookup.
"""
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

from domain.entities import RoomType
from domain.enums import FailureKind, RuleCode
from domain.exceptions import (
    CapacityExceededError, NotFoundError, ReservationError, RoomCountInvalidError,
    ValidationFailedError
)

REQUIRED_FIELDS = (
    "room_type_id", "check_in", "check_out", "guests",
    "guest_name", "guest_email", "guest_phone"
)

GUESTS_PER_ROOM = 3
SPECIAL_REQUEST_MAX_WORDS = 100
PHONE_DIGITS = 10

_DIGIT = re.compile(r"\d")
_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class RuleResult:
    passed: bool
    reason: str = ""
    code: Optional[RuleCode] = None
    kind: FailureKind = FailureKind.CLIENT_ERROR

    def __bool__(self) -> bool:
        return self.passed

    def raise_if_failed(self) -> None:
        if not self.passed:
            raise to_exception(self)


PASS = RuleResult(passed=True)


def fail(reason: str, code: RuleCode, kind: FailureKind = FailureKind.CLIENT_ERROR) -> RuleResult:
    return RuleResult(passed=False, reason=reason, code=code, kind=kind)


@dataclass(frozen=True)
class ValidationPolicy:
    """Tunable limits for the rule chain"""
    guests_per_room: int = GUESTS_PER_ROOM
    special_request_max_words: int = SPECIAL_REQUEST_MAX_WORDS


def to_exception(result: RuleResult) -> ReservationError:
    """Map a failed rule onto the domain exception hierarchy"""
    if result.kind == FailureKind.NOT_FOUND:
        return NotFoundError(result.reason)
    if result.code == RuleCode.CAPACITY_EXCEEDED:
        return CapacityExceededError(result.reason)
    if result.code == RuleCode.ROOM_COUNT_INVALID:
        return RoomCountInvalidError(result.reason)
    return ValidationFailedError(result.reason, result.code or RuleCode.INVALID_FORMAT)


# ============================================================================
# HELPERS
# ============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def normalize_phone(phone: str) -> str:
    """Strip separators and a +91 country or 0 trunk prefix"""
    digits = _PHONE_SEPARATORS.sub("", str(phone))
    if digits.startswith("+91"):
        digits = digits[3:]
    elif digits.startswith("0") and len(digits) == PHONE_DIGITS + 1:
        digits = digits[1:]
    return digits


def parse_iso_date(value: Any) -> date:
    """Accept a date, datetime or YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _ISO_DATE.match(text):
        raise ValueError(f"not a YYYY-MM-DD date: {text!r}")
    return date.fromisoformat(text)


def parse_count(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a count")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("count must be a whole number")
        return int(value)
    return int(str(value).strip())


def rooms_needed(guests: int, guests_per_room: int = GUESTS_PER_ROOM) -> int:
    return math.ceil(guests / guests_per_room)


# ============================================================================
# FIELD RULES
# ============================================================================

def check_required_fields(data: Mapping[str, Any]) -> RuleResult:
    missing = [name for name in REQUIRED_FIELDS if _is_blank(data.get(name))]
    if missing:
        return fail(f"Missing required fields: {', '.join(missing)}", RuleCode.MISSING_FIELD)
    return PASS


def check_guest_name(name: str) -> RuleResult:
    if _DIGIT.search(name):
        return fail("Guest name cannot contain numbers", RuleCode.INVALID_FORMAT)
    return PASS


def check_phone(phone: str) -> RuleResult:
    digits = normalize_phone(phone)
    if len(digits) != PHONE_DIGITS or not digits.isdigit():
        return fail(f"Phone number must be exactly {PHONE_DIGITS} digits", RuleCode.INVALID_FORMAT)
    return PASS


def check_email(email: str) -> RuleResult:
    if not _EMAIL.match(email.strip()):
        return fail("Please provide a valid email address", RuleCode.INVALID_FORMAT)
    return PASS


def check_guest_counts(guests: Any, children: Any = None) -> RuleResult:
    """Guests is a whole number >= 1; children, if given, lies in [0, guests]"""
    try:
        guests = parse_count(guests)
    except (TypeError, ValueError):
        return fail("Number of guests must be a whole number", RuleCode.INVALID_FORMAT)
    if guests < 1:
        return fail("At least 1 guest is required", RuleCode.INVALID_FORMAT)

    if _is_blank(children):
        return PASS
    try:
        children = parse_count(children)
    except (TypeError, ValueError):
        return fail("Number of children must be a whole number", RuleCode.INVALID_FORMAT)
    if children < 0 or children > guests:
        return fail(f"Children must be between 0 and {guests}", RuleCode.INVALID_FORMAT)
    return PASS


def check_special_requests(text: Optional[str], max_words: int = SPECIAL_REQUEST_MAX_WORDS) -> RuleResult:
    if _is_blank(text):
        return PASS
    if len(text.split()) > max_words:
        return fail(f"Special requests cannot exceed {max_words} words", RuleCode.INVALID_FORMAT)
    return PASS


def check_dates(check_in: Any, check_out: Any, today: date) -> RuleResult:
    try:
        check_in_date, check_out_date = parse_stay_dates(check_in, check_out)
    except (TypeError, ValueError):
        return fail("Dates must be in YYYY-MM-DD format", RuleCode.INVALID_FORMAT)

    if check_out_date <= check_in_date:
        return fail("Check-out date must be after check-in date", RuleCode.INVALID_DATE_RANGE)
    if check_in_date < today:
        return fail("Check-in date cannot be in the past", RuleCode.PAST_DATE)
    return PASS


def parse_stay_dates(check_in: Any, check_out: Any) -> Tuple[date, date]:
    return parse_iso_date(check_in), parse_iso_date(check_out)


# ============================================================================
# ROOM POLICY RULES
# ============================================================================

def check_room_type_found(room_type: Optional[RoomType], room_type_id: str) -> RuleResult:
    if room_type is None:
        return fail(f"Room type {room_type_id} not found", None, FailureKind.NOT_FOUND)
    return PASS


def check_guest_capacity(guests: int, room_type: RoomType) -> RuleResult:
    if guests > room_type.capacity:
        return fail(
            f"This room can accommodate maximum {room_type.capacity} guests",
            RuleCode.CAPACITY_EXCEEDED
        )
    return PASS


def check_room_count(rooms: Any) -> RuleResult:
    try:
        rooms = parse_count(rooms)
    except (TypeError, ValueError):
        return fail("Number of rooms must be a whole number", RuleCode.ROOM_COUNT_INVALID)
    if rooms < 1:
        return fail("At least 1 room must be requested", RuleCode.ROOM_COUNT_INVALID)
    return PASS


def check_max_rooms(rooms: int, room_type: RoomType) -> RuleResult:
    cap = room_type.max_rooms_per_booking
    if cap is not None and rooms > cap:
        return fail(
            f"{room_type.name} allows at most {cap} rooms per booking",
            RuleCode.ROOM_COUNT_INVALID
        )
    return PASS


def check_rooms_for_guests(rooms: int, guests: int, guests_per_room: int = GUESTS_PER_ROOM) -> RuleResult:
    needed = rooms_needed(guests, guests_per_room)
    if rooms < needed:
        return fail(
            f"{guests} guests need at least {needed} rooms "
            f"(maximum {guests_per_room} guests per room)",
            RuleCode.ROOM_COUNT_INVALID
        )
    return PASS


# ============================================================================
# CHAINS
# ============================================================================

def validate_request_fields(
    data: Mapping[str, Any],
    today: date,
    policy: ValidationPolicy = ValidationPolicy()
) -> RuleResult:
    """Rules 1-6 of a creation request; first failure wins"""
    result = check_required_fields(data)
    if not result:
        return result

    for result in (
        check_guest_name(str(data["guest_name"])),
        check_phone(str(data["guest_phone"])),
        check_guest_counts(data["guests"], data.get("children")),
        check_special_requests(data.get("special_requests"), policy.special_request_max_words),
        check_email(str(data["guest_email"])),
        check_dates(data["check_in"], data["check_out"], today),
    ):
        if not result:
            return result
    return PASS


def validate_room_policy(
    guests: int,
    rooms: Any,
    room_type: RoomType,
    policy: ValidationPolicy = ValidationPolicy()
) -> RuleResult:
    """Rules 7-9, evaluated once the room type is known"""
    result = check_guest_capacity(guests, room_type)
    if not result:
        return result

    result = check_room_count(rooms)
    if not result:
        return result
    rooms = parse_count(rooms)

    result = check_max_rooms(rooms, room_type)
    if not result:
        return result
    return check_rooms_for_guests(rooms, guests, policy.guests_per_room)


def validate_booking_request(
    data: Mapping[str, Any],
    room_type: Optional[RoomType],
    today: date,
    policy: ValidationPolicy = ValidationPolicy()
) -> RuleResult:
    """Whole chain in order, including the room type lookup result"""
    result = validate_request_fields(data, today, policy)
    if not result:
        return result

    result = check_room_type_found(room_type, str(data["room_type_id"]))
    if not result:
        return result

    rooms = data.get("rooms")
    return validate_room_policy(
        parse_count(data["guests"]), 1 if rooms is None else rooms, room_type, policy
    )
