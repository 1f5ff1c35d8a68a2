"""Application Services - Business use cases"""
import asyncio
import logging
from uuid import UUID
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Mapping, Optional, TypeVar

from pydantic import BaseModel

from domain.entities import Reservation, RoomType
from domain.enums import ReservationStatus, RuleCode
from domain.exceptions import (
    ConflictError, DuplicateReferenceError, InvalidStateError, NotFoundError,
    RoomTypeUnavailableError, StoreUnavailableError, ValidationFailedError
)
from domain.notifications import NotificationDispatcher
from domain.occupancy import (
    AdmissionDecision, CalendarDay, InventoryDay, ReservationWindow, build_booked_calendar,
    build_inventory_calendar, calendar_window, compute_occupancy, decide_admission,
    find_blocking_reservation
)
from domain.pricing import calculate_nights, calculate_pricing, price_stay
from domain.repositories import ReservationRepository, RoomTypeRepository
from domain.validation import (
    ValidationPolicy, check_dates, check_email, check_guest_counts,
    check_guest_name, check_phone, check_special_requests, normalize_phone, parse_count,
    parse_iso_date, parse_stay_dates, validate_request_fields, validate_room_policy
)
from domain.value_objects import CancellationPolicy, DateRange, GuestContact, GuestCount, PriceBreakdown
from infrastructure.config import Settings, get_settings
from infrastructure.locks import RoomTypeLockManager

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# RESULT MODELS
# ============================================================================

class AvailabilityResult(BaseModel):
    """Inventory-aware availability check, with pricing when bookable"""
    available: bool
    message: str
    room_type: RoomType
    check_in: date
    check_out: date
    requested_rooms: int = 1
    available_rooms: int = 0
    pricing: Optional[PriceBreakdown] = None
    conflicting_reservation: Optional[ReservationWindow] = None


class DateCheckResult(BaseModel):
    """Single-room check: blocked by any overlapping reservation"""
    available: bool
    message: str
    conflicting_reservation: Optional[ReservationWindow] = None


class RoomCalendar(BaseModel):
    room_type_id: str
    room_name: str
    start_date: date
    end_date: date
    days: List[CalendarDay]


class RoomInventoryCalendar(BaseModel):
    room_type_id: str
    room_name: str
    total_rooms: int
    rooms_requested: int
    start_date: date
    end_date: date
    days: List[InventoryDay]


# ============================================================================
# SHARED STORE ACCESS
# ============================================================================

class _StoreBackedService:
    """Timeout-bounded access to the repositories"""

    def __init__(self,
                 room_type_repo: RoomTypeRepository,
                 settings: Optional[Settings] = None,
                 clock: Clock = utc_now):
        self.room_type_repo = room_type_repo
        self.settings = settings or get_settings()
        self.clock = clock
        self.policy = ValidationPolicy(
            guests_per_room=self.settings.guests_per_room,
            special_request_max_words=self.settings.special_request_max_words
        )

    def today(self) -> date:
        return self.clock().date()

    async def _call_store(self, operation: Awaitable[T]) -> T:
        """Await a store call; a timeout is reported as retryable"""
        try:
            return await asyncio.wait_for(operation, timeout=self.settings.store_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("Store call timed out after %ss", self.settings.store_timeout_seconds)
            raise StoreUnavailableError("Reservation store did not respond in time, please retry")

    async def _get_room_type(self, room_type_id: str, require_available: bool = True) -> RoomType:
        room_type = await self._call_store(self.room_type_repo.find_by_id(room_type_id))
        if room_type is None:
            raise NotFoundError("Room not found")
        if require_available and not room_type.is_available:
            raise RoomTypeUnavailableError(room_type.room_type_id, room_type.name)
        return room_type

    def _validated_window(self, check_in: Any, check_out: Any, allow_past: bool = False) -> DateRange:
        today = date.min if allow_past else self.today()
        check_dates(check_in, check_out, today).raise_if_failed()
        check_in_date, check_out_date = parse_stay_dates(check_in, check_out)
        return DateRange(check_in=check_in_date, check_out=check_out_date)


# ============================================================================
# RESERVATIONS
# ============================================================================

class ReservationService(_StoreBackedService):
    """Service for Reservation business use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 room_type_repo: RoomTypeRepository,
                 lock_manager: Optional[RoomTypeLockManager] = None,
                 notifier: Optional[NotificationDispatcher] = None,
                 settings: Optional[Settings] = None,
                 clock: Clock = utc_now):
        super().__init__(room_type_repo, settings, clock)
        self.repository = repository
        self.lock_manager = lock_manager or RoomTypeLockManager(self.settings.store_timeout_seconds)
        self.notifier = notifier
        self.cancellation_policy = CancellationPolicy(
            deadline_hours=self.settings.cancellation_cutoff_hours
        )

    # ==================== ADMISSION ====================
    async def _admit(
        self,
        room_type: RoomType,
        window: DateRange,
        requested_rooms: int,
        exclude_reservation_id: Optional[UUID] = None
    ) -> AdmissionDecision:
        """Peak-occupancy admission check; call with the room type lock held"""
        existing = await self._call_store(self.repository.find_active_overlapping(
            room_type.room_type_id, window, exclude_reservation_id
        ))
        snapshot = compute_occupancy(existing, window, room_type.total_rooms)
        decision = decide_admission(snapshot, requested_rooms, existing)

        if not decision.admitted:
            conflicting = decision.conflicting_reservation
            logger.info(
                "Rejected %d x %s for %s..%s: %d of %d rooms free (conflicts with %s)",
                requested_rooms, room_type.room_type_id, window.check_in, window.check_out,
                decision.available_rooms, room_type.total_rooms,
                conflicting.booking_reference if conflicting else "inventory limit"
            )
            raise ConflictError(
                "Room is not available for selected dates. Please choose different dates.",
                requested_rooms=requested_rooms,
                available_rooms=decision.available_rooms,
                conflicting_reservation=conflicting.model_dump(mode="json") if conflicting else None
            )
        return decision

    async def create_reservation(
        self,
        data: Mapping[str, Any],
        created_by: str = "SYSTEM",
        discount: Decimal = Decimal("0"),
        status: ReservationStatus = ReservationStatus.CONFIRMED
    ) -> Reservation:
        """Validate, admit, price and persist a new reservation.

        Every validation and business rule is checked before anything is
        written. A booking reference collision retries the whole admission.
        """
        logger.info("Received booking request for room type %s", data.get("room_type_id"))
        today = self.today()
        validate_request_fields(data, today, self.policy).raise_if_failed()

        room_type = await self._get_room_type(str(data["room_type_id"]).strip())

        guests = parse_count(data["guests"])
        rooms = data.get("rooms")
        rooms = 1 if rooms is None else rooms
        validate_room_policy(guests, rooms, room_type, self.policy).raise_if_failed()
        rooms = parse_count(rooms)

        children = data.get("children")
        guest_count = GuestCount(
            guests=guests,
            children=0 if children in (None, "") else parse_count(children),
            rooms=rooms
        )
        check_in, check_out = parse_stay_dates(data["check_in"], data["check_out"])
        window = DateRange(check_in=check_in, check_out=check_out)
        contact = GuestContact(
            name=str(data["guest_name"]).strip(),
            email=str(data["guest_email"]).strip().lower(),
            phone=normalize_phone(str(data["guest_phone"]))
        )
        special_requests = data.get("special_requests")
        special_requests = special_requests.strip() if special_requests else None

        pricing = price_stay(
            check_in, check_out, room_type.price_per_night,
            self.settings.tax_rate, discount, rooms
        )

        for attempt in range(1, self.settings.reference_retry_attempts + 1):
            async with self.lock_manager.hold(room_type.room_type_id):
                await self._admit(room_type, window, rooms)
                reservation = Reservation.create(
                    room_type_id=room_type.room_type_id,
                    date_range=window,
                    guest_count=guest_count,
                    contact=contact,
                    pricing=pricing,
                    today=today,
                    special_requests=special_requests,
                    cancellation_policy=self.cancellation_policy,
                    status=status,
                    created_by=created_by
                )
                try:
                    await self._call_store(self.repository.save(reservation))
                except DuplicateReferenceError:
                    logger.warning(
                        "Booking reference %s collided (attempt %d), regenerating",
                        reservation.booking_reference, attempt
                    )
                    continue
            break
        else:
            raise StoreUnavailableError("Could not allocate a booking reference, please retry")

        logger.info(
            "Booking %s created: %d x %s, %s..%s, total %s",
            reservation.booking_reference, rooms, room_type.room_type_id,
            check_in, check_out, pricing.total_price
        )
        await self._dispatch_notification(reservation, room_type.name)
        return reservation

    async def _dispatch_notification(self, reservation: Reservation, room_type_name: str) -> None:
        """Fire-and-forget; a failure never undoes the booking"""
        if self.notifier is None:
            return
        try:
            await self.notifier.notify_reservation_created(reservation, room_type_name)
        except Exception:
            logger.exception("Notification for booking %s failed", reservation.booking_reference)

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Optional[Reservation]:
        """Get reservation by ID"""
        return await self._call_store(self.repository.find_by_id(reservation_id))

    async def get_reservation_by_reference(self, booking_reference: str) -> Optional[Reservation]:
        """Get reservation by booking reference"""
        return await self._call_store(self.repository.find_by_reference(booking_reference))

    async def get_all_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        room_type_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Reservation]:
        """Get reservations, newest first"""
        return await self._call_store(
            self.repository.find_all(status, room_type_id, start_date, end_date)
        )

    async def _require(self, reservation_id: UUID) -> Reservation:
        reservation = await self._call_store(self.repository.find_by_id(reservation_id))
        if reservation is None:
            raise NotFoundError("Booking not found")
        return reservation

    # ==================== LIFECYCLE ====================
    async def modify_reservation(
        self,
        reservation_id: UUID,
        check_in: Optional[Any] = None,
        check_out: Optional[Any] = None,
        guests: Optional[int] = None,
        children: Optional[int] = None,
        rooms: Optional[int] = None,
        guest_name: Optional[str] = None,
        guest_email: Optional[str] = None,
        guest_phone: Optional[str] = None,
        special_requests: Optional[str] = None
    ) -> Reservation:
        """Modify reservation; window or room changes are re-admitted first.

        The reservation's own rooms are left out of the occupancy check. Any
        failure leaves the stored reservation untouched.
        """
        existing = await self._require(reservation_id)

        async with self.lock_manager.hold(existing.room_type_id):
            reservation = await self._require(reservation_id)
            if not reservation.is_active():
                raise InvalidStateError(
                    f"Cannot modify reservation with status {reservation.status.value}"
                )

            current = reservation.date_range
            try:
                new_check_in = current.check_in if check_in is None else parse_iso_date(check_in)
                new_check_out = current.check_out if check_out is None else parse_iso_date(check_out)
            except (TypeError, ValueError):
                raise ValidationFailedError("Dates must be in YYYY-MM-DD format", RuleCode.INVALID_FORMAT)
            window_changed = (new_check_in, new_check_out) != (current.check_in, current.check_out)
            if window_changed:
                # Only a moved check-in has to respect "not in the past"
                today = self.today() if new_check_in != current.check_in else date.min
                check_dates(new_check_in, new_check_out, today).raise_if_failed()

            counts = reservation.guest_count
            new_guests = counts.guests if guests is None else guests
            new_children = counts.children if children is None else children
            new_rooms = counts.rooms if rooms is None else rooms
            check_guest_counts(new_guests, new_children).raise_if_failed()
            new_guests, new_children = parse_count(new_guests), parse_count(new_children)

            room_type = await self._get_room_type(reservation.room_type_id, require_available=False)
            validate_room_policy(new_guests, new_rooms, room_type, self.policy).raise_if_failed()
            new_rooms = parse_count(new_rooms)

            contact = self._merged_contact(reservation.contact, guest_name, guest_email, guest_phone)
            if special_requests is not None:
                check_special_requests(
                    special_requests, self.policy.special_request_max_words
                ).raise_if_failed()

            new_window = DateRange(check_in=new_check_in, check_out=new_check_out)
            rooms_changed = new_rooms != counts.rooms
            new_pricing = None
            if window_changed or rooms_changed:
                await self._admit(room_type, new_window, new_rooms, reservation.reservation_id)
                booked = reservation.pricing
                new_pricing = calculate_pricing(
                    calculate_nights(new_check_in, new_check_out),
                    booked.price_per_night,
                    booked.tax_rate,
                    booked.discount_amount,
                    new_rooms,
                    booked.currency
                )

            reservation.reschedule(
                new_window,
                GuestCount(guests=new_guests, children=new_children, rooms=new_rooms),
                new_pricing
            )
            if contact is not None or special_requests is not None:
                reservation.update_details(
                    contact, special_requests.strip() if special_requests is not None else None
                )
            await self._call_store(self.repository.update(reservation))

        logger.info("Booking %s updated (version %d)", reservation.booking_reference, reservation.version)
        return reservation

    @staticmethod
    def _merged_contact(
        contact: GuestContact,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str]
    ) -> Optional[GuestContact]:
        if name is None and email is None and phone is None:
            return None
        if name is not None:
            check_guest_name(name).raise_if_failed()
        if phone is not None:
            check_phone(phone).raise_if_failed()
        if email is not None:
            check_email(email).raise_if_failed()
        return GuestContact(
            name=contact.name if name is None else name.strip(),
            email=contact.email if email is None else email.strip().lower(),
            phone=contact.phone if phone is None else normalize_phone(phone)
        )

    async def confirm_reservation(self, reservation_id: UUID) -> Reservation:
        """Confirm a pending reservation"""
        reservation = await self._require(reservation_id)
        reservation.confirm()
        await self._call_store(self.repository.update(reservation))
        logger.info("Booking %s confirmed", reservation.booking_reference)
        return reservation

    async def cancel_reservation(
        self,
        reservation_id: UUID,
        cancelled_by: Optional[str] = None,
        reason: Optional[str] = None
    ) -> Reservation:
        """Cancel reservation; check-in must be at least the cutoff away"""
        existing = await self._require(reservation_id)

        async with self.lock_manager.hold(existing.room_type_id):
            reservation = await self._require(reservation_id)
            reservation.cancel(self.clock(), cancelled_by=cancelled_by, reason=reason)
            await self._call_store(self.repository.update(reservation))

        logger.info(
            "Booking %s cancelled by %s", reservation.booking_reference, cancelled_by or "anonymous"
        )
        return reservation

    async def delete_reservation(self, reservation_id: UUID) -> Reservation:
        """Hard delete regardless of status (administrative)"""
        reservation = await self._require(reservation_id)
        async with self.lock_manager.hold(reservation.room_type_id):
            deleted = await self._call_store(self.repository.delete(reservation_id))
        if not deleted:
            raise NotFoundError("Booking not found")
        logger.info("Booking %s deleted", reservation.booking_reference)
        return reservation


# ============================================================================
# AVAILABILITY
# ============================================================================

class AvailabilityService(_StoreBackedService):
    """Read-only availability checks and calendars; never takes admission locks"""

    def __init__(self,
                 repository: ReservationRepository,
                 room_type_repo: RoomTypeRepository,
                 settings: Optional[Settings] = None,
                 clock: Clock = utc_now):
        super().__init__(room_type_repo, settings, clock)
        self.repository = repository

    async def list_room_types(self, only_available: bool = True) -> List[RoomType]:
        return await self._call_store(self.room_type_repo.find_all(only_available))

    async def get_room_type(self, room_type_id: str, require_available: bool = True) -> RoomType:
        return await self._get_room_type(room_type_id, require_available)

    async def check_availability(
        self,
        room_type_id: str,
        check_in: Any,
        check_out: Any,
        guests: Optional[int] = None,
        rooms: int = 1
    ) -> AvailabilityResult:
        """Inventory-aware check; returns pricing when the stay fits"""
        room_type = await self._get_room_type(room_type_id, require_available=False)
        window = self._validated_window(check_in, check_out)

        def unavailable(message: str, **extra) -> AvailabilityResult:
            return AvailabilityResult(
                available=False, message=message, room_type=room_type,
                check_in=window.check_in, check_out=window.check_out,
                requested_rooms=rooms, **extra
            )

        if not room_type.is_available:
            return unavailable("This room is currently disabled")

        if guests is not None:
            room_policy = validate_room_policy(guests, rooms, room_type, self.policy)
            if not room_policy:
                return unavailable(room_policy.reason)

        existing = await self._call_store(
            self.repository.find_active_overlapping(room_type.room_type_id, window)
        )
        snapshot = compute_occupancy(existing, window, room_type.total_rooms)
        decision = decide_admission(snapshot, rooms, existing)
        if not decision.admitted:
            return unavailable(
                "Room is not available for selected dates",
                available_rooms=decision.available_rooms,
                conflicting_reservation=decision.conflicting_reservation
            )

        pricing = price_stay(
            window.check_in, window.check_out, room_type.price_per_night,
            self.settings.tax_rate, rooms=rooms
        )
        return AvailabilityResult(
            available=True,
            message="Room is available for selected dates",
            room_type=room_type,
            check_in=window.check_in,
            check_out=window.check_out,
            requested_rooms=rooms,
            available_rooms=decision.available_rooms,
            pricing=pricing
        )

    async def check_dates(self, room_type_id: str, check_in: Any, check_out: Any) -> DateCheckResult:
        """Single-room check used by simple date pickers"""
        room_type = await self._get_room_type(room_type_id)
        window = self._validated_window(check_in, check_out, allow_past=True)

        existing = await self._call_store(
            self.repository.find_active_overlapping(room_type.room_type_id, window)
        )
        blocking = find_blocking_reservation(existing, window)
        if blocking is None:
            return DateCheckResult(available=True, message="Room is available for selected dates")
        return DateCheckResult(
            available=False,
            message="Room is not available for selected dates",
            conflicting_reservation=ReservationWindow.of(blocking)
        )

    async def get_booked_calendar(self, room_type_id: str, start_date: Optional[date] = None) -> RoomCalendar:
        """Day cells for the configured horizon; any booking marks a day red"""
        room_type = await self._get_room_type(room_type_id)
        start = start_date or self.today()
        horizon = self.settings.calendar_horizon_days
        window = calendar_window(start, horizon)

        existing = await self._call_store(
            self.repository.find_active_overlapping(room_type.room_type_id, window)
        )
        days = build_booked_calendar(existing, start, horizon)
        logger.debug(
            "Calendar for %s: %d of %d days booked",
            room_type_id, sum(1 for d in days if not d.available), len(days)
        )
        return RoomCalendar(
            room_type_id=room_type.room_type_id,
            room_name=room_type.name,
            start_date=start,
            end_date=days[-1].day,
            days=days
        )

    async def get_inventory_calendar(
        self,
        room_type_id: str,
        start_date: Optional[date] = None,
        rooms: int = 1
    ) -> RoomInventoryCalendar:
        """Per-day free room counts for the configured horizon"""
        if rooms < 1:
            raise ValidationFailedError("At least 1 room must be requested", RuleCode.ROOM_COUNT_INVALID)
        room_type = await self._get_room_type(room_type_id)
        start = start_date or self.today()
        horizon = self.settings.calendar_horizon_days
        window = calendar_window(start, horizon)

        existing = await self._call_store(
            self.repository.find_active_overlapping(room_type.room_type_id, window)
        )
        days = build_inventory_calendar(existing, room_type.total_rooms, start, horizon, rooms)
        return RoomInventoryCalendar(
            room_type_id=room_type.room_type_id,
            room_name=room_type.name,
            total_rooms=room_type.total_rooms,
            rooms_requested=rooms,
            start_date=start,
            end_date=days[-1].day,
            days=days
        )


# ============================================================================
# PRICING
# ============================================================================

class PricingService(_StoreBackedService):
    """Cost preview before committing a booking"""

    async def preview(
        self,
        room_type_id: str,
        check_in: Any,
        check_out: Any,
        rooms: int = 1,
        discount: Decimal = Decimal("0")
    ) -> PriceBreakdown:
        room_type = await self._get_room_type(room_type_id)
        window = self._validated_window(check_in, check_out)
        return price_stay(
            window.check_in, window.check_out, room_type.price_per_night,
            self.settings.tax_rate, discount, rooms
        )
