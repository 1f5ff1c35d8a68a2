import logging
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional
from uuid import UUID
from datetime import date, timedelta

from fastapi import FastAPI, HTTPException, Depends, APIRouter, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Reservation
    CreateReservationRequest, AdminCreateReservationRequest, ModifyReservationRequest,
    CancelReservationRequest,
    CheckAvailabilityRequest, PricePreviewRequest,
    ReservationResponse, PricingResponse,
    # Rooms & availability
    RoomTypeResponse, AvailabilityResponse, DateCheckResponse, ConflictingReservationResponse,
    CalendarResponse, CalendarDayResponse, InventoryCalendarResponse, InventoryDayResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import (
    get_current_active_user, get_user, get_reservation_service,
    get_availability_service, get_pricing_service
)
from infrastructure.security import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.config import Settings, get_settings
from infrastructure.locks import RoomTypeLockManager
from infrastructure.notifications import LoggingNotificationDispatcher
from domain.auth import User
from domain.entities import RoomType
from domain.exceptions import ReservationError

from application.services import (
    ReservationService, AvailabilityService, PricingService, utc_now,
    AvailabilityResult, DateCheckResult, RoomCalendar, RoomInventoryCalendar
)
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomTypeRepository
)
from domain.enums import ReservationStatus
from domain.notifications import NotificationDispatcher
from domain.occupancy import ReservationWindow
from domain.value_objects import PriceBreakdown

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "validation_error": 400,
    "capacity_exceeded": 400,
    "room_count_invalid": 400,
    "room_unavailable": 400,
    "not_cancellable": 400,
    "invalid_state": 400,
    "not_found": 404,
    "conflict": 409,
    "duplicate": 503,
    "unavailable": 503,
}

router = APIRouter()


def create_app(
    settings: Optional[Settings] = None,
    room_types: Optional[Iterable[RoomType]] = None,
    notifier: Optional[NotificationDispatcher] = None,
    clock=utc_now
) -> FastAPI:
    """Build the API with its own stores, locks and services"""
    settings = settings or get_settings()

    reservation_repo = InMemoryReservationRepository()
    room_type_repo = InMemoryRoomTypeRepository(room_types)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await room_type_repo.open()
        await reservation_repo.open()
        logger.info("Reservation stores opened")
        yield
        await reservation_repo.close()
        await room_type_repo.close()
        logger.info("Reservation stores closed")

    app = FastAPI(
        title="Lodging Reservation API",
        description="Room allocation, availability and pricing for a small lodging property",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.reservation_repo = reservation_repo
    app.state.room_type_repo = room_type_repo
    app.state.reservation_service = ReservationService(
        reservation_repo,
        room_type_repo,
        lock_manager=RoomTypeLockManager(settings.store_timeout_seconds),
        notifier=notifier or LoggingNotificationDispatcher(),
        settings=settings,
        clock=clock
    )
    app.state.availability_service = AvailabilityService(
        reservation_repo, room_type_repo, settings=settings, clock=clock
    )
    app.state.pricing_service = PricingService(room_type_repo, settings=settings, clock=clock)

    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.include_router(router)
    return app


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    """Translate domain failures into HTTP responses"""
    status_code = ERROR_STATUS_CODES.get(exc.code, 400)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"success": False, **exc.to_dict()})

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@router.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@router.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Reservation status values: pending, confirmed, cancelled"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@router.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("/api/rooms", response_model=List[RoomTypeResponse], tags=["Rooms"])
async def list_rooms(service: AvailabilityService = Depends(get_availability_service)):
    """List bookable room types, cheapest first"""
    room_types = await service.list_room_types(only_available=True)
    return [_room_type_to_response(rt) for rt in room_types]

@router.get("/api/rooms/{room_type_id}", response_model=RoomTypeResponse, tags=["Rooms"])
async def get_room(
    room_type_id: str,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Get room type by ID"""
    room_type = await service.get_room_type(room_type_id, require_available=False)
    return _room_type_to_response(room_type)

@router.get("/api/rooms/{room_type_id}/availability-calendar", response_model=CalendarResponse, tags=["Rooms"])
async def get_availability_calendar(
    room_type_id: str,
    start_date: Optional[date] = None,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Booked/free day cells for the calendar horizon"""
    calendar = await service.get_booked_calendar(room_type_id, start_date)
    return _calendar_to_response(calendar)

@router.get("/api/rooms/{room_type_id}/inventory-calendar", response_model=InventoryCalendarResponse, tags=["Rooms"])
async def get_inventory_calendar(
    room_type_id: str,
    start_date: Optional[date] = None,
    rooms: int = 1,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Free room counts per day for the calendar horizon"""
    calendar = await service.get_inventory_calendar(room_type_id, start_date, rooms)
    return _inventory_calendar_to_response(calendar)

@router.get("/api/rooms/{room_type_id}/check-dates", response_model=DateCheckResponse, tags=["Rooms"])
async def check_room_dates(
    room_type_id: str,
    check_in: str,
    check_out: str,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Single-room check: any overlapping booking blocks the dates"""
    result = await service.check_dates(room_type_id, check_in, check_out)
    return _date_check_to_response(result)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@router.post("/api/reservations/check-availability", response_model=AvailabilityResponse, tags=["Reservations"])
async def check_availability(
    request: CheckAvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Check room availability and price the stay"""
    result = await service.check_availability(
        room_type_id=request.room_type_id,
        check_in=request.check_in,
        check_out=request.check_out,
        guests=request.guests,
        rooms=request.rooms
    )
    return _availability_to_response(result)

@router.post("/api/reservations/price-preview", response_model=PricingResponse, tags=["Reservations"])
async def price_preview(
    request: PricePreviewRequest,
    service: PricingService = Depends(get_pricing_service)
):
    """Preview the cost of a stay before booking"""
    pricing = await service.preview(
        request.room_type_id, request.check_in, request.check_out,
        request.rooms, request.discount
    )
    return _pricing_to_response(pricing)

@router.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Create new reservation"""
    reservation = await service.create_reservation(request.model_dump())
    return _reservation_to_response(reservation)

@router.post("/api/admin/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_admin_reservation(
    request: AdminCreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Create a reservation from the back office, optionally pending or discounted"""
    reservation = await service.create_reservation(
        request.model_dump(exclude={"status", "discount"}),
        created_by=current_user.username,
        discount=request.discount,
        status=request.status
    )
    return _reservation_to_response(reservation)

@router.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    status: Optional[ReservationStatus] = None,
    room_type_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get all reservations, newest first"""
    reservations = await service.get_all_reservations(status, room_type_id, start_date, end_date)
    return [_reservation_to_response(r) for r in reservations]

@router.get("/api/reservations/reference/{booking_reference}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation_by_reference(
    booking_reference: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by booking reference"""
    reservation = await service.get_reservation_by_reference(booking_reference)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@router.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@router.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def modify_reservation(
    reservation_id: UUID,
    request: ModifyReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Modify reservation dates, counts or guest details"""
    reservation = await service.modify_reservation(
        reservation_id,
        **request.model_dump(exclude_unset=True)
    )
    return _reservation_to_response(reservation)

@router.patch("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Confirm a pending reservation"""
    reservation = await service.confirm_reservation(reservation_id)
    return _reservation_to_response(reservation)

@router.patch("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: Optional[CancelReservationRequest] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel reservation"""
    reservation = await service.cancel_reservation(
        reservation_id,
        cancelled_by=current_user.username,
        reason=request.reason if request else None
    )
    return _reservation_to_response(reservation)

@router.delete("/api/reservations/{reservation_id}", tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Permanently delete reservation"""
    reservation = await service.delete_reservation(reservation_id)
    return {
        "message": "Booking deleted successfully",
        "booking_reference": reservation.booking_reference
    }

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _pricing_to_response(pricing: PriceBreakdown) -> PricingResponse:
    return PricingResponse(**pricing.model_dump())

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        booking_reference=reservation.booking_reference,
        room_type_id=reservation.room_type_id,
        check_in=reservation.date_range.check_in,
        check_out=reservation.date_range.check_out,
        guests=reservation.guest_count.guests,
        children=reservation.guest_count.children,
        adults=reservation.guest_count.adults,
        rooms=reservation.rooms,
        guest_name=reservation.contact.name,
        guest_email=reservation.contact.email,
        guest_phone=reservation.contact.phone,
        special_requests=reservation.special_requests,
        pricing=_pricing_to_response(reservation.pricing),
        status=reservation.status.value,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        created_by=reservation.created_by,
        cancelled_at=reservation.cancelled_at,
        cancelled_by=reservation.cancelled_by,
        cancellation_reason=reservation.cancellation_reason,
        version=reservation.version
    )

def _room_type_to_response(room_type: RoomType) -> RoomTypeResponse:
    """Convert RoomType entity to RoomTypeResponse"""
    return RoomTypeResponse(
        room_type_id=room_type.room_type_id,
        name=room_type.name,
        category=room_type.category.value,
        description=room_type.description,
        price_per_night=room_type.price_per_night,
        capacity=room_type.capacity,
        max_rooms_per_booking=room_type.max_rooms_per_booking,
        total_rooms=room_type.total_rooms,
        amenities=list(room_type.amenities),
        is_available=room_type.is_available
    )

def _conflict_to_response(window: Optional[ReservationWindow]) -> Optional[ConflictingReservationResponse]:
    if window is None:
        return None
    return ConflictingReservationResponse(**window.model_dump())

def _availability_to_response(result: AvailabilityResult) -> AvailabilityResponse:
    return AvailabilityResponse(
        available=result.available,
        message=result.message,
        room_type=_room_type_to_response(result.room_type),
        check_in=result.check_in,
        check_out=result.check_out,
        requested_rooms=result.requested_rooms,
        available_rooms=result.available_rooms,
        pricing=_pricing_to_response(result.pricing) if result.pricing else None,
        conflicting_reservation=_conflict_to_response(result.conflicting_reservation)
    )

def _date_check_to_response(result: DateCheckResult) -> DateCheckResponse:
    return DateCheckResponse(
        available=result.available,
        message=result.message,
        conflicting_reservation=_conflict_to_response(result.conflicting_reservation)
    )

def _calendar_to_response(calendar: RoomCalendar) -> CalendarResponse:
    return CalendarResponse(
        room_type_id=calendar.room_type_id,
        room_name=calendar.room_name,
        start_date=calendar.start_date,
        end_date=calendar.end_date,
        days=[CalendarDayResponse(date=d.day, available=d.available) for d in calendar.days]
    )

def _inventory_calendar_to_response(calendar: RoomInventoryCalendar) -> InventoryCalendarResponse:
    return InventoryCalendarResponse(
        room_type_id=calendar.room_type_id,
        room_name=calendar.room_name,
        total_rooms=calendar.total_rooms,
        rooms_requested=calendar.rooms_requested,
        start_date=calendar.start_date,
        end_date=calendar.end_date,
        days=[
            InventoryDayResponse(
                date=d.day,
                booked_rooms=d.booked_rooms,
                available_rooms=d.available_rooms,
                available=d.available
            )
            for d in calendar.days
        ]
    )


logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
