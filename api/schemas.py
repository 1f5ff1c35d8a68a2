"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import ReservationStatus


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO

    Fields are optional here; presence and format are checked by the
    booking rule chain so errors come back in rule order.
    """
    room_type_id: Optional[str] = None
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    guests: Optional[int] = None
    children: Optional[int] = None
    rooms: Optional[int] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    special_requests: Optional[str] = None


class AdminCreateReservationRequest(CreateReservationRequest):
    """Back-office booking: may be held as pending and carry a discount"""
    status: ReservationStatus = ReservationStatus.CONFIRMED
    discount: Decimal = Field(default=Decimal("0"), ge=0)


class ModifyReservationRequest(BaseModel):
    """Modify reservation request DTO"""
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: Optional[int] = Field(None, ge=1)
    children: Optional[int] = Field(None, ge=0)
    rooms: Optional[int] = Field(None, ge=1)
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    special_requests: Optional[str] = None


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: Optional[str] = None


class CheckAvailabilityRequest(BaseModel):
    """Check availability request DTO"""
    room_type_id: str
    check_in: date
    check_out: date
    guests: Optional[int] = Field(None, ge=1)
    rooms: int = Field(ge=1, default=1)


class PricePreviewRequest(BaseModel):
    """Price preview request DTO"""
    room_type_id: str
    check_in: date
    check_out: date
    rooms: int = Field(ge=1, default=1)
    discount: Decimal = Field(default=Decimal("0"), ge=0)


class PricingResponse(BaseModel):
    """Pricing snapshot response DTO"""
    nights: int
    rooms: int
    price_per_night: Decimal
    base_price: Decimal
    discount_amount: Decimal
    price_after_discount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_price: Decimal
    currency: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    booking_reference: str
    room_type_id: str
    check_in: date
    check_out: date
    guests: int
    children: int
    adults: int
    rooms: int
    guest_name: str
    guest_email: str
    guest_phone: str
    special_requests: Optional[str] = None
    pricing: PricingResponse
    status: str
    created_at: datetime
    modified_at: datetime
    created_by: str
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    version: int


# ============================================================================
# ROOM & AVAILABILITY SCHEMAS
# ============================================================================

class RoomTypeResponse(BaseModel):
    """Room type response DTO"""
    room_type_id: str
    name: str
    category: str
    description: str
    price_per_night: Decimal
    capacity: int
    max_rooms_per_booking: Optional[int] = None
    total_rooms: int
    amenities: List[str]
    is_available: bool


class ConflictingReservationResponse(BaseModel):
    reservation_id: UUID
    booking_reference: str
    check_in: date
    check_out: date
    rooms: int
    status: str


class AvailabilityResponse(BaseModel):
    """Availability check response DTO"""
    available: bool
    message: str
    room_type: RoomTypeResponse
    check_in: date
    check_out: date
    requested_rooms: int
    available_rooms: int
    pricing: Optional[PricingResponse] = None
    conflicting_reservation: Optional[ConflictingReservationResponse] = None


class DateCheckResponse(BaseModel):
    available: bool
    message: str
    conflicting_reservation: Optional[ConflictingReservationResponse] = None


class CalendarDayResponse(BaseModel):
    date: date
    available: bool


class CalendarResponse(BaseModel):
    """Simple booked/free calendar response DTO"""
    room_type_id: str
    room_name: str
    start_date: date
    end_date: date
    days: List[CalendarDayResponse]


class InventoryDayResponse(BaseModel):
    date: date
    booked_rooms: int
    available_rooms: int
    available: bool


class InventoryCalendarResponse(BaseModel):
    """Per-day room count calendar response DTO"""
    room_type_id: str
    room_name: str
    total_rooms: int
    rooms_requested: int
    start_date: date
    end_date: date
    days: List[InventoryDayResponse]


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
