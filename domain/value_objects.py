"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterator, Optional


class DateRange(BaseModel):
    """Half-open stay window [check_in, check_out)"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        """True when the two windows share at least one night"""
        return self.check_in < other.check_out and self.check_out > other.check_in

    def contains(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    def days(self) -> Iterator[date]:
        """Every occupied night, check-out excluded"""
        current = self.check_in
        while current < self.check_out:
            yield current
            current += timedelta(days=1)

    def intersection(self, other: "DateRange") -> Optional["DateRange"]:
        if not self.overlaps(other):
            return None
        return DateRange(
            check_in=max(self.check_in, other.check_in),
            check_out=min(self.check_out, other.check_out)
        )

    def check_in_datetime(self) -> datetime:
        """Check-in at midnight UTC"""
        return datetime.combine(self.check_in, time.min, tzinfo=timezone.utc)

    class Config:
        frozen = True


class GuestCount(BaseModel):
    """Value Object for guest and room counts"""
    guests: int = Field(ge=1)
    children: int = Field(ge=0, default=0)
    rooms: int = Field(ge=1, default=1)

    @validator('children')
    def children_within_guests(cls, v, values):
        if 'guests' in values and v > values['guests']:
            raise ValueError('Children cannot exceed total guests')
        return v

    @property
    def adults(self) -> int:
        return self.guests - self.children

    class Config:
        frozen = True


class GuestContact(BaseModel):
    """Guest identity, not used for admission"""
    name: str
    email: str
    phone: str

    class Config:
        frozen = True


class PriceBreakdown(BaseModel):
    """Pricing snapshot taken at booking time"""
    nights: int = Field(ge=1)
    rooms: int = Field(ge=1, default=1)
    price_per_night: Decimal
    base_price: Decimal
    discount_amount: Decimal = Decimal("0")
    price_after_discount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_price: Decimal
    currency: str = "INR"

    class Config:
        frozen = True


class CancellationPolicy(BaseModel):
    """Value Object for cancellation policy"""
    policy_name: str = "Standard"
    deadline_hours: int = Field(ge=0, default=24)

    def hours_until_check_in(self, date_range: DateRange, now: datetime) -> float:
        return (date_range.check_in_datetime() - now).total_seconds() / 3600

    def allows_cancellation(self, date_range: DateRange, now: datetime) -> bool:
        """Check-in must be at least deadline_hours away"""
        return self.hours_until_check_in(date_range, now) >= self.deadline_hours

    class Config:
        frozen = True
