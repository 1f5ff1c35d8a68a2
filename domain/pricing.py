"""Pricing Calculator

Pure functions that turn a stay window and a nightly rate into a frozen
``PriceBreakdown``. Amounts are whole currency units; tax is rounded half-up.
The tax rate is always supplied by the caller.
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from domain.enums import RuleCode
from domain.exceptions import ValidationFailedError
from domain.value_objects import PriceBreakdown

Numeric = Union[Decimal, int, float, str]

ONE_DAY = timedelta(days=1)
CURRENCY_UNIT = Decimal("1")


def _to_decimal(value: Numeric) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 0.12 becomes Decimal("0.12"), not its binary expansion
    return Decimal(str(value))


def _as_utc_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def calculate_nights(check_in: Union[date, datetime], check_out: Union[date, datetime]) -> int:
    """Number of billable nights: elapsed time divided by one day, rounded up.

    Sub-day spans still bill one night.
    """
    start = _as_utc_datetime(check_in)
    end = _as_utc_datetime(check_out)
    if end <= start:
        raise ValidationFailedError(
            "Check-out date must be after check-in date",
            RuleCode.INVALID_DATE_RANGE
        )
    return math.ceil((end - start) / ONE_DAY)


def round_half_up(amount: Decimal) -> Decimal:
    return amount.quantize(CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def calculate_pricing(
    nights: int,
    price_per_night: Numeric,
    tax_rate: Numeric,
    discount: Numeric = 0,
    rooms: int = 1,
    currency: str = "INR"
) -> PriceBreakdown:
    """Compute base, discount, tax and total for a stay.

    ``price_per_night`` is the rate of one room; the base covers ``rooms``
    rooms for every night.

    A discount larger than the base price is clamped to the base price, so
    the taxable amount never goes negative. Negative discounts are rejected.
    """
    if rooms < 1:
        raise ValidationFailedError("At least 1 room must be priced", RuleCode.ROOM_COUNT_INVALID)
    if nights < 1:
        raise ValidationFailedError("A stay must be at least 1 night", RuleCode.INVALID_DATE_RANGE)

    rate = _to_decimal(price_per_night)
    tax_rate = _to_decimal(tax_rate)
    discount = _to_decimal(discount)

    if rate < 0:
        raise ValidationFailedError("Nightly rate cannot be negative", RuleCode.INVALID_FORMAT)
    if tax_rate < 0:
        raise ValidationFailedError("Tax rate cannot be negative", RuleCode.INVALID_FORMAT)
    if discount < 0:
        raise ValidationFailedError("Discount cannot be negative", RuleCode.INVALID_FORMAT)

    base_price = rate * nights * rooms
    discount = min(discount, base_price)
    price_after_discount = base_price - discount
    tax_amount = round_half_up(price_after_discount * tax_rate)
    total_price = price_after_discount + tax_amount

    return PriceBreakdown(
        nights=nights,
        rooms=rooms,
        price_per_night=rate,
        base_price=base_price,
        discount_amount=discount,
        price_after_discount=price_after_discount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total_price=total_price,
        currency=currency
    )


def price_stay(
    check_in: Union[date, datetime],
    check_out: Union[date, datetime],
    price_per_night: Numeric,
    tax_rate: Numeric,
    discount: Numeric = 0,
    rooms: int = 1
) -> PriceBreakdown:
    """Nights plus pricing in one call"""
    nights = calculate_nights(check_in, check_out)
    return calculate_pricing(nights, price_per_night, tax_rate, discount, rooms)
