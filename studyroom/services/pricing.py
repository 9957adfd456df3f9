from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from studyroom.core.exceptions import InvalidWindow
from studyroom.models.seat import SeatType

CENT = Decimal("0.01")
ONE_HOUR = timedelta(hours=1)
MINIMUM_BILLABLE_HOURS = 1

# Add new seat types here; unknown types bill at the base rate
SEAT_TYPE_MULTIPLIERS = {
    SeatType.NORMAL: Decimal("1.0"),
    SeatType.QUIET: Decimal("1.2"),
    SeatType.GROUP: Decimal("1.3"),
    SeatType.VIP: Decimal("1.5"),
}


def billable_hours(start: datetime, end: datetime) -> int:
    """Whole hours, rounded up, never below the one-hour minimum."""
    duration = end - start
    if duration <= timedelta(0):
        raise InvalidWindow("end time must be after start time")
    hours, remainder = divmod(duration, ONE_HOUR)
    if remainder:
        hours += 1
    return max(hours, MINIMUM_BILLABLE_HOURS)


def type_multiplier(seat_type) -> Decimal:
    return SEAT_TYPE_MULTIPLIERS.get(seat_type, Decimal("1.0"))


def calculate_cost(seat_type, hourly_rate, start: datetime, end: datetime) -> Decimal:
    """
    Cost of holding a seat of `seat_type` over [start, end).

    rate × ceil(hours) × type multiplier, in exact decimal arithmetic.
    Rounded half-up to cents once, after all multiplication.
    """
    rate = hourly_rate if isinstance(hourly_rate, Decimal) else Decimal(str(hourly_rate))
    amount = rate * billable_hours(start, end) * type_multiplier(seat_type)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
