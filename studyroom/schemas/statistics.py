from typing import Optional
from pydantic import BaseModel, UUID4
from decimal import Decimal


class UserStatistics(BaseModel):
    user_id: UUID4
    total_reservations: int
    active_count: int
    completed_count: int
    cancelled_count: int
    expired_count: int
    no_show_count: int
    total_spent: Decimal
    latest_reservation_code: Optional[str] = None


class SeatStatistics(BaseModel):
    seat_id: UUID4
    window_days: int
    total_reservations: int
    active_reservations: int
    recent_reservations: int
    usage_hours: float
    average_usage_hours: float
    utilization: float  # 0..1 over the window


class SystemStatistics(BaseModel):
    total_reservations: int
    active_count: int
    completed_count: int
    cancelled_count: int
    expired_count: int
    no_show_count: int
    today_reservations: int
    active_reservations: int


class RevenueStatistics(BaseModel):
    start: str
    end: str
    gross_revenue: Decimal
    refunded_amount: Decimal
    # Gross minus refunds
    total_revenue: Decimal
    pending_revenue: Decimal
    total_reservations: int
    average_order_value: Decimal


class SweepResult(BaseModel):
    cancelled_unpaid: int
    no_show: Optional[int] = None
    expired: Optional[int] = None
