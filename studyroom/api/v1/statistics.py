from uuid import UUID
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from studyroom.api.deps import get_statistics
from studyroom.services.statistics import ReservationStatistics
from studyroom.schemas.common import to_local_naive
from studyroom.schemas.statistics import (
    RevenueStatistics,
    SeatStatistics,
    SystemStatistics,
    UserStatistics,
)

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get("/users/{user_id}", response_model=UserStatistics)
def user_statistics(user_id: UUID, stats: ReservationStatistics = Depends(get_statistics)):
    return stats.user_statistics(user_id)


@router.get("/seats/{seat_id}", response_model=SeatStatistics)
def seat_statistics(
    seat_id: UUID,
    window_days: Optional[int] = Query(None, ge=1, le=365, description="Utilization window, defaults to UTILIZATION_WINDOW_DAYS"),
    stats: ReservationStatistics = Depends(get_statistics),
):
    return stats.seat_statistics(seat_id, window_days)


@router.get("/system", response_model=SystemStatistics)
def system_statistics(stats: ReservationStatistics = Depends(get_statistics)):
    return stats.system_statistics()


@router.get("/revenue", response_model=RevenueStatistics)
def revenue_statistics(
    # Applied to reservation start_time, half-open [start, end)
    start: datetime = Query(..., description="Range start (ISO datetime)"),
    end: datetime = Query(..., description="Range end, exclusive (ISO datetime)"),
    stats: ReservationStatistics = Depends(get_statistics),
):
    return stats.revenue_statistics(to_local_naive(start), to_local_naive(end))
