from studyroom.schemas.common import PaginatedResponse, ErrorResponse
from studyroom.schemas.reservation import (
    Reservation, ReservationCreate, ReservationUpdate, ReservationList,
    PayRequest, CancelRequest, ExtendRequest, RefundRequest,
    QuoteRequest, QuoteResponse, ConflictCheckRequest, ConflictCheckResponse,
)
from studyroom.schemas.seat import SeatStatusResponse, SeatStatusUpdate, SeatTransitionResponse
from studyroom.schemas.statistics import (
    UserStatistics, SeatStatistics, SystemStatistics, RevenueStatistics, SweepResult,
)
