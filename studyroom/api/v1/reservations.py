from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from studyroom.api.deps import get_engine
from studyroom.models.reservation import PaymentStatus, ReservationStatus
from studyroom.services.reservation_engine import ReservationEngine
from studyroom.schemas.common import PaginatedResponse
from studyroom.schemas.reservation import (
    CancelRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ExtendRequest,
    PayRequest,
    QuoteRequest,
    QuoteResponse,
    RefundRequest,
    Reservation as ReservationSchema,
    ReservationCreate,
    ReservationList,
    ReservationUpdate,
)

router = APIRouter(prefix="/reservations", tags=["Reservations"])


def _as_list(reservations) -> ReservationList:
    return ReservationList(
        data=[ReservationSchema.model_validate(r) for r in reservations],
        count=len(reservations),
    )


# ---------------------------------------------------------------------------
# POST /reservations: create
# ---------------------------------------------------------------------------


@router.post("/", response_model=ReservationSchema, status_code=status.HTTP_201_CREATED)
def create_reservation(
    body: ReservationCreate,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.create_reservation(
        user_id=body.user_id,
        seat_id=body.seat_id,
        start=body.start_time,
        end=body.end_time,
        note=body.note,
    )


# ---------------------------------------------------------------------------
# GET /reservations: filtered, paginated search
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[ReservationSchema])
def search_reservations(
    # --- Filters ---
    user_id: Optional[UUID] = Query(None),
    seat_id: Optional[UUID] = Query(None),
    status: Optional[ReservationStatus] = Query(None, description="ACTIVE, COMPLETED, CANCELLED, EXPIRED, NO_SHOW"),
    payment_status: Optional[PaymentStatus] = Query(None),
    # --- Pagination ---
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    engine: ReservationEngine = Depends(get_engine),
):
    limit = min(limit or engine.config.DEFAULT_PAGE_SIZE, engine.config.MAX_PAGE_SIZE)
    items, total = engine.search(
        user_id=user_id,
        seat_id=seat_id,
        status=status,
        payment_status=payment_status,
        page=page,
        limit=limit,
    )
    return PaginatedResponse(
        data=[ReservationSchema.model_validate(r) for r in items],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# Quotes & conflict checks (no state change)
# ---------------------------------------------------------------------------


@router.post("/quote", response_model=QuoteResponse)
def quote(body: QuoteRequest, engine: ReservationEngine = Depends(get_engine)):
    amount = engine.calculate_cost(body.seat_id, body.start_time, body.end_time)
    return QuoteResponse(
        seat_id=body.seat_id,
        start_time=body.start_time,
        end_time=body.end_time,
        total_amount=amount,
    )


@router.post("/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(body: ConflictCheckRequest, engine: ReservationEngine = Depends(get_engine)):
    conflicting = engine.conflicting_reservations(
        body.seat_id, body.start_time, body.end_time, body.exclude_reservation_id
    )
    return ConflictCheckResponse(
        seat_id=body.seat_id,
        has_conflict=bool(conflicting),
        conflicting_codes=[r.reservation_code for r in conflicting],
    )


# ---------------------------------------------------------------------------
# Fixed-path queries (declared before /{reservation_id})
# ---------------------------------------------------------------------------


@router.get("/today", response_model=ReservationList)
def todays_reservations(engine: ReservationEngine = Depends(get_engine)):
    return _as_list(engine.today())


@router.get("/active", response_model=ReservationList)
def active_reservations(engine: ReservationEngine = Depends(get_engine)):
    return _as_list(engine.active())


@router.get("/expiring", response_model=ReservationList)
def expiring_reservations(
    minutes: int = Query(15, ge=1, le=24 * 60, description="Look-ahead window in minutes"),
    engine: ReservationEngine = Depends(get_engine),
):
    return _as_list(engine.expiring_within(minutes))


@router.get("/expired-unpaid", response_model=ReservationList)
def expired_unpaid_reservations(engine: ReservationEngine = Depends(get_engine)):
    return _as_list(engine.expired_unpaid())


@router.get("/code/{code}", response_model=ReservationSchema)
def get_reservation_by_code(code: str, engine: ReservationEngine = Depends(get_engine)):
    return engine.get_by_code(code)


@router.get("/users/{user_id}", response_model=ReservationList)
def user_reservations(user_id: UUID, engine: ReservationEngine = Depends(get_engine)):
    return _as_list(engine.by_user(user_id))


@router.get("/seats/{seat_id}", response_model=ReservationList)
def seat_reservations(seat_id: UUID, engine: ReservationEngine = Depends(get_engine)):
    return _as_list(engine.by_seat(seat_id))


# ---------------------------------------------------------------------------
# Single reservation
# ---------------------------------------------------------------------------


@router.get("/{reservation_id}", response_model=ReservationSchema)
def get_reservation(reservation_id: UUID, engine: ReservationEngine = Depends(get_engine)):
    return engine.get(reservation_id)


@router.put("/{reservation_id}", response_model=ReservationSchema)
def update_reservation(
    reservation_id: UUID,
    body: ReservationUpdate,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.update(reservation_id, body.start_time, body.end_time, body.note)


@router.post("/{reservation_id}/pay", response_model=ReservationSchema)
def pay_reservation(
    reservation_id: UUID,
    body: Optional[PayRequest] = None,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.pay(reservation_id, body.payment_method if body else None)


@router.post("/{reservation_id}/check-in", response_model=ReservationSchema)
def check_in(reservation_id: UUID, engine: ReservationEngine = Depends(get_engine)):
    return engine.check_in(reservation_id)


@router.post("/{reservation_id}/check-out", response_model=ReservationSchema)
def check_out(reservation_id: UUID, engine: ReservationEngine = Depends(get_engine)):
    return engine.check_out(reservation_id)


@router.post("/{reservation_id}/cancel", response_model=ReservationSchema)
def cancel_reservation(
    reservation_id: UUID,
    body: Optional[CancelRequest] = None,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.cancel(reservation_id, body.reason if body else None)


@router.post("/{reservation_id}/extend", response_model=ReservationSchema)
def extend_reservation(
    reservation_id: UUID,
    body: ExtendRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.extend(reservation_id, body.new_end_time)


@router.post("/{reservation_id}/refund", response_model=ReservationSchema)
def refund_reservation(
    reservation_id: UUID,
    body: Optional[RefundRequest] = None,
    engine: ReservationEngine = Depends(get_engine),
):
    return engine.refund(reservation_id, body.amount if body else None)
