from uuid import UUID

from fastapi import APIRouter, Depends

from studyroom.api.deps import get_seat_registry
from studyroom.services.seat_registry import SeatRegistry
from studyroom.schemas.seat import SeatStatusResponse, SeatStatusUpdate, SeatTransitionResponse

router = APIRouter(prefix="/seats", tags=["Seats"])


def _transition_response(registry: SeatRegistry, seat_id: UUID, applied: bool) -> SeatTransitionResponse:
    return SeatTransitionResponse(
        seat_id=seat_id,
        applied=applied,
        status=registry.get_status(seat_id),
    )


@router.get("/{seat_id}/status", response_model=SeatStatusResponse)
def get_seat_status(seat_id: UUID, registry: SeatRegistry = Depends(get_seat_registry)):
    seat_status = registry.get_status(seat_id)
    return SeatStatusResponse(seat_id=seat_id, status=seat_status, is_available=registry.is_available(seat_id))


@router.put("/{seat_id}/status", response_model=SeatTransitionResponse)
def set_seat_status(
    seat_id: UUID,
    body: SeatStatusUpdate,
    registry: SeatRegistry = Depends(get_seat_registry),
):
    """Administrative override; bypasses the transition rules."""
    applied = registry.set_status(seat_id, body.status)
    return _transition_response(registry, seat_id, applied)


# Rule-checked transitions: `applied` is false when the seat was in the wrong state

@router.post("/{seat_id}/occupy", response_model=SeatTransitionResponse)
def occupy_seat(seat_id: UUID, registry: SeatRegistry = Depends(get_seat_registry)):
    return _transition_response(registry, seat_id, registry.occupy(seat_id))


@router.post("/{seat_id}/release", response_model=SeatTransitionResponse)
def release_seat(seat_id: UUID, registry: SeatRegistry = Depends(get_seat_registry)):
    return _transition_response(registry, seat_id, registry.release(seat_id))


@router.post("/{seat_id}/reserve", response_model=SeatTransitionResponse)
def reserve_seat(seat_id: UUID, registry: SeatRegistry = Depends(get_seat_registry)):
    return _transition_response(registry, seat_id, registry.reserve(seat_id))


@router.post("/{seat_id}/cancel-hold", response_model=SeatTransitionResponse)
def cancel_seat_hold(seat_id: UUID, registry: SeatRegistry = Depends(get_seat_registry)):
    return _transition_response(registry, seat_id, registry.cancel_reservation_hold(seat_id))
