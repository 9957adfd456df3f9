from pydantic import BaseModel, UUID4

from studyroom.models.seat import SeatStatus


class SeatStatusResponse(BaseModel):
    seat_id: UUID4
    status: SeatStatus
    is_available: bool


# PUT /seats/{id}/status: administrative override
class SeatStatusUpdate(BaseModel):
    status: SeatStatus


# POST /seats/{id}/occupy|release|reserve|cancel-hold
class SeatTransitionResponse(BaseModel):
    seat_id: UUID4
    applied: bool
    status: SeatStatus
