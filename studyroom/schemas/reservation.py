from typing import Optional, List
from pydantic import BaseModel, Field, UUID4, model_validator
from decimal import Decimal
from datetime import datetime

from studyroom.models.reservation import ReservationStatus, PaymentStatus
from studyroom.schemas.common import LocalDatetime


# Reservation: Create (POST /reservations)
class ReservationCreate(BaseModel):
    user_id: UUID4
    seat_id: UUID4
    start_time: LocalDatetime
    end_time: LocalDatetime
    note: Optional[str] = Field(None, max_length=1000)


# Reservation: Full response
class Reservation(BaseModel):
    id: UUID4
    reservation_code: str
    user_id: UUID4
    seat_id: UUID4
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    total_amount: Decimal
    refund_amount: Optional[Decimal] = None
    note: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Lifecycle request bodies ---

class PayRequest(BaseModel):
    payment_method: Optional[str] = Field(None, max_length=30)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ExtendRequest(BaseModel):
    new_end_time: LocalDatetime


# PUT /reservations/{id}: reschedule; note replaces the stored note
class ReservationUpdate(BaseModel):
    start_time: LocalDatetime
    end_time: LocalDatetime
    note: Optional[str] = Field(None, max_length=1000)


class RefundRequest(BaseModel):
    # Omitted → refund the full amount
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)


# --- Quotes & conflict checks ---

class QuoteRequest(BaseModel):
    seat_id: UUID4
    start_time: LocalDatetime
    end_time: LocalDatetime


class QuoteResponse(BaseModel):
    seat_id: UUID4
    start_time: datetime
    end_time: datetime
    total_amount: Decimal


class ConflictCheckRequest(BaseModel):
    seat_id: UUID4
    start_time: LocalDatetime
    end_time: LocalDatetime
    exclude_reservation_id: Optional[UUID4] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class ConflictCheckResponse(BaseModel):
    seat_id: UUID4
    has_conflict: bool
    conflicting_codes: List[str] = []


class ReservationList(BaseModel):
    data: List[Reservation]
    count: int
