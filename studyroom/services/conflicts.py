from datetime import datetime
from typing import List, Optional
from uuid import UUID

from studyroom.models.reservation import Reservation
from studyroom.repositories.reservation_repository import ReservationRepository


class ConflictDetector:
    """Answers whether a seat is already claimed by an ACTIVE reservation."""

    def __init__(self, reservations: ReservationRepository):
        self.reservations = reservations

    def has_conflict(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> bool:
        return self.reservations.exists_overlapping(seat_id, start, end, exclude_reservation_id)

    def conflicting(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        return self.reservations.find_overlapping(seat_id, start, end, exclude_reservation_id)
