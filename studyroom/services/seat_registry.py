import logging
from typing import Iterable
from uuid import UUID

from studyroom.core.exceptions import SeatNotFound
from studyroom.models.seat import Seat, SeatStatus
from studyroom.repositories.seat_repository import SeatRepository
from studyroom.services.seat_locks import SeatLockRegistry

logger = logging.getLogger(__name__)


class SeatRegistry:
    """
    Seat status transitions.

    Each transition returns True when applied and False when the seat is in the
    wrong state; only an unknown seat raises. Writes are committed before
    returning, under the same per-seat lock that guards reservation creation.
    """

    def __init__(self, seats: SeatRepository, seat_locks: SeatLockRegistry):
        self.seats = seats
        self.seat_locks = seat_locks

    def _load(self, seat_id: UUID) -> Seat:
        seat = self.seats.get_for_update(seat_id)
        if seat is None:
            self.seats.rollback()
            raise SeatNotFound(seat_id)
        return seat

    def get_status(self, seat_id: UUID) -> SeatStatus:
        seat = self.seats.get(seat_id)
        if seat is None:
            raise SeatNotFound(seat_id)
        return seat.status

    def is_available(self, seat_id: UUID) -> bool:
        return self.get_status(seat_id) == SeatStatus.AVAILABLE

    def set_status(self, seat_id: UUID, new_status: SeatStatus) -> bool:
        """Unconditional write, used for administrative overrides."""
        with self.seat_locks.hold(seat_id):
            seat = self._load(seat_id)
            previous = seat.status
            seat.status = new_status
            self.seats.save(seat)
        logger.info("Seat %s status %s -> %s (override)", seat_id, previous.value, new_status.value)
        return True

    def _transition(self, seat_id: UUID, allowed_from: Iterable[SeatStatus], target: SeatStatus) -> bool:
        with self.seat_locks.hold(seat_id):
            seat = self._load(seat_id)
            if seat.status not in allowed_from:
                self.seats.rollback()
                logger.debug(
                    "Seat %s transition to %s refused from %s",
                    seat_id, target.value, seat.status.value,
                )
                return False
            previous = seat.status
            seat.status = target
            self.seats.save(seat)
        logger.info("Seat %s status %s -> %s", seat_id, previous.value, target.value)
        return True

    def occupy(self, seat_id: UUID) -> bool:
        return self._transition(seat_id, (SeatStatus.AVAILABLE,), SeatStatus.OCCUPIED)

    def release(self, seat_id: UUID) -> bool:
        return self._transition(
            seat_id, (SeatStatus.OCCUPIED, SeatStatus.RESERVED), SeatStatus.AVAILABLE
        )

    def reserve(self, seat_id: UUID) -> bool:
        return self._transition(seat_id, (SeatStatus.AVAILABLE,), SeatStatus.RESERVED)

    def cancel_reservation_hold(self, seat_id: UUID) -> bool:
        return self._transition(seat_id, (SeatStatus.RESERVED,), SeatStatus.AVAILABLE)
