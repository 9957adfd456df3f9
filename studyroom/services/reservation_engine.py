"""
Reservation lifecycle engine.

Owns the reservation state machine:

    ACTIVE ──pay/check_in/extend/update──▶ ACTIVE
    ACTIVE ──check_out──▶ COMPLETED
    ACTIVE ──cancel / unpaid sweep──▶ CANCELLED
    ACTIVE ──paid, never checked in, window lapsed──▶ NO_SHOW
    ACTIVE ──checked in, never checked out, window lapsed──▶ EXPIRED

Anything other than ACTIVE is terminal. Creation, extension and update run the
conflict check and the write inside one per-seat critical section, so two
overlapping bookings for a seat can never both be accepted.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterator, List, Optional, Tuple
from uuid import UUID

from studyroom.core.config import Settings, settings as default_settings
from studyroom.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyPaid,
    AlreadyTerminal,
    InvalidAmount,
    InvalidWindow,
    NotCheckedIn,
    NotPaid,
    NotRefundable,
    OutsideCheckInWindow,
    OutsideOpeningHours,
    ReservationNotFound,
    SeatNotFound,
    SeatUnavailable,
    TimeConflict,
    UserNotFound,
)
from studyroom.models.reservation import PaymentStatus, Reservation, ReservationStatus
from studyroom.models.room import RoomStatus
from studyroom.models.seat import Seat, SeatStatus
from studyroom.repositories.reservation_repository import ReservationRepository
from studyroom.repositories.seat_repository import SeatRepository
from studyroom.repositories.user_repository import UserRepository
from studyroom.services.conflicts import ConflictDetector
from studyroom.services.pricing import CENT, calculate_cost
from studyroom.services.seat_locks import SeatLockRegistry
from studyroom.services.seat_registry import SeatRegistry
from studyroom.utils.codes import generate_reservation_code
from studyroom.utils.opening_hours import window_within_opening_hours

logger = logging.getLogger(__name__)

CLOSED_ROOM_STATUSES = (RoomStatus.MAINTENANCE, RoomStatus.CLOSED)


def append_note(note: Optional[str], line: str) -> str:
    return f"{note}\n{line}" if note else line


class ReservationEngine:

    def __init__(
        self,
        reservations: ReservationRepository,
        seats: SeatRepository,
        users: UserRepository,
        seat_locks: SeatLockRegistry,
        seat_registry: Optional[SeatRegistry] = None,
        config: Settings = default_settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.reservations = reservations
        self.seats = seats
        self.users = users
        self.seat_locks = seat_locks
        self.seat_registry = seat_registry or SeatRegistry(seats, seat_locks)
        self.conflicts = ConflictDetector(reservations)
        self.config = config
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _seat_transaction(self, seat_id: UUID) -> Iterator[None]:
        """Per-seat critical section; the open transaction is rolled back on any guard failure."""
        with self.seat_locks.hold(seat_id):
            try:
                yield
            except Exception:
                self.reservations.rollback()
                raise

    @contextmanager
    def _locked_reservation(self, reservation_id: UUID) -> Iterator[Reservation]:
        reservation = self.reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        with self._seat_transaction(reservation.seat_id):
            # Re-read under the lock: another caller may have moved it meanwhile
            yield self.reservations.get_for_update(reservation_id)

    @staticmethod
    def _require_active(reservation: Reservation) -> None:
        if reservation.status != ReservationStatus.ACTIVE:
            raise AlreadyTerminal(
                f"reservation {reservation.reservation_code} is {reservation.status.value}"
            )

    @staticmethod
    def _require_naive(*values: datetime) -> None:
        if any(value.tzinfo is not None for value in values):
            raise InvalidWindow("timestamps must be naive local time")

    @classmethod
    def _validate_window(cls, start: datetime, end: datetime) -> None:
        cls._require_naive(start, end)
        if start >= end:
            raise InvalidWindow("start time must be before end time")

    def _check_opening_hours(self, seat: Seat, start: datetime, end: datetime) -> None:
        if not self.config.ENFORCE_OPENING_HOURS:
            return
        room = seat.room
        if not window_within_opening_hours(room.open_time, room.close_time, start, end):
            raise OutsideOpeningHours(f"room {room.name} is closed during the requested window")

    def _check_bookable(self, seat: Seat) -> None:
        if seat.status == SeatStatus.OUT_OF_ORDER:
            raise SeatUnavailable(f"seat {seat.seat_number} is out of order")
        if seat.room.status in CLOSED_ROOM_STATUSES:
            raise SeatUnavailable(f"room {seat.room.name} is {seat.room.status.value}")

    def _require_seat(self, seat_id: UUID) -> Seat:
        seat = self.seats.get(seat_id)
        if seat is None:
            raise SeatNotFound(seat_id)
        return seat

    def _new_code(self, now: datetime) -> str:
        while True:
            code = generate_reservation_code(now)
            if not self.reservations.code_exists(code):
                return code

    def _sync_seat(self, action: Callable[[UUID], bool], seat_id: UUID) -> None:
        if not self.config.AUTO_SYNC_SEAT_STATUS:
            return
        if not action(seat_id):
            logger.warning("Seat %s status sync via %s was refused", seat_id, action.__name__)

    # ------------------------------------------------------------------
    # Pricing & conflicts
    # ------------------------------------------------------------------

    def calculate_cost(self, seat_id: UUID, start: datetime, end: datetime) -> Decimal:
        seat = self._require_seat(seat_id)
        return calculate_cost(seat.type, seat.room.hourly_rate, start, end)

    def has_time_conflict(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> bool:
        return self.conflicts.has_conflict(seat_id, start, end, exclude_reservation_id)

    def conflicting_reservations(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        return self.conflicts.conflicting(seat_id, start, end, exclude_reservation_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_reservation(
        self,
        user_id: UUID,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        note: Optional[str] = None,
    ) -> Reservation:
        now = self.clock()
        self._validate_window(start, end)
        if start < now:
            raise InvalidWindow("start time is in the past")
        if self.users.get_active(user_id) is None:
            raise UserNotFound(user_id)
        seat = self._require_seat(seat_id)
        self._check_opening_hours(seat, start, end)
        amount = calculate_cost(seat.type, seat.room.hourly_rate, start, end)

        with self._seat_transaction(seat_id):
            seat = self.seats.get_for_update(seat_id)
            self._check_bookable(seat)
            if self.conflicts.has_conflict(seat_id, start, end):
                logger.debug("Rejected booking of seat %s for %s-%s: conflict", seat_id, start, end)
                raise TimeConflict(f"seat {seat.seat_number} is already booked in that window")

            reservation = Reservation(
                reservation_code=self._new_code(now),
                user_id=user_id,
                seat_id=seat_id,
                start_time=start,
                end_time=end,
                status=ReservationStatus.ACTIVE,
                payment_status=PaymentStatus.PENDING,
                total_amount=amount,
                note=note,
                created_at=now,
            )
            self.reservations.add(reservation)

        logger.info(
            "Reservation %s created: seat %s, %s-%s, amount %s",
            reservation.reservation_code, seat_id, start, end, amount,
        )
        return reservation

    def pay(self, reservation_id: UUID, method: Optional[str] = None) -> Reservation:
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            if reservation.payment_status == PaymentStatus.PAID:
                raise AlreadyPaid(f"reservation {reservation.reservation_code} is already paid")
            reservation.payment_status = PaymentStatus.PAID
            reservation.payment_method = method
            self.reservations.save(reservation)

        logger.info("Reservation %s paid via %s", reservation.reservation_code, method)
        return reservation

    def check_in(self, reservation_id: UUID) -> Reservation:
        now = self.clock()
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            if reservation.payment_status != PaymentStatus.PAID:
                raise NotPaid(f"reservation {reservation.reservation_code} is not paid")
            if reservation.check_in_time is not None:
                raise AlreadyCheckedIn(f"reservation {reservation.reservation_code} is already checked in")
            if not reservation.start_time <= now <= reservation.end_time:
                raise OutsideCheckInWindow(
                    f"check-in allowed only between {reservation.start_time} and {reservation.end_time}"
                )
            reservation.check_in_time = now
            self.reservations.save(reservation)
            self._sync_seat(self.seat_registry.occupy, reservation.seat_id)

        logger.info("Reservation %s checked in at %s", reservation.reservation_code, now)
        return reservation

    def check_out(self, reservation_id: UUID) -> Reservation:
        now = self.clock()
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            if reservation.check_in_time is None:
                raise NotCheckedIn(f"reservation {reservation.reservation_code} was never checked in")
            reservation.check_out_time = now
            reservation.status = ReservationStatus.COMPLETED
            self.reservations.save(reservation)
            self._sync_seat(self.seat_registry.release, reservation.seat_id)

        logger.info("Reservation %s checked out at %s", reservation.reservation_code, now)
        return reservation

    def cancel(self, reservation_id: UUID, reason: Optional[str] = None) -> Reservation:
        now = self.clock()
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            was_checked_in = reservation.check_in_time is not None
            reservation.status = ReservationStatus.CANCELLED
            reservation.cancelled_at = now
            if reason:
                reservation.note = append_note(reservation.note, f"Cancel reason: {reason}")
            self.reservations.save(reservation)
            if was_checked_in:
                self._sync_seat(self.seat_registry.release, reservation.seat_id)

        logger.info("Reservation %s cancelled (%s)", reservation.reservation_code, reason or "no reason")
        return reservation

    def extend(self, reservation_id: UUID, new_end: datetime) -> Reservation:
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            self._require_naive(new_end)
            if new_end <= reservation.end_time:
                raise InvalidWindow("new end time must be after the current end time")
            seat = self._require_seat(reservation.seat_id)
            self._check_opening_hours(seat, reservation.start_time, new_end)
            if self.conflicts.has_conflict(
                reservation.seat_id, reservation.start_time, new_end, reservation.id
            ):
                raise TimeConflict(f"seat {seat.seat_number} is booked after the current window")

            additional = calculate_cost(seat.type, seat.room.hourly_rate, reservation.end_time, new_end)
            previous_end = reservation.end_time
            reservation.total_amount = (Decimal(reservation.total_amount) + additional).quantize(CENT)
            reservation.end_time = new_end
            self.reservations.save(reservation)

        logger.info(
            "Reservation %s extended %s -> %s (+%s)",
            reservation.reservation_code, previous_end, new_end, additional,
        )
        return reservation

    def update(
        self,
        reservation_id: UUID,
        new_start: datetime,
        new_end: datetime,
        note: Optional[str] = None,
    ) -> Reservation:
        self._validate_window(new_start, new_end)
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            seat = self._require_seat(reservation.seat_id)
            self._check_opening_hours(seat, new_start, new_end)
            if self.conflicts.has_conflict(reservation.seat_id, new_start, new_end, reservation.id):
                raise TimeConflict(f"seat {seat.seat_number} is already booked in that window")

            reservation.start_time = new_start
            reservation.end_time = new_end
            reservation.total_amount = calculate_cost(seat.type, seat.room.hourly_rate, new_start, new_end)
            reservation.note = note
            self.reservations.save(reservation)

        logger.info(
            "Reservation %s rescheduled to %s-%s, amount %s",
            reservation.reservation_code, new_start, new_end, reservation.total_amount,
        )
        return reservation

    def refund(self, reservation_id: UUID, amount: Optional[Decimal] = None) -> Reservation:
        """Refund a paid reservation that ended in CANCELLED or NO_SHOW, fully or partially."""
        with self._locked_reservation(reservation_id) as reservation:
            if reservation.status not in (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW):
                raise NotRefundable(
                    f"reservation {reservation.reservation_code} is {reservation.status.value}"
                )
            if reservation.payment_status != PaymentStatus.PAID:
                raise NotRefundable(
                    f"reservation {reservation.reservation_code} payment is {reservation.payment_status.value}"
                )
            total = Decimal(reservation.total_amount)
            refund = total if amount is None else Decimal(amount).quantize(CENT)
            if refund <= 0 or refund > total:
                raise InvalidAmount(f"refund must be between 0.01 and {total}")

            reservation.refund_amount = refund
            reservation.payment_status = (
                PaymentStatus.REFUNDED if refund == total else PaymentStatus.PARTIAL_REFUND
            )
            self.reservations.save(reservation)

        logger.info("Reservation %s refunded %s", reservation.reservation_code, refund)
        return reservation

    # Terminal transitions driven by the sweeper

    def mark_no_show(self, reservation_id: UUID) -> Reservation:
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            if reservation.check_in_time is not None:
                raise AlreadyCheckedIn(f"reservation {reservation.reservation_code} was checked in")
            if reservation.end_time >= self.clock():
                raise InvalidWindow(f"reservation {reservation.reservation_code} has not ended")
            reservation.status = ReservationStatus.NO_SHOW
            self.reservations.save(reservation)

        logger.info("Reservation %s marked as no-show", reservation.reservation_code)
        return reservation

    def expire(self, reservation_id: UUID) -> Reservation:
        """Close a checked-in reservation whose window lapsed without a check-out."""
        with self._locked_reservation(reservation_id) as reservation:
            self._require_active(reservation)
            if reservation.check_in_time is None:
                raise NotCheckedIn(f"reservation {reservation.reservation_code} was never checked in")
            if reservation.end_time >= self.clock():
                raise InvalidWindow(f"reservation {reservation.reservation_code} has not ended")
            reservation.status = ReservationStatus.EXPIRED
            self.reservations.save(reservation)
            self._sync_seat(self.seat_registry.release, reservation.seat_id)

        logger.info("Reservation %s expired without check-out", reservation.reservation_code)
        return reservation

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, reservation_id: UUID) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    def get_by_code(self, code: str) -> Reservation:
        reservation = self.reservations.get_by_code(code)
        if reservation is None:
            raise ReservationNotFound(code)
        return reservation

    def by_user(self, user_id: UUID, limit: Optional[int] = None) -> List[Reservation]:
        return self.reservations.by_user(user_id, limit or self.config.QUERY_LIMIT)

    def by_seat(self, seat_id: UUID, limit: Optional[int] = None) -> List[Reservation]:
        return self.reservations.by_seat(seat_id, limit or self.config.QUERY_LIMIT)

    def today(self, limit: Optional[int] = None) -> List[Reservation]:
        start_of_day = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.reservations.starting_between(
            start_of_day, start_of_day + timedelta(days=1), limit or self.config.QUERY_LIMIT
        )

    def active(self, limit: Optional[int] = None) -> List[Reservation]:
        return self.reservations.active(limit or self.config.QUERY_LIMIT)

    def expiring_within(self, minutes: int, limit: Optional[int] = None) -> List[Reservation]:
        now = self.clock()
        return self.reservations.ending_between(
            now, now + timedelta(minutes=minutes), limit or self.config.QUERY_LIMIT
        )

    def expired_unpaid(self, limit: Optional[int] = None) -> List[Reservation]:
        return self.reservations.expired_unpaid(self.clock(), limit or self.config.QUERY_LIMIT)

    def search(
        self,
        user_id: Optional[UUID] = None,
        seat_id: Optional[UUID] = None,
        status: Optional[ReservationStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Tuple[List[Reservation], int]:
        limit = min(limit or self.config.DEFAULT_PAGE_SIZE, self.config.MAX_PAGE_SIZE)
        return self.reservations.search(
            user_id=user_id,
            seat_id=seat_id,
            status=status,
            payment_status=payment_status,
            page=max(page, 1),
            limit=limit,
        )
