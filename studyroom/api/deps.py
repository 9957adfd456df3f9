from datetime import datetime
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from studyroom.core.config import settings
from studyroom.db.session import get_db
from studyroom.repositories.reservation_repository import ReservationRepository
from studyroom.repositories.seat_repository import SeatRepository
from studyroom.repositories.user_repository import UserRepository
from studyroom.services.reservation_engine import ReservationEngine
from studyroom.services.seat_locks import SeatLockRegistry
from studyroom.services.seat_registry import SeatRegistry
from studyroom.services.statistics import ReservationStatistics


def get_clock() -> Callable[[], datetime]:
    return datetime.now


def get_seat_locks(request: Request) -> SeatLockRegistry:
    # One registry per application, created alongside the app
    return request.app.state.seat_locks


def get_seat_registry(
    db: Session = Depends(get_db),
    seat_locks: SeatLockRegistry = Depends(get_seat_locks),
) -> SeatRegistry:
    return SeatRegistry(SeatRepository(db), seat_locks)


def get_engine(
    db: Session = Depends(get_db),
    seat_locks: SeatLockRegistry = Depends(get_seat_locks),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ReservationEngine:
    seats = SeatRepository(db)
    return ReservationEngine(
        reservations=ReservationRepository(db, default_limit=settings.QUERY_LIMIT),
        seats=seats,
        users=UserRepository(db),
        seat_locks=seat_locks,
        seat_registry=SeatRegistry(seats, seat_locks),
        config=settings,
        clock=clock,
    )


def get_statistics(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ReservationStatistics:
    return ReservationStatistics(db, config=settings, clock=clock)
