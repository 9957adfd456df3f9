import os

# Keep the app's module-level engine off PostgreSQL and the sweeper idle
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEPER_ENABLED", "false")

from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studyroom.core.config import Settings
from studyroom.db.base import Base
from studyroom.models import RoomStatus, Seat, SeatStatus, SeatType, StudyRoom, User
from studyroom.repositories.reservation_repository import ReservationRepository
from studyroom.repositories.seat_repository import SeatRepository
from studyroom.repositories.user_repository import UserRepository
from studyroom.services.reservation_engine import ReservationEngine
from studyroom.services.seat_locks import SeatLockRegistry

# Monday morning; bookings in the tests land on the following day
NOW = datetime(2026, 3, 2, 8, 0)
TOMORROW = NOW.date() + timedelta(days=1)


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, when: datetime) -> datetime:
        self.now = when
        return self.now


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(TOMORROW, time(hour, minute))


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def config():
    return Settings(
        DATABASE_URL="sqlite://",
        SWEEPER_ENABLED=False,
        AUTO_SYNC_SEAT_STATUS=False,
        ENFORCE_OPENING_HOURS=False,
        SWEEP_BATCH_SIZE=200,
    )


@pytest.fixture
def seat_locks():
    return SeatLockRegistry()


# ---------------------------------------------------------------------------
# Seed data: one room at 10.00/h, a NORMAL and a VIP seat, two users
# ---------------------------------------------------------------------------


@pytest.fixture
def room(db):
    room = StudyRoom(
        name="Reading Room A",
        location="Library, 2nd floor",
        capacity=40,
        hourly_rate=Decimal("10.00"),
        open_time=time(8, 0),
        close_time=time(22, 0),
        status=RoomStatus.AVAILABLE,
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def _add_seat(db, room, number, seat_type):
    seat = Seat(study_room_id=room.id, seat_number=number, type=seat_type, status=SeatStatus.AVAILABLE)
    db.add(seat)
    db.commit()
    db.refresh(seat)
    return seat


@pytest.fixture
def normal_seat(db, room):
    return _add_seat(db, room, "A-01", SeatType.NORMAL)


@pytest.fixture
def vip_seat(db, room):
    return _add_seat(db, room, "V-01", SeatType.VIP)


@pytest.fixture
def user(db):
    user = User(username="alice", full_name="Alice Chen", email="alice@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def inactive_user(db):
    user = User(username="bob", full_name="Bob Li", is_active=False)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_engine(seat_locks, config, clock):
    def _make(session, **overrides):
        settings = config.model_copy(update=overrides) if overrides else config
        return ReservationEngine(
            reservations=ReservationRepository(session),
            seats=SeatRepository(session),
            users=UserRepository(session),
            seat_locks=seat_locks,
            config=settings,
            clock=clock,
        )
    return _make


@pytest.fixture
def engine(make_engine, db):
    return make_engine(db)
