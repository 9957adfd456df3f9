import asyncio
import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from studyroom.db.init_db import create_database
from studyroom.db.base import Base
from studyroom.db.session import engine, SessionLocal
from studyroom.core.config import settings
from studyroom.core.logging import configure_logging
from studyroom.api.errors import register_exception_handlers
from studyroom.api.v1.router import api_router
from studyroom.repositories.reservation_repository import ReservationRepository
from studyroom.repositories.seat_repository import SeatRepository
from studyroom.repositories.user_repository import UserRepository
from studyroom.services.reservation_engine import ReservationEngine
from studyroom.services.seat_locks import SeatLockRegistry
from studyroom.services.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def run_sweep_once(seat_locks: SeatLockRegistry) -> dict:
    """One sweeper tick on a fresh session."""
    db = SessionLocal()
    try:
        reservation_engine = ReservationEngine(
            reservations=ReservationRepository(db, default_limit=settings.QUERY_LIMIT),
            seats=SeatRepository(db),
            users=UserRepository(db),
            seat_locks=seat_locks,
            config=settings,
        )
        return ExpirySweeper(reservation_engine, batch_size=settings.SWEEP_BATCH_SIZE).run()
    finally:
        db.close()


async def _sweep_loop(seat_locks: SeatLockRegistry) -> None:
    """Background task: close lapsed reservations every SWEEP_INTERVAL_SECONDS."""
    while True:
        try:
            results = await asyncio.to_thread(run_sweep_once, seat_locks)
            if any(results.values()):
                logger.info("Expiry sweep: %s", results)
        except Exception:
            logger.exception("Error during reservation expiry sweep.")
        await asyncio.sleep(settings.SWEEP_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    configure_logging()
    create_database()
    Base.metadata.create_all(bind=engine)

    sweep_task = None
    if settings.SWEEPER_ENABLED:
        sweep_task = asyncio.create_task(_sweep_loop(app.state.seat_locks))
    yield

    # Shutdown: cancel background task
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
app.state.seat_locks = SeatLockRegistry()

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "Study Room Reservations"}
