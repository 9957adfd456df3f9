import logging

from fastapi import APIRouter, Depends

from studyroom.api.deps import get_engine
from studyroom.services.reservation_engine import ReservationEngine
from studyroom.services.sweeper import ExpirySweeper
from studyroom.schemas.statistics import SweepResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/reservations", tags=["Admin - Reservations"])


@router.post("/sweep", response_model=SweepResult)
def run_sweep(engine: ReservationEngine = Depends(get_engine)):
    """Run every enabled expiry sweep now instead of waiting for the next tick."""
    results = ExpirySweeper(engine, batch_size=engine.config.SWEEP_BATCH_SIZE).run()
    logger.info("On-demand sweep finished: %s", results)
    return results
