import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Set
from uuid import UUID

from studyroom.core.exceptions import ReservationError
from studyroom.models.reservation import Reservation

if TYPE_CHECKING:
    from studyroom.services.reservation_engine import ReservationEngine

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Terminates reservations whose window has lapsed.

    Every sweep only moves ACTIVE reservations that already ended, so it never
    races with fresh bookings for the same seat, and running it twice in a row
    changes nothing the second time.
    """

    def __init__(self, engine: "ReservationEngine", batch_size: int = 200):
        self.engine = engine
        self.batch_size = batch_size

    def _drain(
        self,
        fetch: Callable[[Set[UUID]], List[Reservation]],
        transition: Callable[[Reservation], None],
        label: str,
    ) -> int:
        count = 0
        skipped: Set[UUID] = set()
        while True:
            # Skipped rows are excluded from later pages
            batch = fetch(skipped)
            if not batch:
                break
            for reservation in batch:
                try:
                    transition(reservation)
                    count += 1
                except ReservationError as e:
                    # Moved by a concurrent caller between fetch and lock
                    logger.debug("Sweep (%s) skipped %s: %s", label, reservation.reservation_code, e.message)
                    skipped.add(reservation.id)
            if len(batch) < self.batch_size:
                break
        if count:
            logger.info("Sweep (%s) transitioned %d reservation(s).", label, count)
        return count

    def sweep_expired(self) -> int:
        """ACTIVE + unpaid + ended → CANCELLED with the unpaid-timeout reason."""
        reason = self.engine.config.UNPAID_TIMEOUT_REASON
        return self._drain(
            lambda skipped: self.engine.reservations.expired_unpaid(self.engine.clock(), self.batch_size, skipped),
            lambda r: self.engine.cancel(r.id, reason),
            "unpaid",
        )

    def sweep_no_shows(self) -> int:
        """ACTIVE + paid + never checked in + ended → NO_SHOW."""
        return self._drain(
            lambda skipped: self.engine.reservations.lapsed_without_check_in(self.engine.clock(), self.batch_size, skipped),
            lambda r: self.engine.mark_no_show(r.id),
            "no-show",
        )

    def sweep_overstays(self) -> int:
        """ACTIVE + checked in + never checked out + ended → EXPIRED."""
        return self._drain(
            lambda skipped: self.engine.reservations.lapsed_without_check_out(self.engine.clock(), self.batch_size, skipped),
            lambda r: self.engine.expire(r.id),
            "overstay",
        )

    def run(self) -> Dict[str, int]:
        results = {"cancelled_unpaid": self.sweep_expired()}
        if self.engine.config.MARK_NO_SHOWS:
            results["no_show"] = self.sweep_no_shows()
        if self.engine.config.EXPIRE_OVERSTAYS:
            results["expired"] = self.sweep_overstays()
        return results
