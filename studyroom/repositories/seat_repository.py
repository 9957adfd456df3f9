from typing import Optional
from uuid import UUID

from sqlalchemy.orm import joinedload

from studyroom.models.seat import Seat
from studyroom.repositories.base import BaseRepository


class SeatRepository(BaseRepository):

    def get(self, seat_id: UUID) -> Optional[Seat]:
        """Seat with its room eager-loaded (pricing and opening hours need both)."""
        return (
            self.db.query(Seat)
            .options(joinedload(Seat.room))
            .filter(Seat.id == seat_id)
            .first()
        )

    def get_for_update(self, seat_id: UUID) -> Optional[Seat]:
        """
        Re-read the seat row with a row lock (SELECT ... FOR UPDATE).

        The lock is held until the surrounding transaction commits or rolls back,
        which serializes work on one seat across worker processes on PostgreSQL.
        Backends without row locks (SQLite) ignore the clause. The room is left to
        lazy-load since FOR UPDATE cannot cover the nullable side of an outer join.
        """
        return (
            self.db.query(Seat)
            .filter(Seat.id == seat_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def save(self, seat: Seat) -> Seat:
        self.db.commit()
        self.db.refresh(seat)
        return seat
