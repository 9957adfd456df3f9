from datetime import datetime
from typing import Collection, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import exists, and_
from sqlalchemy.orm import Session

from studyroom.models.reservation import Reservation, ReservationStatus, PaymentStatus
from studyroom.repositories.base import BaseRepository

DEFAULT_LIMIT = 500


class ReservationRepository(BaseRepository):
    """
    Store-level access to reservations.

    Every list query is bounded by `limit`; callers page explicitly instead of
    materializing the whole table.
    """

    def __init__(self, db: Session, default_limit: int = DEFAULT_LIMIT):
        super().__init__(db)
        self.default_limit = default_limit

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, reservation: Reservation) -> Reservation:
        self.db.add(reservation)
        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    def save(self, reservation: Reservation) -> Reservation:
        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, reservation_id: UUID) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    def get_for_update(self, reservation_id: UUID) -> Optional[Reservation]:
        return (
            self.db.query(Reservation)
            .filter(Reservation.id == reservation_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_code(self, code: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.reservation_code == code).first()

    def code_exists(self, code: str) -> bool:
        return self.db.query(exists().where(Reservation.reservation_code == code)).scalar()

    # ------------------------------------------------------------------
    # Conflict queries
    # ------------------------------------------------------------------

    def _overlap_filters(self, seat_id, start, end, exclude_id):
        # Half-open windows [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1
        filters = [
            Reservation.seat_id == seat_id,
            Reservation.status == ReservationStatus.ACTIVE,
            Reservation.start_time < end,
            Reservation.end_time > start,
        ]
        if exclude_id is not None:
            filters.append(Reservation.id != exclude_id)
        return filters

    def exists_overlapping(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        return self.db.query(
            exists().where(and_(*self._overlap_filters(seat_id, start, end, exclude_id)))
        ).scalar()

    def find_overlapping(
        self,
        seat_id: UUID,
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        return (
            self.db.query(Reservation)
            .filter(*self._overlap_filters(seat_id, start, end, exclude_id))
            .order_by(Reservation.start_time)
            .all()
        )

    # ------------------------------------------------------------------
    # Bounded list queries
    # ------------------------------------------------------------------

    def _limited(self, query, limit: Optional[int]):
        return query.limit(limit or self.default_limit).all()

    def _lapsed(self, query, limit: Optional[int], exclude_ids: Optional[Collection[UUID]]):
        if exclude_ids:
            query = query.filter(Reservation.id.notin_(list(exclude_ids)))
        return self._limited(query.order_by(Reservation.end_time, Reservation.id), limit)

    def by_user(self, user_id: UUID, limit: Optional[int] = None) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.desc())
        )
        return self._limited(query, limit)

    def by_seat(self, seat_id: UUID, limit: Optional[int] = None) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(Reservation.seat_id == seat_id)
            .order_by(Reservation.start_time.desc())
        )
        return self._limited(query, limit)

    def active(self, limit: Optional[int] = None) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(Reservation.status == ReservationStatus.ACTIVE)
            .order_by(Reservation.start_time)
        )
        return self._limited(query, limit)

    def starting_between(
        self, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(Reservation.start_time >= start, Reservation.start_time < end)
            .order_by(Reservation.start_time)
        )
        return self._limited(query, limit)

    def ending_between(
        self, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> List[Reservation]:
        """ACTIVE reservations whose end falls in [start, end] (inclusive)."""
        query = (
            self.db.query(Reservation)
            .filter(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.end_time >= start,
                Reservation.end_time <= end,
            )
            .order_by(Reservation.end_time)
        )
        return self._limited(query, limit)

    def expired_unpaid(
        self,
        now: datetime,
        limit: Optional[int] = None,
        exclude_ids: Optional[Collection[UUID]] = None,
    ) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.payment_status != PaymentStatus.PAID,
                Reservation.end_time < now,
            )
        )
        return self._lapsed(query, limit, exclude_ids)

    def lapsed_without_check_in(
        self,
        now: datetime,
        limit: Optional[int] = None,
        exclude_ids: Optional[Collection[UUID]] = None,
    ) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.payment_status == PaymentStatus.PAID,
                Reservation.check_in_time.is_(None),
                Reservation.end_time < now,
            )
        )
        return self._lapsed(query, limit, exclude_ids)

    def lapsed_without_check_out(
        self,
        now: datetime,
        limit: Optional[int] = None,
        exclude_ids: Optional[Collection[UUID]] = None,
    ) -> List[Reservation]:
        query = (
            self.db.query(Reservation)
            .filter(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.check_in_time.isnot(None),
                Reservation.check_out_time.is_(None),
                Reservation.end_time < now,
            )
        )
        return self._lapsed(query, limit, exclude_ids)

    # ------------------------------------------------------------------
    # Paginated search
    # ------------------------------------------------------------------

    def search(
        self,
        user_id: Optional[UUID] = None,
        seat_id: Optional[UUID] = None,
        status: Optional[ReservationStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Reservation], int]:
        """Filtered, newest-first page of reservations plus the total match count."""
        query = self.db.query(Reservation)
        if user_id:
            query = query.filter(Reservation.user_id == user_id)
        if seat_id:
            query = query.filter(Reservation.seat_id == seat_id)
        if status:
            query = query.filter(Reservation.status == status)
        if payment_status:
            query = query.filter(Reservation.payment_status == payment_status)

        total = query.count()
        items = (
            query.order_by(Reservation.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
