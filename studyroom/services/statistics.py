"""
Read-only aggregates over reservation history.

Nothing here is cached or persisted: every figure is recomputed from the
reservations table on request, and each method returns a flat key → value map.
Revenue is attributed by reservation window start (`start_time`), never by
creation time.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from studyroom.core.config import Settings, settings as default_settings
from studyroom.core.exceptions import InvalidWindow
from studyroom.models.reservation import PaymentStatus, Reservation, ReservationStatus
from studyroom.services.pricing import CENT

COLLECTED_PAYMENT_STATUSES = (
    PaymentStatus.PAID,
    PaymentStatus.REFUNDED,
    PaymentStatus.PARTIAL_REFUND,
)


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def _status_key(status: ReservationStatus) -> str:
    return f"{status.value.lower()}_count"


class ReservationStatistics:

    def __init__(
        self,
        db: Session,
        config: Settings = default_settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.config = config
        self.clock = clock

    def _status_counts(self, *filters) -> Dict[str, int]:
        counts = {_status_key(s): 0 for s in ReservationStatus}
        rows = (
            self.db.query(Reservation.status, func.count(Reservation.id))
            .filter(*filters)
            .group_by(Reservation.status)
            .all()
        )
        for status, count in rows:
            counts[_status_key(status)] = count
        return counts

    def _sum_amount(self, column, *filters) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(column), 0))
            .filter(*filters)
            .scalar()
        )
        return _money(total)

    # ------------------------------------------------------------------
    # Per user
    # ------------------------------------------------------------------

    def user_statistics(self, user_id: UUID) -> Dict[str, Any]:
        counts = self._status_counts(Reservation.user_id == user_id)
        latest = (
            self.db.query(Reservation.reservation_code)
            .filter(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.desc())
            .first()
        )
        return {
            "user_id": str(user_id),
            "total_reservations": sum(counts.values()),
            **counts,
            "total_spent": self._sum_amount(
                Reservation.total_amount,
                Reservation.user_id == user_id,
                Reservation.payment_status == PaymentStatus.PAID,
            ),
            "latest_reservation_code": latest.reservation_code if latest else None,
        }

    # ------------------------------------------------------------------
    # Per seat
    # ------------------------------------------------------------------

    def seat_statistics(self, seat_id: UUID, window_days: Optional[int] = None) -> Dict[str, Any]:
        """
        Counts plus utilization over the trailing `window_days`.

        Utilization is the time covered by COMPLETED reservations inside the
        window, clipped to the window edges, divided by the window length.
        """
        now = self.clock()
        days = window_days or self.config.UTILIZATION_WINDOW_DAYS
        window_start = now - timedelta(days=days)
        window_seconds = (now - window_start).total_seconds()

        total = (
            self.db.query(func.count(Reservation.id))
            .filter(Reservation.seat_id == seat_id)
            .scalar()
        )
        active = (
            self.db.query(func.count(Reservation.id))
            .filter(
                Reservation.seat_id == seat_id,
                Reservation.status == ReservationStatus.ACTIVE,
            )
            .scalar()
        )
        recent = (
            self.db.query(func.count(Reservation.id))
            .filter(
                Reservation.seat_id == seat_id,
                Reservation.start_time >= window_start,
                Reservation.start_time < now,
            )
            .scalar()
        )

        completed_windows = (
            self.db.query(Reservation.start_time, Reservation.end_time)
            .filter(
                Reservation.seat_id == seat_id,
                Reservation.status == ReservationStatus.COMPLETED,
                Reservation.start_time < now,
                Reservation.end_time > window_start,
            )
            .all()
        )
        used_seconds = sum(
            (min(end, now) - max(start, window_start)).total_seconds()
            for start, end in completed_windows
        )
        usage_hours = used_seconds / 3600

        return {
            "seat_id": str(seat_id),
            "window_days": days,
            "total_reservations": total,
            "active_reservations": active,
            "recent_reservations": recent,
            "usage_hours": round(usage_hours, 2),
            "average_usage_hours": round(usage_hours / recent, 2) if recent else 0.0,
            "utilization": round(used_seconds / window_seconds, 4) if window_seconds else 0.0,
        }

    # ------------------------------------------------------------------
    # System wide
    # ------------------------------------------------------------------

    def system_statistics(self) -> Dict[str, Any]:
        counts = self._status_counts()
        start_of_day = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        today = (
            self.db.query(func.count(Reservation.id))
            .filter(
                Reservation.start_time >= start_of_day,
                Reservation.start_time < start_of_day + timedelta(days=1),
            )
            .scalar()
        )
        return {
            "total_reservations": sum(counts.values()),
            **counts,
            "today_reservations": today,
            "active_reservations": counts[_status_key(ReservationStatus.ACTIVE)],
        }

    def revenue_statistics(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """Revenue for reservations whose window starts in [start, end)."""
        if start.tzinfo is not None or end.tzinfo is not None:
            raise InvalidWindow("revenue range must be naive local time")
        if start >= end:
            raise InvalidWindow("revenue range start must be before its end")

        in_range = (Reservation.start_time >= start, Reservation.start_time < end)

        gross = self._sum_amount(
            Reservation.total_amount,
            *in_range,
            Reservation.payment_status.in_(COLLECTED_PAYMENT_STATUSES),
        )
        refunded = self._sum_amount(Reservation.refund_amount, *in_range)
        pending = self._sum_amount(
            Reservation.total_amount,
            *in_range,
            Reservation.status == ReservationStatus.ACTIVE,
            Reservation.payment_status == PaymentStatus.PENDING,
        )
        row = (
            self.db.query(
                func.count(Reservation.id).label("reservations"),
                func.coalesce(func.sum(Reservation.total_amount), 0).label("amount"),
            )
            .filter(*in_range)
            .one()
        )
        average = (
            (_money(row.amount) / row.reservations).quantize(CENT, rounding=ROUND_HALF_UP)
            if row.reservations
            else Decimal("0.00")
        )

        return {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "gross_revenue": gross,
            "refunded_amount": refunded,
            "total_revenue": gross - refunded,
            "pending_revenue": pending,
            "total_reservations": row.reservations,
            "average_order_value": average,
        }
