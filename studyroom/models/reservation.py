import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, DECIMAL, ForeignKey, Text, Uuid, Index, Enum as SAEnum
from sqlalchemy.orm import relationship
from studyroom.db.session import Base

class ReservationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    NO_SHOW = "NO_SHOW"

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    PARTIAL_REFUND = "PARTIAL_REFUND"

TERMINAL_STATUSES = frozenset({
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
    ReservationStatus.EXPIRED,
    ReservationStatus.NO_SHOW,
})

class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_seat_window", "seat_id", "status", "start_time", "end_time"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reservation_code = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    seat_id = Column(Uuid, ForeignKey("seats.id"), nullable=False, index=True)
    # Window is half-open [start_time, end_time), naive local timestamps
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(SAEnum(ReservationStatus, native_enum=False), default=ReservationStatus.ACTIVE, nullable=False, index=True)
    payment_status = Column(SAEnum(PaymentStatus, native_enum=False), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_method = Column(String(30), nullable=True)
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    refund_amount = Column(DECIMAL(10, 2), nullable=True)
    note = Column(Text, nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="reservations")
    seat = relationship("Seat", back_populates="reservations")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
