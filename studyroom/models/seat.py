import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from studyroom.db.session import Base

class SeatType(str, enum.Enum):
    NORMAL = "NORMAL"
    VIP = "VIP"
    QUIET = "QUIET"
    GROUP = "GROUP"

class SeatStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    OUT_OF_ORDER = "OUT_OF_ORDER"

class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (
        UniqueConstraint("study_room_id", "seat_number", name="uq_seat_number_per_room"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    study_room_id = Column(Uuid, ForeignKey("study_rooms.id"), nullable=False, index=True)
    seat_number = Column(String(20), nullable=False)
    type = Column(SAEnum(SeatType, native_enum=False), default=SeatType.NORMAL, nullable=False)
    status = Column(SAEnum(SeatStatus, native_enum=False), default=SeatStatus.AVAILABLE, nullable=False, index=True)
    # Informational only
    has_window = Column(Boolean, default=False)
    has_power_outlet = Column(Boolean, default=True)
    has_lamp = Column(Boolean, default=True)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    room = relationship("StudyRoom", back_populates="seats")
    reservations = relationship("Reservation", back_populates="seat")
