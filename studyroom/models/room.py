import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DECIMAL, DateTime, Time, Text, Uuid, Enum as SAEnum
from sqlalchemy.orm import relationship
from studyroom.db.session import Base

class RoomStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    CLOSED = "CLOSED"

class StudyRoom(Base):
    __tablename__ = "study_rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False)
    hourly_rate = Column(DECIMAL(10, 2), nullable=False)
    # Naive local time-of-day; close_time < open_time means the room is open past midnight
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    status = Column(SAEnum(RoomStatus, native_enum=False), default=RoomStatus.AVAILABLE, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    # Relationships
    seats = relationship("Seat", back_populates="room", cascade="all, delete-orphan")
