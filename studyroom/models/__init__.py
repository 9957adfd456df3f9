from studyroom.models.user import User
from studyroom.models.room import StudyRoom, RoomStatus
from studyroom.models.seat import Seat, SeatType, SeatStatus
from studyroom.models.reservation import Reservation, ReservationStatus, PaymentStatus, TERMINAL_STATUSES
