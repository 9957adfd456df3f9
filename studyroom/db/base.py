from studyroom.db.session import Base
from studyroom.models.user import User
from studyroom.models.room import StudyRoom
from studyroom.models.seat import Seat
from studyroom.models.reservation import Reservation
