from typing import Optional
from uuid import UUID

from studyroom.models.user import User
from studyroom.repositories.base import BaseRepository


class UserRepository(BaseRepository):

    def get(self, user_id: UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_active(self, user_id: UUID) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active == True)  # noqa: E712
            .first()
        )
