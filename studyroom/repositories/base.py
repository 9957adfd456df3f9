from sqlalchemy.orm import Session


class BaseRepository:
    """Shared session handling. All repositories built for one engine share one session."""

    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
