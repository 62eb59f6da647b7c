from typing import Optional

from sqlalchemy.orm import Session

from database import MAX_DB_ID
from modules.documents.models.user import User


class UserRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def get(self, user_id: int) -> Optional[User]:
        if user_id > MAX_DB_ID:
            return None
        return self.db.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def count(self) -> int:
        return self.db.query(User).count()

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
