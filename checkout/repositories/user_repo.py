# checkout/repositories/user_repo.py
from sqlmodel import Session

from checkout.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, user_id: str) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
