# backend/instructor_ranking/repositories/user_repository.py
"""User Store access for instructor display identity."""

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

