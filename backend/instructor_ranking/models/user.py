# backend/instructor_ranking/models/user.py
"""User Store model: display identity of instructors."""

from sqlalchemy import Column, Integer, String

from ..database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    years_of_experience = Column(Integer, nullable=True)
