from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from medreminder.db.base import Base


class User(Base):
    """Owner of medications; registration and sessions live elsewhere"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
