"""
User model - login identities (distinct from team members)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from datetime import datetime
from isp_tracker.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    name = Column(String, nullable=True)
    role = Column(String, nullable=True)
    email = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
