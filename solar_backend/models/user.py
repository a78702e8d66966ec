"""
Dashboard user accounts (contractors, engineers, management, clients)
"""
from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime
from solar_backend.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)  # "USER-1A2B3C4D"
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="contractor")
    status = Column(String, nullable=False, default="active")
    company = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_active = Column(DateTime, nullable=True)
