# app/models/profile.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.db.base_class import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    auth_uid = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    username = Column(String(100), nullable=True)
    is_pro = Column(Boolean, nullable=False, default=False)
    is_mentor = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
