from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from ..db import Base

ROLES = ("user", "admin")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), unique=True, nullable=False)
    email = Column(String(190), unique=True, index=True, nullable=False)
    password_hash = Column(String(120), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # user | admin
    created_at = Column(DateTime, default=datetime.utcnow)
