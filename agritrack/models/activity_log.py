from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..db import Base

STATUSES = ("success", "failed", "pending")


class ActivityLog(Base):
    __tablename__ = "activity_log"
    id = Column(Integer, primary_key=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    action = Column(String(80), nullable=False, index=True)
    details = Column(Text)
    status = Column(String(20), default="success")  # success | failed | pending
    resource = Column(String(40))
    resource_id = Column(String(40))
    ip_address = Column(String(64))
    user_agent = Column(String(300))

    user = relationship("User")
