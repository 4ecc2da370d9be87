from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..db import Base

REPORT_TYPES = ("inventory", "transaction")


class Report(Base):
    __tablename__ = "report"
    id = Column(Integer, primary_key=True)
    type = Column(String(20), nullable=False)  # inventory | transaction
    generated_at = Column(DateTime, default=datetime.utcnow, index=True)
    generated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    filters = Column(JSON, default=dict)
    summary = Column(Text)

    author = relationship("User")
