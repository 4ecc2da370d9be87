from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from ..db import Base

# tope de INTEGER en SQLite (entero con signo de 64 bits)
MAX_QUANTITY = 2**63 - 1


class Product(Base):
    __tablename__ = "product"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), unique=True, nullable=False)
    category = Column(String(80), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    storage_area = Column(String(120), nullable=False, index=True)
    image_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)
