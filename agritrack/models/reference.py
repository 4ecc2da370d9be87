from sqlalchemy import Column, Float, Integer, String

from ..db import Base


# Catálogos de referencia; Product los referencia por nombre, no por FK
class StorageArea(Base):
    __tablename__ = "storage_area"
    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    location = Column(String(120))


class Category(Base):
    __tablename__ = "category"
    id = Column(Integer, primary_key=True)
    name = Column(String(80), nullable=False)
    description = Column(String(300))


class Barangay(Base):
    __tablename__ = "barangay"
    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    rice = Column(Float, default=0)
    corn = Column(Float, default=0)
    high_value = Column(Float, default=0)
    total = Column(Float, default=0)
    percent_to_total = Column(Float, default=0)
