from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..db import Base

TRANSACTION_TYPES = ("dispatch", "add", "update", "delete")
# tipos que acepta POST /api/transactions
WRITABLE_TYPES = ("dispatch", "add", "update")


class Transaction(Base):
    __tablename__ = "stock_transaction"
    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="SET NULL"), index=True)
    type = Column(String(20), nullable=False)  # dispatch | add | update | delete
    quantity = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    remarks = Column(String(500))

    product = relationship("Product")
    user = relationship("User")
