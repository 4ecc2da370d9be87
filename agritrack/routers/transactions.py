import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ..core.schemas import TransactionIn, transaction_out
from ..db import get_db
from ..middleware.auth import Principal, get_current_user
from ..models.product import MAX_QUANTITY, Product
from ..models.transaction import WRITABLE_TYPES, Transaction
from ..services.activity import ActivityRecorder

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _stock_update(product_id: int, kind: str, qty: int, now: datetime):
    """UPDATE condicional: dispatch sólo descuenta si hay existencia suficiente
    y add no pasa del tope de INTEGER."""
    stmt = update(Product).where(Product.id == product_id)
    if kind == "dispatch":
        stmt = stmt.where(Product.quantity >= qty).values(quantity=Product.quantity - qty)
    elif kind == "add":
        stmt = stmt.where(Product.quantity <= MAX_QUANTITY - qty).values(quantity=Product.quantity + qty)
    else:  # update: valor absoluto
        stmt = stmt.values(quantity=qty)
    return stmt.values(updated_at=now).execution_options(synchronize_session=False)


@router.get("")
def list_transactions(db: Session = Depends(get_db)):
    rows = (
        db.query(Transaction)
        .options(joinedload(Transaction.product), joinedload(Transaction.user))
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        .all()
    )
    return [transaction_out(t) for t in rows]


@router.post("", status_code=201)
def create_transaction(
    payload: TransactionIn,
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    if payload.product_id is None or not payload.type or payload.quantity is None:
        raise HTTPException(400, "Product ID, type, and quantity are required")
    if payload.type not in WRITABLE_TYPES:
        raise HTTPException(400, "Invalid transaction type")
    qty = payload.quantity
    if qty < 0 or (qty == 0 and payload.type != "update"):
        raise HTTPException(400, "Quantity must be greater than zero")

    product = db.get(Product, payload.product_id)
    if not product:
        raise HTTPException(404, "Product not found")

    # movimiento y existencia en una sola transacción de BD
    now = datetime.utcnow()
    res = db.execute(_stock_update(product.id, payload.type, qty, now))
    if res.rowcount == 0:
        db.rollback()
        if payload.type == "dispatch":
            raise HTTPException(400, "Insufficient stock for dispatch")
        if payload.type == "add":
            raise HTTPException(400, "Quantity is out of range")
        raise HTTPException(404, "Product not found")
    t = Transaction(
        product_id=product.id,
        type=payload.type,
        quantity=qty,
        user_id=user.id,
        timestamp=now,
        remarks=payload.remarks,
    )
    db.add(t)
    db.commit()
    db.refresh(t)

    log.info("transaction %s: %s x%s on product %s by user %s", t.id, t.type, qty, product.id, user.id)
    activity.transaction(
        user, f"{t.type}_stock", t, f"{t.type.capitalize()} {qty} of {t.product.name if t.product else product.id}"
    )
    return transaction_out(t)
