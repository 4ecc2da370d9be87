import math
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..core.schemas import product_out, transaction_out
from ..db import get_db
from ..middleware.auth import Principal, get_current_user
from ..models.product import Product
from ..models.transaction import Transaction

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def _round(x: float) -> int:
    # redondeo "half up" como Math.round
    return int(math.floor(x + 0.5))


def percentage_change(current, previous, recent_activity=0) -> str:
    if recent_activity > 0:
        return f"+{recent_activity * 100}%"
    if previous == 0 and current > 0:
        return "+100%"
    if current == previous:
        return "+0%"
    if previous > 0:
        change = (current - previous) / previous * 100
        return f"{'+' if change >= 0 else ''}{_round(change)}%"
    return "+0%"


def net_stock_change(added, dispatched, remaining) -> str:
    net = added - dispatched
    if net == 0 or remaining == 0:
        return "+0%"
    pct = _round(net / remaining * 100)
    return f"+{pct}%" if net > 0 else f"{pct}%"


def _sum_quantity(db: Session, kind: str, before=None) -> int:
    q = db.query(func.coalesce(func.sum(Transaction.quantity), 0)).filter(Transaction.type == kind)
    if before is not None:
        q = q.filter(Transaction.timestamp < before)
    return int(q.scalar() or 0)


def _category_counts(db: Session, *criteria):
    q = db.query(Product.category, func.count(Product.id))
    if criteria:
        q = q.filter(*criteria)
    return dict(q.group_by(Product.category).all())


@router.get("/stats")
def dashboard_stats(db: Session = Depends(get_db), _: Principal = Depends(get_current_user)):
    yesterday = datetime.utcnow() - timedelta(days=1)

    current = _category_counts(db)
    before = _category_counts(db, Product.created_at < yesterday)
    recent = _category_counts(db, Product.created_at >= yesterday)
    category_counts = {
        cat: {
            "value": count,
            "change": percentage_change(count, before.get(cat, 0), 1 if recent.get(cat) else 0),
        }
        for cat, count in sorted(current.items())
    }

    dispatched = _sum_quantity(db, "dispatch")
    added = _sum_quantity(db, "add")
    remaining = int(db.query(func.coalesce(func.sum(Product.quantity), 0)).scalar() or 0)

    recent_tx = (
        db.query(Transaction)
        .options(joinedload(Transaction.product), joinedload(Transaction.user))
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        .limit(10)
        .all()
    )
    return {
        "categoryCounts": category_counts,
        "totalDispatchItems": {
            "value": dispatched,
            "change": percentage_change(dispatched, _sum_quantity(db, "dispatch", yesterday)),
        },
        "totalAddedItems": {
            "value": added,
            "change": percentage_change(added, _sum_quantity(db, "add", yesterday)),
        },
        "remainingStock": {"value": remaining, "change": net_stock_change(added, dispatched, remaining)},
        "recentTransactions": [transaction_out(t, ("name",), ("name",)) for t in recent_tx],
        "allProducts": [product_out(p) for p in db.query(Product).order_by(Product.name).all()],
    }
