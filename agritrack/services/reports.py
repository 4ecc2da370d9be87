"""
Agregaciones de reportes (inventario y movimientos).

Se usan al generar un reporte y al reconstruirlo por id a partir de los
filtros guardados: un reporte histórico refleja los datos actuales.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from ..core.config import settings
from ..core.schemas import product_out, transaction_out, user_ref
from ..models.product import Product
from ..models.transaction import WRITABLE_TYPES, Transaction
from ..models.user import User

INVENTORY_FILTERS = ("startDate", "endDate", "category", "storageArea")
TRANSACTION_FILTERS = ("startDate", "endDate", "type", "userId", "productId")


class ReportFilterError(ValueError):
    pass


def clean_filters(raw: Dict[str, Any], keys) -> Dict[str, str]:
    return {k: str(raw[k]) for k in keys if raw.get(k) not in (None, "")}


def parse_bound(value: str, end: bool) -> datetime:
    """
    Fecha YYYY-MM-DD o ISO-8601. Una fecha sin hora usada como límite final
    cubre el día completo (se devuelve el inicio del día siguiente).
    """
    try:
        if len(value) == 10:
            d = date.fromisoformat(value)
            dt = datetime(d.year, d.month, d.day)
            return dt + timedelta(days=1) if end else dt
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ReportFilterError(f"Invalid date: {value}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    if end:
        dt = dt + timedelta(microseconds=1)
    return dt


def _date_range(filters: Dict[str, str]) -> Optional[Tuple[datetime, datetime]]:
    # el rango sólo aplica si vienen ambas fechas
    if filters.get("startDate") and filters.get("endDate"):
        return parse_bound(filters["startDate"], False), parse_bound(filters["endDate"], True)
    return None


def _as_int(filters: Dict[str, str], key: str) -> Optional[int]:
    if not filters.get(key):
        return None
    try:
        return int(filters[key])
    except ValueError:
        raise ReportFilterError(f"Invalid {key}: {filters[key]}")


def _group(products, attr):
    stats: Dict[str, Dict[str, Any]] = {}
    for p in products:
        key = getattr(p, attr)
        g = stats.setdefault(key, {"count": 0, "totalQuantity": 0, "products": []})
        g["count"] += 1
        g["totalQuantity"] += p.quantity
        g["products"].append(product_out(p))
    return stats


def distinct_values(db: Session, column):
    return [r[0] for r in db.query(column).distinct().order_by(column).all()]


def inventory_report(db: Session, filters: Dict[str, str]) -> Tuple[Dict[str, Any], str]:
    q = db.query(Product)
    rng = _date_range(filters)
    if rng:
        q = q.filter(Product.created_at >= rng[0], Product.created_at < rng[1])
    if filters.get("category"):
        q = q.filter(Product.category == filters["category"])
    if filters.get("storageArea"):
        q = q.filter(Product.storage_area == filters["storageArea"])
    products = q.order_by(Product.category, Product.name).all()

    threshold = settings.low_stock_threshold
    total_quantity = sum(p.quantity for p in products)
    low = [p for p in products if p.quantity < threshold]
    out = [p for p in products if p.quantity == 0]
    category_stats = _group(products, "category")
    storage_stats = _group(products, "storage_area")

    summary = {
        "totalProducts": len(products),
        "totalQuantity": total_quantity,
        "lowStockCount": len(low),
        "outOfStockCount": len(out),
        "categories": len(category_stats),
        "storageAreas": len(storage_stats),
    }
    report = {
        "generatedAt": datetime.utcnow().isoformat(),
        "filters": filters,
        "summary": summary,
        "lowStockProducts": [product_out(p) for p in low],
        "outOfStockProducts": [product_out(p) for p in out],
        "categoryStats": category_stats,
        "storageStats": storage_stats,
        "allProducts": [product_out(p) for p in products],
        "filterOptions": {
            "categories": distinct_values(db, Product.category),
            "storageAreas": distinct_values(db, Product.storage_area),
        },
    }
    text = (
        f"Total Products: {summary['totalProducts']}, Total Quantity: {summary['totalQuantity']}, "
        f"Low Stock: {summary['lowStockCount']}, Out of Stock: {summary['outOfStockCount']}"
    )
    return report, text


def _counter(extra=None) -> Dict[str, Any]:
    base = {"total": 0, "dispatch": 0, "add": 0, "update": 0, "transactions": []}
    if extra:
        base.update(extra)
    return base


def transaction_report(db: Session, filters: Dict[str, str]) -> Tuple[Dict[str, Any], str]:
    q = db.query(Transaction).options(joinedload(Transaction.product), joinedload(Transaction.user))
    rng = _date_range(filters)
    if rng:
        q = q.filter(Transaction.timestamp >= rng[0], Transaction.timestamp < rng[1])
    if filters.get("type"):
        q = q.filter(Transaction.type == filters["type"])
    user_id = _as_int(filters, "userId")
    if user_id is not None:
        q = q.filter(Transaction.user_id == user_id)
    product_id = _as_int(filters, "productId")
    if product_id is not None:
        q = q.filter(Transaction.product_id == product_id)
    rows = q.order_by(Transaction.timestamp.desc(), Transaction.id.desc()).all()

    # descarta movimientos cuyo usuario o producto ya no existe
    valid = [t for t in rows if t.user is not None and t.product is not None]

    def ser(t):
        return transaction_out(t, ("name", "category", "storage_area"), ("name", "email"))

    by_type = {k: [t for t in valid if t.type == k] for k in WRITABLE_TYPES}
    qty = {k: sum(t.quantity for t in v) for k, v in by_type.items()}

    daily: Dict[str, Dict[str, Any]] = {}
    users: Dict[int, Dict[str, Any]] = {}
    products: Dict[int, Dict[str, Any]] = {}
    for t in valid:
        s = ser(t)
        day = t.timestamp.date().isoformat()
        groups = (
            daily.setdefault(day, _counter({"date": day})),
            users.setdefault(t.user_id, _counter({"user": s["userId"]})),
            products.setdefault(
                t.product_id,
                _counter(
                    {
                        "product": s["productId"],
                        "totalDispatchQuantity": 0,
                        "totalAddQuantity": 0,
                        "totalUpdateQuantity": 0,
                    }
                ),
            ),
        )
        for g in groups:
            g["total"] += 1
            g[t.type] = g.get(t.type, 0) + 1
            g["transactions"].append(s)
        qkey = f"total{t.type.capitalize()}Quantity"
        products[t.product_id][qkey] = products[t.product_id].get(qkey, 0) + t.quantity

    summary = {
        "totalTransactions": len(valid),
        "dispatchCount": len(by_type["dispatch"]),
        "addCount": len(by_type["add"]),
        "updateCount": len(by_type["update"]),
        "totalDispatchQuantity": qty["dispatch"],
        "totalAddQuantity": qty["add"],
        "totalUpdateQuantity": qty["update"],
        "uniqueUsers": len(users),
        "uniqueProducts": len(products),
    }
    report = {
        "generatedAt": datetime.utcnow().isoformat(),
        "filters": filters,
        "summary": summary,
        "dailyStats": sorted(daily.values(), key=lambda d: d["date"], reverse=True),
        "userStats": list(users.values()),
        "productStats": list(products.values()),
        "allTransactions": [ser(t) for t in valid],
        "filterOptions": {
            "types": list(WRITABLE_TYPES),
            "users": user_options(db),
            "products": product_options(db),
        },
    }
    text = (
        f"Total Transactions: {summary['totalTransactions']}, Dispatch: {summary['dispatchCount']}, "
        f"Add: {summary['addCount']}, Update: {summary['updateCount']}"
    )
    return report, text


def user_options(db: Session):
    return [user_ref(u, "name", "email") for u in db.query(User).order_by(User.name).all()]


def product_options(db: Session):
    rows = db.query(Product).order_by(Product.name).all()
    return [{"id": p.id, "name": p.name, "category": p.category} for p in rows]
