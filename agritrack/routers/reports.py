import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from ..core.schemas import report_row_out
from ..db import get_db
from ..middleware.auth import Principal, get_current_user
from ..models.product import Product
from ..models.report import Report
from ..models.transaction import WRITABLE_TYPES
from ..services import reports as agg
from ..services.activity import ActivityRecorder

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _save(db: Session, kind: str, filters: dict, summary: str, user: Principal) -> Report:
    row = Report(type=kind, generated_by=user.id, filters=filters, summary=summary)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _build(db: Session, kind: str, filters: dict):
    try:
        if kind == "inventory":
            return agg.inventory_report(db, filters)
        return agg.transaction_report(db, filters)
    except agg.ReportFilterError as e:
        raise HTTPException(400, str(e))


@router.get("/inventory")
def inventory_report(
    startDate: Optional[str] = Query(default=None),
    endDate: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    storageArea: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    filters = agg.clean_filters(locals(), agg.INVENTORY_FILTERS)
    report, summary = _build(db, "inventory", filters)
    row = _save(db, "inventory", filters, summary, user)
    report["reportId"] = row.id

    s = report["summary"]
    activity.report(
        user,
        "generate_inventory_report",
        f"Generated inventory report with {s['totalProducts']} products, {s['totalQuantity']} total quantity",
    )
    return report


@router.get("/transactions")
def transaction_report(
    startDate: Optional[str] = Query(default=None),
    endDate: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None),
    userId: Optional[str] = Query(default=None),
    productId: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    filters = agg.clean_filters(locals(), agg.TRANSACTION_FILTERS)
    report, summary = _build(db, "transaction", filters)
    row = _save(db, "transaction", filters, summary, user)
    report["reportId"] = row.id

    activity.report(
        user,
        "generate_transaction_report",
        f"Generated transaction report with {report['summary']['totalTransactions']} transactions",
    )
    return report


@router.get("/filter-options")
def filter_options(db: Session = Depends(get_db), _: Principal = Depends(get_current_user)):
    return {
        "categories": agg.distinct_values(db, Product.category),
        "storageAreas": agg.distinct_values(db, Product.storage_area),
        "users": agg.user_options(db),
        "products": agg.product_options(db),
        "transactionTypes": list(WRITABLE_TYPES),
    }


@router.get("/recent")
def recent_reports(db: Session = Depends(get_db), _: Principal = Depends(get_current_user)):
    rows = (
        db.query(Report)
        .options(joinedload(Report.author))
        .order_by(Report.generated_at.desc(), Report.id.desc())
        .limit(10)
        .all()
    )
    return [report_row_out(r) for r in rows]


@router.get("/{report_id}")
def get_report(report_id: int, db: Session = Depends(get_db), _: Principal = Depends(get_current_user)):
    row = db.get(Report, report_id)
    if not row:
        raise HTTPException(404, "Report not found")
    # se recalcula con los filtros guardados (datos actuales, no snapshot)
    data, _summary = _build(db, row.type, dict(row.filters or {}))
    meta = report_row_out(row)
    data.update(
        {
            "reportId": row.id,
            "type": row.type,
            "generatedAt": meta["generatedAt"],
            "generatedBy": meta["generatedBy"],
            "filters": meta["filters"],
            "storedSummary": row.summary,
        }
    )
    return data
