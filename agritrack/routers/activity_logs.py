import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..core.schemas import activity_log_out
from ..db import get_db
from ..middleware.auth import Principal, get_current_user
from ..models.activity_log import ActivityLog
from ..models.user import User
from ..services.activity import failure_count
from ..services.reports import ReportFilterError, parse_bound

router = APIRouter(prefix="/api/activity-logs", tags=["activity-logs"])

PERIODS = {"24h": timedelta(hours=24), "7d": timedelta(days=7), "30d": timedelta(days=30)}


@router.get("")
def list_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    action: Optional[str] = None,
    user: Optional[int] = None,
    resource: Optional[str] = None,
    status: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_user),
):
    q = db.query(ActivityLog)
    if action:
        q = q.filter(ActivityLog.action == action)
    if user is not None:
        q = q.filter(ActivityLog.user_id == user)
    if resource:
        q = q.filter(ActivityLog.resource == resource)
    if status:
        q = q.filter(ActivityLog.status == status)
    try:
        if startDate:
            q = q.filter(ActivityLog.timestamp >= parse_bound(startDate, False))
        if endDate:
            q = q.filter(ActivityLog.timestamp < parse_bound(endDate, True))
    except ReportFilterError as e:
        raise HTTPException(400, str(e))
    if search:
        # % y _ del usuario son literales
        term = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        like = f"%{term}%"
        q = q.filter(
            or_(
                func.lower(ActivityLog.details).like(like, escape="\\"),
                func.lower(ActivityLog.action).like(like, escape="\\"),
            )
        )

    total = q.count()
    logs = (
        q.options(joinedload(ActivityLog.user))
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "logs": [activity_log_out(a) for a in logs],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit),
            "totalItems": total,
            "itemsPerPage": limit,
        },
    }


@router.get("/stats")
def activity_stats(
    period: str = Query(default="7d"),
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_user),
):
    if period not in PERIODS:
        period = "7d"
    since = datetime.utcnow() - PERIODS[period]

    count = func.count(ActivityLog.id)
    action_rows = (
        db.query(ActivityLog.action, count)
        .filter(ActivityLog.timestamp >= since)
        .group_by(ActivityLog.action)
        .order_by(count.desc(), ActivityLog.action)
        .all()
    )
    user_rows = (
        db.query(ActivityLog.user_id, User.name, count)
        .outerjoin(User, User.id == ActivityLog.user_id)
        .filter(ActivityLog.timestamp >= since)
        .group_by(ActivityLog.user_id, User.name)
        .order_by(count.desc())
        .limit(10)
        .all()
    )
    total = db.query(ActivityLog).filter(ActivityLog.timestamp >= since).count()
    return {
        "period": period,
        "totalActivities": total,
        "actionStats": [{"action": a, "count": c} for a, c in action_rows],
        "userStats": [{"userId": uid, "userName": name, "count": c} for uid, name, c in user_rows],
        "loggingFailures": failure_count(),
    }


@router.get("/recent")
def recent_logs(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_user),
):
    logs = (
        db.query(ActivityLog)
        .options(joinedload(ActivityLog.user))
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    return [activity_log_out(a, ("name",)) for a in logs]
