"""
Bitácora de actividad (audit trail) de mejor esfuerzo.

Las escrituras se agendan con BackgroundTasks para correr después de enviar
la respuesta; usan su propia sesión de BD. Si fallan, se registra un WARNING
y se incrementa un contador observable (ver /api/activity-logs/stats); la
petición principal nunca se rompe por la bitácora.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from fastapi import BackgroundTasks, Request

from ..db import SessionLocal
from ..models.activity_log import ActivityLog

log = logging.getLogger(__name__)

_LOCK = threading.Lock()
_FAILURES = 0


def failure_count() -> int:
    return _FAILURES


def _count_failure() -> None:
    global _FAILURES
    with _LOCK:
        _FAILURES += 1


def _user_id(user: Any) -> Optional[int]:
    if user is None:
        return None
    if isinstance(user, int):
        return user
    return getattr(user, "id", None)


def log_activity(
    user: Any,
    action: str,
    details: str = "",
    status: str = "success",
    resource: Optional[str] = None,
    resource_id: Any = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> bool:
    """Escribe un registro; devuelve False si no se pudo (nunca lanza)."""
    db = SessionLocal()
    try:
        db.add(
            ActivityLog(
                user_id=_user_id(user),
                action=action,
                details=details,
                status=status,
                resource=resource,
                resource_id=(str(resource_id) if resource_id is not None else None),
                ip_address=ip_address,
                user_agent=(user_agent or "")[:300] or None,
            )
        )
        db.commit()
        log.info("activity logged: %s - %s", action, details)
        return True
    except Exception as e:
        db.rollback()
        _count_failure()
        log.warning("failed to log activity %s: %r", action, e)
        return False
    finally:
        db.close()


class ActivityRecorder:
    """Dependencia por petición: junta ip/user-agent y agenda las escrituras."""

    def __init__(self, request: Request, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks
        self.ip_address = request.client.host if request.client else None
        self.user_agent = request.headers.get("user-agent")

    def record(self, user, action, details="", status="success", resource=None, resource_id=None):
        self.background_tasks.add_task(
            log_activity,
            user,
            action,
            details,
            status,
            resource,
            resource_id,
            self.ip_address,
            self.user_agent,
        )

    def product(self, user, action, product, details, status="success"):
        self.record(user, action, details, status, "product", getattr(product, "id", product))

    def transaction(self, user, action, transaction, details, status="success"):
        self.record(user, action, details, status, "transaction", getattr(transaction, "id", transaction))

    def report(self, user, action, details, status="success"):
        self.record(user, action, details, status, "report")

    def user(self, user, action, details, status="success"):
        self.record(user, action, details, status, "user", _user_id(user))
