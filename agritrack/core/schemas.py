from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.product import MAX_QUANTITY


# ====== Request bodies ======
# Los campos "requeridos" son Optional: el router responde 400 con el
# mensaje propio; aquí sólo se valida el tipo.
class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterIn(_Body):
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginIn(_Body):
    email: Optional[str] = None
    password: Optional[str] = None


class UserUpdateIn(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class TransactionIn(_Body):
    product_id: Optional[int] = Field(default=None, alias="productId")
    type: Optional[str] = None
    quantity: Optional[int] = Field(default=None, le=MAX_QUANTITY)
    remarks: Optional[str] = None


# ====== Serializers ======
def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def user_out(u) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "createdAt": _iso(u.created_at),
    }


def user_ref(u, *fields) -> Optional[dict]:
    """Equivalente a populate('userId', 'name email'): None si no resuelve."""
    if u is None:
        return None
    out = {"id": u.id}
    for f in fields or ("name",):
        out[f] = getattr(u, f)
    return out


def product_out(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "category": p.category,
        "quantity": p.quantity,
        "storageArea": p.storage_area,
        "imageUrl": p.image_url,
        "createdAt": _iso(p.created_at),
        "updatedAt": _iso(p.updated_at),
    }


def product_ref(p, *fields) -> Optional[dict]:
    if p is None:
        return None
    out = {"id": p.id}
    for f in fields or ("name",):
        out["storageArea" if f == "storage_area" else f] = getattr(p, f)
    return out


def transaction_out(t, product_fields=("name", "category"), user_fields=("name",)) -> dict:
    return {
        "id": t.id,
        "productId": product_ref(t.product, *product_fields),
        "type": t.type,
        "quantity": t.quantity,
        "userId": user_ref(t.user, *user_fields),
        "timestamp": _iso(t.timestamp),
        "remarks": t.remarks,
    }


def activity_log_out(a, user_fields=("name", "email")) -> dict:
    return {
        "id": a.id,
        "timestamp": _iso(a.timestamp),
        "user": user_ref(a.user, *user_fields),
        "action": a.action,
        "details": a.details,
        "status": a.status,
        "resource": a.resource,
        "resourceId": a.resource_id,
        "ipAddress": a.ip_address,
        "userAgent": a.user_agent,
    }


def report_row_out(r) -> dict:
    return {
        "id": r.id,
        "type": r.type,
        "generatedAt": _iso(r.generated_at),
        "generatedBy": user_ref(r.author, "name", "email"),
        "filters": r.filters or {},
        "summary": r.summary,
    }
