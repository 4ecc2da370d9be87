from dataclasses import dataclass
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..core.security import decode_token
from ..db import get_db
from ..models.user import User

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Principal:
    token = (authorization or "").replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(401, "Access denied. No token provided.")
    try:
        decoded = decode_token(token)
        principal = Principal(id=int(decoded["userId"]), email=decoded.get("email"), role=decoded.get("role"))
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as e:
        log.info("rejected token: %s", e)
        raise HTTPException(401, "Invalid token.")
    # token firmado pero de un usuario ya borrado
    if db.get(User, principal.id) is None:
        log.info("rejected token: user %s no longer exists", principal.id)
        raise HTTPException(401, "Invalid token.")
    return principal


def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise HTTPException(403, "Admin access required")
    return user
