import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.schemas import LoginIn, RegisterIn, UserUpdateIn, user_out
from ..core.security import create_token, hash_password, verify_password
from ..db import get_db
from ..middleware.auth import Principal, get_current_user, require_admin
from ..models.user import ROLES, User
from ..services.activity import ActivityRecorder

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _public(u: User) -> dict:
    return {"id": u.id, "name": u.name, "email": u.email, "role": u.role}


def _role(value) -> str:
    role = (value or "user").strip().lower()
    if role not in ROLES:
        raise HTTPException(400, 'Invalid role. Must be either "user" or "admin"')
    return role


@router.get("")
def list_users(db: Session = Depends(get_db), _: Principal = Depends(require_admin)):
    return [user_out(u) for u in db.query(User).order_by(User.created_at).all()]


@router.post("/register", status_code=201)
def register(payload: RegisterIn, activity: ActivityRecorder = Depends(), db: Session = Depends(get_db)):
    if not payload.full_name or not payload.email or not payload.password:
        raise HTTPException(400, "All fields are required")
    role = _role(payload.role)
    email = payload.email.strip()
    name = payload.full_name.strip()

    if db.query(User).filter(User.email == email).first():
        log.info("register rejected, email in use: %s", email)
        raise HTTPException(400, "User already exists with this email")
    if db.query(User).filter(User.name == name).first():
        raise HTTPException(400, "User already exists with this name")

    user = User(name=name, email=email, password_hash=hash_password(payload.password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)

    activity.user(user, "register", f"User {user.name} registered with role {user.role}")
    return {"message": "User registered successfully", "token": create_token(user), "user": _public(user)}


@router.post("/login")
def login(payload: LoginIn, activity: ActivityRecorder = Depends(), db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(400, "Email and password are required")
    user = db.query(User).filter(User.email == payload.email.strip()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(401, "Invalid email or password")

    activity.user(user, "login", f"User {user.name} logged in")
    return {"message": "Login successful", "token": create_token(user), "user": _public(user)}


@router.get("/verify")
def verify(principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.get(User, principal.id)
    if not user:
        raise HTTPException(401, "Invalid token.")
    return {"valid": True, "user": _public(user)}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdateIn,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
    activity: ActivityRecorder = Depends(),
):
    if not payload.name or not payload.email or not payload.role:
        raise HTTPException(400, "Name, email, and role are required")
    role = _role(payload.role)

    taken = db.query(User).filter(User.email == payload.email, User.id != user_id).first()
    if taken:
        raise HTTPException(400, "Email is already taken by another user")
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    name_taken = db.query(User).filter(User.name == payload.name, User.id != user_id).first()
    if name_taken:
        raise HTTPException(400, "Name is already taken by another user")

    user.name, user.email, user.role = payload.name, payload.email, role
    db.commit()
    db.refresh(user)

    activity.record(admin, "update_user", f"Updated user {user.name}", resource="user", resource_id=user.id)
    return {"message": "User updated successfully", "user": _public(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
    activity: ActivityRecorder = Depends(),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    if user.role == "admin" and db.query(User).filter(User.role == "admin").count() <= 1:
        raise HTTPException(400, "Cannot delete the last admin user")

    name = user.name
    db.delete(user)
    db.commit()

    activity.record(admin, "delete_user", f"Deleted user {name}", resource="user", resource_id=user_id)
    return {"message": "User deleted successfully"}
