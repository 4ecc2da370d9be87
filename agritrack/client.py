"""
Cliente HTTP de la API de AgriTrack y contexto de sesión explícito.

SessionContext guarda token/usuario y aplica el cierre por inactividad
(1 hora); la validez real del token la decide el servidor vía verify().
"""
from __future__ import annotations

from datetime import datetime, timedelta
import os
from typing import Any, Callable, Dict, Optional

import requests

DEFAULT_BASE = os.getenv("AGRITRACK_API_URL", "http://localhost:8000/api")


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class SessionContext:
    IDLE_TIMEOUT = timedelta(hours=1)
    VERIFY_INTERVAL = timedelta(minutes=5)

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.last_activity: Optional[datetime] = None
        self.last_verified: Optional[datetime] = None

    def _now(self, now):
        return now or self._clock()

    @property
    def is_authenticated(self) -> bool:
        # sólo presencia; no se valida la firma del lado cliente
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.get("role") == "admin")

    def login(self, token: str, user: Dict[str, Any], now: Optional[datetime] = None) -> None:
        self.token, self.user = token, user
        self.last_activity = self.last_verified = self._now(now)

    def logout(self) -> None:
        self.token = self.user = None
        self.last_activity = self.last_verified = None

    def touch(self, now: Optional[datetime] = None) -> None:
        if self.is_authenticated:
            self.last_activity = self._now(now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.is_authenticated or self.last_activity is None:
            return False
        return self._now(now) - self.last_activity > self.IDLE_TIMEOUT

    def check(self, now: Optional[datetime] = None) -> bool:
        """True si la sesión sigue activa; si expiró por inactividad, cierra sesión."""
        if self.is_expired(now):
            self.logout()
            return False
        return self.is_authenticated

    def needs_verify(self, now: Optional[datetime] = None) -> bool:
        if not self.is_authenticated:
            return False
        return self.last_verified is None or self._now(now) - self.last_verified >= self.VERIFY_INTERVAL


class ApiClient:
    def __init__(self, base_url: str = DEFAULT_BASE, context: Optional[SessionContext] = None,
                 http=None, timeout: float = 15):
        self.base_url = base_url.rstrip("/")
        self.context = context or SessionContext()
        self.http = http or requests.Session()
        self.timeout = timeout

    def request(self, method: str, path: str, *, raw: bool = False, **kwargs):
        ctx = self.context
        if ctx.is_authenticated and not ctx.check():
            raise ApiError(401, "Session expired")
        headers = dict(kwargs.pop("headers", None) or {})
        if ctx.token:
            headers["Authorization"] = f"Bearer {ctx.token}"
        try:
            r = self.http.request(method, f"{self.base_url}{path}", headers=headers,
                                  timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ApiError(0, "Failed to fetch") from e
        ctx.touch()
        if not 200 <= r.status_code < 300:
            try:
                message = r.json().get("error")
            except ValueError:
                message = None
            if r.status_code == 401 and ctx.is_authenticated:
                ctx.logout()
            raise ApiError(r.status_code, message or f"HTTP error! status: {r.status_code}")
        return r.content if raw else r.json()

    # ---------- sesión ----------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        js = self.request("POST", "/users/login", json={"email": email, "password": password})
        self.context.login(js["token"], js["user"])
        return js["user"]

    def register(self, full_name: str, email: str, password: str, role: Optional[str] = None):
        body = {"fullName": full_name, "email": email, "password": password}
        if role:
            body["role"] = role
        js = self.request("POST", "/users/register", json=body)
        self.context.login(js["token"], js["user"])
        return js["user"]

    def logout(self) -> None:
        self.context.logout()

    def verify(self) -> bool:
        try:
            js = self.request("GET", "/users/verify")
        except ApiError as e:
            if e.status == 401:
                return False
            raise
        self.context.user = js["user"]
        self.context.last_verified = self.context._now(None)
        return True

    # ---------- recursos ----------
    def products(self):
        return self.request("GET", "/products")

    def product(self, product_id: int):
        return self.request("GET", f"/products/{product_id}")

    def create_product(self, name, category, quantity, storage_area, image_path: Optional[str] = None):
        data = {"name": name, "category": category, "quantity": str(quantity), "storageArea": storage_area}
        if not image_path:
            return self.request("POST", "/products", data=data)
        with open(image_path, "rb") as fh:
            return self.request("POST", "/products", data=data,
                                files={"image": (os.path.basename(image_path), fh)})

    def delete_product(self, product_id: int):
        return self.request("DELETE", f"/products/{product_id}")

    def import_products(self, path: str):
        with open(path, "rb") as fh:
            return self.request("POST", "/products/import", files={"file": (os.path.basename(path), fh)})

    def export_products(self, fmt: str = "csv") -> bytes:
        return self.request("GET", "/products/export", params={"format": fmt}, raw=True)

    def transactions(self):
        return self.request("GET", "/transactions")

    def create_transaction(self, product_id: int, kind: str, quantity: int, remarks: Optional[str] = None):
        body = {"productId": product_id, "type": kind, "quantity": quantity, "remarks": remarks}
        return self.request("POST", "/transactions", json=body)

    def dashboard(self):
        return self.request("GET", "/dashboard/stats")

    def inventory_report(self, **filters):
        return self.request("GET", "/reports/inventory", params=filters)

    def transaction_report(self, **filters):
        return self.request("GET", "/reports/transactions", params=filters)

    def activity_logs(self, **params):
        return self.request("GET", "/activity-logs", params=params)
