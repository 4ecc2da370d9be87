from datetime import datetime, timedelta

import pytest
import requests

from agritrack.client import ApiClient, ApiError, SessionContext
from conftest import register

T0 = datetime(2024, 3, 1, 8, 0, 0)


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_session_idle_timeout():
    clock = _Clock(T0)
    ctx = SessionContext(clock=clock)
    assert not ctx.is_authenticated and not ctx.check()

    ctx.login("tok", {"id": 1, "name": "Admin", "role": "admin"})
    assert ctx.is_authenticated and ctx.is_admin
    assert not ctx.is_expired(T0 + timedelta(minutes=59))

    clock.now = T0 + timedelta(minutes=30)
    ctx.touch()
    assert not ctx.is_expired(T0 + timedelta(minutes=89))

    assert ctx.check(T0 + timedelta(minutes=91)) is False
    assert ctx.token is None and ctx.user is None


def test_session_verify_interval():
    ctx = SessionContext(clock=_Clock(T0))
    assert not ctx.needs_verify()
    ctx.login("tok", {"id": 1, "role": "user"})
    assert not ctx.is_admin
    assert not ctx.needs_verify(T0 + timedelta(minutes=4))
    assert ctx.needs_verify(T0 + timedelta(minutes=5))


@pytest.fixture
def api(client):
    return ApiClient("http://testserver/api", http=client)


def test_client_flow(api, client):
    register(client, "Admin", "admin@gmail.com", role="admin")
    user = api.login("admin@gmail.com", "secret123")
    assert user["role"] == "admin" and api.context.is_admin

    p = api.create_product("Corn Seeds", "Seeds", 20, "Warehouse A")
    assert p["quantity"] == 20
    api.create_transaction(p["id"], "dispatch", 5, remarks="field A")
    assert api.product(p["id"])["quantity"] == 15
    assert api.transactions()[0]["remarks"] == "field A"
    assert api.dashboard()["remainingStock"]["value"] == 15

    with pytest.raises(ApiError) as exc:
        api.create_transaction(p["id"], "dispatch", 100)
    assert exc.value.status == 400
    assert exc.value.message == "Insufficient stock for dispatch"

    csv = api.export_products("csv")
    assert csv.decode("utf-8").splitlines()[0] == "name,category,quantity,storageArea,imageUrl"
    assert api.verify() is True


def test_rejected_token_logs_out(api):
    api.context.login("not-a-token", {"id": 1, "name": "Ghost", "role": "admin"})
    with pytest.raises(ApiError) as exc:
        api.dashboard()
    assert exc.value.status == 401 and exc.value.message == "Invalid token."
    assert not api.context.is_authenticated

    api.context.login("not-a-token", {"id": 1, "name": "Ghost", "role": "admin"})
    assert api.verify() is False
    assert api.context.token is None


def test_idle_session_is_not_sent(client):
    clock = _Clock(T0)
    api = ApiClient("http://testserver/api", context=SessionContext(clock=clock), http=client)
    api.context.login("tok", {"id": 1, "role": "user"})
    clock.now = T0 + timedelta(hours=2)
    with pytest.raises(ApiError) as exc:
        api.products()
    assert exc.value.status == 401 and exc.value.message == "Session expired"
    assert not api.context.is_authenticated


class _Offline:
    def request(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")


def test_network_failure():
    api = ApiClient("http://localhost:1/api", http=_Offline())
    with pytest.raises(ApiError) as exc:
        api.products()
    assert exc.value.status == 0 and exc.value.message == "Failed to fetch"
