from datetime import datetime

from agritrack.db import SessionLocal
from agritrack.models.product import Product
from agritrack.models.transaction import Transaction
from agritrack.routers.transactions import _stock_update
from conftest import bearer


def _tx(client, token, body):
    r = client.post("/api/transactions", json=body, headers=bearer(token))
    return r.status_code, r.json()


def _qty(client, pid):
    return client.get(f"/api/products/{pid}").json()["quantity"]


def test_dispatch_scenario(client, user_token, make_product):
    p = make_product()
    assert p["quantity"] == 100

    st, js = _tx(client, user_token, {"productId": p["id"], "type": "dispatch", "quantity": 30})
    assert st == 201
    assert js["type"] == "dispatch" and js["productId"]["name"] == "Corn Seeds"
    assert js["userId"]["name"] == "Staff"
    assert _qty(client, p["id"]) == 70

    st, js = _tx(client, user_token, {"productId": p["id"], "type": "dispatch", "quantity": 1000})
    assert st == 400 and js["error"] == "Insufficient stock for dispatch"
    assert _qty(client, p["id"]) == 70
    assert len(client.get("/api/transactions").json()) == 1


def test_add_and_update_semantics(client, user_token, make_product):
    p = make_product(quantity=10)
    assert _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": 15})[0] == 201
    assert _qty(client, p["id"]) == 25
    assert _tx(client, user_token, {"productId": p["id"], "type": "update", "quantity": 7})[0] == 201
    assert _qty(client, p["id"]) == 7
    assert _tx(client, user_token, {"productId": p["id"], "type": "update", "quantity": 0})[0] == 201
    assert _qty(client, p["id"]) == 0


def test_dispatch_entire_stock(client, user_token, make_product):
    p = make_product(quantity=12)
    assert _tx(client, user_token, {"productId": p["id"], "type": "dispatch", "quantity": 12})[0] == 201
    assert _qty(client, p["id"]) == 0


def test_validation(client, user_token, make_product):
    p = make_product()
    st, js = _tx(client, user_token, {"productId": p["id"], "type": "dispatch"})
    assert st == 400 and js["error"] == "Product ID, type, and quantity are required"
    st, js = _tx(client, user_token, {"productId": p["id"], "type": "delete", "quantity": 1})
    assert st == 400 and js["error"] == "Invalid transaction type"
    st, js = _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": 0})
    assert st == 400
    st, js = _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": "many"})
    assert st == 400
    st, js = _tx(client, user_token, {"productId": 999, "type": "add", "quantity": 1})
    assert st == 404
    assert _qty(client, p["id"]) == 100


def test_list_newest_first(client, user_token, make_product):
    p = make_product()
    _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": 1, "remarks": "first"})
    _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": 2, "remarks": "second"})
    rows = client.get("/api/transactions").json()
    assert [t["remarks"] for t in rows] == ["second", "first"]


def test_stale_stock_read_cannot_oversell(client, user_token, make_product):
    p = make_product(quantity=10)

    # una petición lee existencia 10 ...
    s = SessionLocal()
    try:
        stale = s.get(Product, p["id"]).quantity
        s.rollback()
        assert stale == 10

        # ... otra despacha todo mientras tanto
        assert _tx(client, user_token, {"productId": p["id"], "type": "dispatch", "quantity": 10})[0] == 201

        # el UPDATE condicional no descuenta con la lectura vieja
        res = s.execute(_stock_update(p["id"], "dispatch", 5, datetime.utcnow()))
        assert res.rowcount == 0
        s.rollback()
        assert s.query(Transaction).count() == 1
    finally:
        s.close()
    assert _qty(client, p["id"]) == 0


def test_quantity_beyond_integer_range(client, user_token, make_product):
    p = make_product()
    st, js = _tx(client, user_token, {"productId": p["id"], "type": "add", "quantity": 10**20})
    assert st == 400
    assert _qty(client, p["id"]) == 100

    full = make_product(name="Full Silo", quantity=2**63 - 1)
    st, js = _tx(client, user_token, {"productId": full["id"], "type": "add", "quantity": 1})
    assert st == 400 and js["error"] == "Quantity is out of range"
    assert _qty(client, full["id"]) == 2**63 - 1
    assert client.get("/api/transactions").json() == []
