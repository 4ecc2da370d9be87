from datetime import datetime, timedelta, timezone

import jwt

from agritrack.core.config import settings
from conftest import bearer, register


def _post(client, path, body, token=None):
    r = client.post(path, json=body, headers=bearer(token) if token else {})
    return r.status_code, r.json()


def _get(client, path, token=None):
    r = client.get(path, headers=bearer(token) if token else {})
    return r.status_code, r.json()


def test_register_returns_token_and_user(client):
    st, js = _post(client, "/api/users/register",
                   {"fullName": "Ana Cruz", "email": "a@gmail.com", "password": "pw123456"})
    assert st == 201
    assert js["token"]
    assert js["user"] == {"id": js["user"]["id"], "name": "Ana Cruz", "email": "a@gmail.com", "role": "user"}


def test_register_duplicate_email_rejected(client):
    body = {"fullName": "Ana Cruz", "email": "a@gmail.com", "password": "pw123456"}
    assert _post(client, "/api/users/register", body)[0] == 201
    st, js = _post(client, "/api/users/register", dict(body, fullName="Other"))
    assert st == 400 and js["error"] == "User already exists with this email"


def test_register_duplicate_name_rejected(client):
    _post(client, "/api/users/register", {"fullName": "Ana", "email": "a@gmail.com", "password": "x"})
    st, js = _post(client, "/api/users/register", {"fullName": "Ana", "email": "b@gmail.com", "password": "x"})
    assert st == 400 and "name" in js["error"]


def test_register_validation(client):
    st, js = _post(client, "/api/users/register", {"email": "a@gmail.com", "password": "x"})
    assert st == 400 and js["error"] == "All fields are required"
    st, js = _post(client, "/api/users/register",
                   {"fullName": "Ana", "email": "a@gmail.com", "password": "x", "role": "owner"})
    assert st == 400 and "Invalid role" in js["error"]


def test_login(client):
    register(client, "Ana", "a@gmail.com", password="pw123456")
    st, js = _post(client, "/api/users/login", {"email": "a@gmail.com", "password": "pw123456"})
    assert st == 200 and js["token"] and js["user"]["email"] == "a@gmail.com"

    st, js = _post(client, "/api/users/login", {"email": "a@gmail.com", "password": "wrong"})
    assert st == 401 and js["error"] == "Invalid email or password"
    st, js = _post(client, "/api/users/login", {"email": "nobody@gmail.com", "password": "pw123456"})
    assert st == 401


def test_token_required_on_gated_endpoints(client):
    for path in ("/api/dashboard/stats", "/api/reports/inventory", "/api/activity-logs", "/api/users/verify"):
        st, js = _get(client, path)
        assert st == 401 and js["error"] == "Access denied. No token provided.", path
    st, js = _post(client, "/api/transactions", {"productId": 1, "type": "add", "quantity": 1})
    assert st == 401


def test_invalid_and_expired_tokens_rejected(client, user_token):
    st, js = _get(client, "/api/dashboard/stats", "not-a-jwt")
    assert st == 401 and js["error"] == "Invalid token."

    expired = jwt.encode(
        {"userId": 1, "email": "x@gmail.com", "role": "user",
         "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret, algorithm=settings.jwt_algorithm,
    )
    assert _get(client, "/api/dashboard/stats", expired)[0] == 401

    forged = jwt.encode({"userId": 1, "email": "x", "role": "admin",
                         "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
                        "another-secret", algorithm="HS256")
    assert _get(client, "/api/dashboard/stats", forged)[0] == 401

    assert _get(client, "/api/dashboard/stats", user_token)[0] == 200


def test_verify(client, user_token):
    st, js = _get(client, "/api/users/verify", user_token)
    assert st == 200 and js["valid"] is True and js["user"]["email"] == "staff@gmail.com"


def test_user_management_requires_admin(client, admin_token, user_token):
    st, js = _get(client, "/api/users", user_token)
    assert st == 403
    st, js = _get(client, "/api/users", admin_token)
    assert st == 200 and {u["email"] for u in js} == {"admin@gmail.com", "staff@gmail.com"}
    assert all("password_hash" not in u and "passwordHash" not in u for u in js)


def test_update_and_delete_user(client, admin_token, user_token):
    users = _get(client, "/api/users", admin_token)[1]
    staff = next(u for u in users if u["email"] == "staff@gmail.com")
    admin = next(u for u in users if u["email"] == "admin@gmail.com")

    r = client.put(f"/api/users/{staff['id']}", json={"name": "Staff Two", "email": "admin@gmail.com", "role": "user"},
                   headers=bearer(admin_token))
    assert r.status_code == 400 and r.json()["error"] == "Email is already taken by another user"

    r = client.put(f"/api/users/{staff['id']}", json={"name": "Staff Two", "email": "s2@gmail.com", "role": "ADMIN"},
                   headers=bearer(admin_token))
    assert r.status_code == 200 and r.json()["user"]["role"] == "admin"

    r = client.delete(f"/api/users/{staff['id']}", headers=bearer(admin_token))
    assert r.status_code == 200
    r = client.delete(f"/api/users/{admin['id']}", headers=bearer(admin_token))
    assert r.status_code == 400 and r.json()["error"] == "Cannot delete the last admin user"
    r = client.delete("/api/users/9999", headers=bearer(admin_token))
    assert r.status_code == 404


def test_deleted_user_token_is_rejected(client, admin_token, make_product):
    p = make_product()
    temp_token = register(client, "Temp", "temp@gmail.com")
    users = _get(client, "/api/users", admin_token)[1]
    temp = next(u for u in users if u["name"] == "Temp")
    assert client.delete(f"/api/users/{temp['id']}", headers=bearer(admin_token)).status_code == 200

    st, js = _post(client, "/api/transactions", {"productId": p["id"], "type": "add", "quantity": 1}, temp_token)
    assert st == 401 and js["error"] == "Invalid token."
    for path in ("/api/reports/inventory", "/api/reports/transactions", "/api/users/verify"):
        st, js = _get(client, path, temp_token)
        assert st == 401 and js["error"] == "Invalid token.", path

    assert client.get(f"/api/products/{p['id']}").json()["quantity"] == 100
    assert client.get("/api/transactions").json() == []
