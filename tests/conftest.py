import os
import tempfile

# BD y carpeta de uploads aisladas; deben fijarse antes de importar agritrack
_TMP = tempfile.mkdtemp(prefix="agritrack-test-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db").replace("\\", "/")
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["APP_ENV"] = "test"
os.environ["IMAGE_UPLOAD_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from agritrack.db import Base, engine  # noqa: E402
from agritrack.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def register(client, name, email, role="user", password="secret123"):
    r = client.post(
        "/api/users/register",
        json={"fullName": name, "email": email, "password": password, "role": role},
    )
    assert r.status_code == 201, r.text
    return r.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client):
    return register(client, "Admin", "admin@gmail.com", role="admin")


@pytest.fixture
def user_token(client):
    return register(client, "Staff", "staff@gmail.com")


@pytest.fixture
def make_product(client, admin_token):
    def _make(name="Corn Seeds", category="Seeds", quantity=100, storage_area="Warehouse A"):
        r = client.post(
            "/api/products",
            data={"name": name, "category": category, "quantity": str(quantity), "storageArea": storage_area},
            headers=bearer(admin_token),
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make
