from agritrack import seed_demo


def test_seed_is_idempotent_and_feeds_reference_data(client):
    seed_demo.main()
    seed_demo.main()

    areas = client.get("/api/storage-areas").json()
    assert [a["name"] for a in areas] == ["Greenhouse 1", "Outdoor Storage", "Storage Room B", "Warehouse A"]
    cats = client.get("/api/categories").json()
    assert {c["name"] for c in cats} == {"Seeds", "Seedlings", "Fertilizers", "Tools"}
    assert client.get("/api/barangays").json() == []

    products = client.get("/api/products").json()
    assert len(products) == len(seed_demo.PRODUCTS)
    assert len(client.get("/api/transactions").json()) == len(seed_demo.TRANSACTIONS)

    r = client.post("/api/users/login", json={"email": "john@example.com", "password": seed_demo.DEMO_PASSWORD})
    assert r.status_code == 200 and r.json()["user"]["role"] == "admin"
