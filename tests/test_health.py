def test_health_returns_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    js = r.json()
    assert js["status"] == "OK" and "timestamp" in js


def test_api_root(client):
    r = client.get("/api")
    assert r.status_code == 200 and r.text == "API Root"


def test_unknown_route_is_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Route not found"}


def test_ui_served(client):
    r = client.get("/")
    assert r.status_code == 200 and "AgriTrack" in r.text
