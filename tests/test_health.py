def test_health_reports_database_and_timers(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["ok"] is True
    assert body["sweeper_running"] is False
    assert body["live_reservations"] == 0


def test_root(client):
    body = client.get("/").json()
    assert body["name"] == "SwapStation API"
    assert body["environment"] == "test"
    assert body["timestamp"].endswith("Z")
