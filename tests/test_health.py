def test_root_and_info(client):
    assert client.get("/").json()["status"] == "running"
    info = client.get("/info").json()
    assert info["service"] == "textile-inventory-service"
    assert info["endpoints"]["sync_tasks"] == "/api/inventory/sync-tasks"


def test_health_endpoints(client):
    for endpoint in ["/health", "/health/live", "/health/ready"]:
        resp = client.get(endpoint)
        assert resp.status_code in [200, 503]
        assert "status" in resp.json()


def test_readiness_checks_database(client):
    checks = client.get("/health/ready").json()["checks"]
    assert checks["database:connectivity"]["status"] == "pass"


def test_startup_sees_ledger_tables(client):
    resp = client.get("/health/startup")
    assert resp.status_code == 200
    assert resp.json()["status"] == "started"


def test_metrics_endpoint(client):
    data = client.get("/metrics").json()
    assert "service" in data
    assert "uptime_seconds" in data


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]
