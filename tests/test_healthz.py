from fastapi.testclient import TestClient


def test_health_check_success(client: TestClient):
    """Test health check endpoint returns correct format."""
    response = client.get("/v1/healthz")

    assert response.status_code == 200

    data = response.json()
    assert data["ok"] is True
    assert "data" in data

    health_data = data["data"]
    assert health_data["ok"] is True
    assert health_data["version"] == "1.0.0"
    assert health_data["environment"] == "test"
    assert health_data["database"]["connected"] is True


def test_health_check_reports_runner(client: TestClient):
    response = client.get("/v1/healthz")

    runner = response.json()["data"]["runner"]
    assert runner["running"] is False
    assert runner["active_jobs"] == 0
    assert runner["pending_jobs"] == 0
    assert runner["running_jobs"] == 0


def test_health_check_counts_pending_jobs(client: TestClient):
    client.post(
        "/v1/jobs",
        json={"jobs": [{"kind": "fetch_json", "payload": {}}], "run": False},
    )

    response = client.get("/v1/healthz")

    assert response.json()["data"]["runner"]["pending_jobs"] == 1


def test_health_check_response_structure(client: TestClient):
    """Test health check response envelope structure."""
    response = client.get("/v1/healthz")

    data = response.json()

    required_keys = ["ok", "data", "message", "request_id"]
    for key in required_keys:
        assert key in data

    assert "X-Request-ID" in response.headers


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/v1/healthz", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
