import time

from fastapi.testclient import TestClient


def wait_for_status(client: TestClient, job_id: int, status: str, timeout: float = 5.0):
    """Poll a job until it reaches ``status``; the runner works in the background."""
    deadline = time.monotonic() + timeout
    while True:
        job = client.get(f"/v1/jobs/{job_id}").json()["data"]
        if job["status"] == status or time.monotonic() > deadline:
            return job
        time.sleep(0.02)


def enqueue(client: TestClient, jobs: list[dict], run: bool = True) -> dict:
    response = client.post("/v1/jobs", json={"jobs": jobs, "run": run})
    assert response.status_code == 200
    return response.json()["data"]


class TestEnqueue:
    def test_enqueue_and_run(self, client: TestClient):
        result = enqueue(client, [{"kind": "fetch_json", "payload": {"n": 1}}])

        assert len(result["job_ids"]) == 1
        assert result["runner_started"] is True

        job = wait_for_status(client, result["job_ids"][0], "done")
        assert job["status"] == "done"
        assert job["payload"] == {"n": 1}
        assert job["output"]["echo"] == {"n": 1}

    def test_enqueue_without_run_leaves_jobs_pending(self, client: TestClient):
        result = enqueue(
            client,
            [{"kind": "fetch_json"}, {"kind": "fetch_json"}],
            run=False,
        )

        assert result["runner_started"] is False
        for job_id in result["job_ids"]:
            job = client.get(f"/v1/jobs/{job_id}").json()["data"]
            assert job["status"] == "pending"

    def test_unserved_kind_ends_in_error(self, client: TestClient):
        result = enqueue(client, [{"kind": "compute_signal"}])

        job = wait_for_status(client, result["job_ids"][0], "error")
        assert job["status"] == "error"
        assert "compute_signal" in job["error_message"]

    def test_unknown_kind_rejected(self, client: TestClient):
        response = client.post("/v1/jobs", json={"jobs": [{"kind": "send_email"}]})

        assert response.status_code == 422
        data = response.json()
        assert data["ok"] is False
        assert data["error"]["message"] == "Request validation failed"
        assert data["error"]["details"]["errors"]

    def test_empty_job_list_rejected(self, client: TestClient):
        response = client.post("/v1/jobs", json={"jobs": []})
        assert response.status_code == 422


class TestQueries:
    def test_list_jobs_with_filters(self, client: TestClient):
        enqueue(
            client,
            [{"kind": "fetch_json"}, {"kind": "crawl_price"}],
            run=False,
        )

        all_jobs = client.get("/v1/jobs").json()["data"]
        assert all_jobs["total"] == 2

        crawl = client.get("/v1/jobs", params={"kind": "crawl_price"}).json()["data"]
        assert [job["kind"] for job in crawl["jobs"]] == ["crawl_price"]

        done = client.get("/v1/jobs", params={"status": "done"}).json()["data"]
        assert done["total"] == 0

    def test_invalid_status_filter(self, client: TestClient):
        response = client.get("/v1/jobs", params={"status": "sleeping"})
        assert response.status_code == 422

    def test_get_missing_job(self, client: TestClient):
        response = client.get("/v1/jobs/9999")

        assert response.status_code == 404
        data = response.json()
        assert data["ok"] is False
        assert data["error"]["message"] == "Job not found"

    def test_stats(self, client: TestClient):
        enqueue(
            client,
            [{"kind": "fetch_json"}, {"kind": "fetch_json"}, {"kind": "crawl_price"}],
            run=False,
        )

        stats = client.get("/v1/jobs/stats/overview").json()["data"]

        assert stats["total_jobs"] == 3
        assert stats["by_status"] == {"pending": 3}
        assert stats["by_kind"] == {"fetch_json": 2, "crawl_price": 1}
        assert stats["queue_depth"] == 3


class TestRunner:
    def test_runner_status(self, client: TestClient):
        status = client.get("/v1/jobs/runner/status").json()["data"]

        assert status["running"] is False
        assert status["max_concurrent_jobs"] == 2
        assert status["batch_size"] == 4
        assert status["idle_mode"] == "drain"
        assert set(status["registered_kinds"]) == {"fetch_json", "maintenance_cleanup"}

    def test_run_processes_pending_jobs(self, client: TestClient):
        result = enqueue(client, [{"kind": "fetch_json"}], run=False)

        response = client.post("/v1/jobs/runner/run")

        assert response.status_code == 200
        assert response.json()["data"]["runner_started"] is True
        job = wait_for_status(client, result["job_ids"][0], "done")
        assert job["status"] == "done"


class TestTrigger:
    def test_trigger_requires_code(self, client: TestClient):
        assert client.post("/v1/jobs/trigger/all").status_code == 400
        response = client.post("/v1/jobs/trigger/all", params={"code": "wrong"})
        assert response.status_code == 400

    def test_trigger_enqueues_cleanup(self, client: TestClient):
        response = client.post("/v1/jobs/trigger/all", params={"code": "test-code"})

        assert response.status_code == 200
        [job_id] = response.json()["data"]["job_ids"]
        job = wait_for_status(client, job_id, "done")
        assert job["kind"] == "maintenance_cleanup"
        assert job["status"] == "done"
        assert job["output"]["deleted_count"] == 0
