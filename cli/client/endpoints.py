"""API Endpoint Wrappers"""

from typing import Any

from .base import APIClient, JobQueueError
from ..utils.config_manager import config

__all__ = ["JobQueueClient", "JobQueueError"]


class JobQueueClient:
    """High-level client with typed endpoint methods"""

    def __init__(self, base_url: str | None = None, **client_options: Any):
        api_config = config.load_config().get("api", {})
        final_base_url = base_url or api_config.get("base_url", "http://localhost:8000")

        self.api = APIClient(
            base_url=final_base_url,
            timeout=api_config.get("timeout", 30),
            **client_options,
        )

    def __enter__(self):
        self.api.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.api.__exit__(exc_type, exc_val, exc_tb)

    # Health Check
    def health_check(self) -> dict[str, Any]:
        """Check API health status"""
        return self.api.get("/healthz")

    # Jobs Endpoints
    def enqueue(
        self, jobs: list[dict[str, Any]], run: bool = True
    ) -> dict[str, Any]:
        """Enqueue jobs given as {"kind": ..., "payload": {...}} documents"""
        return self.api.post("/jobs", json={"jobs": jobs, "run": run})

    def list_jobs(
        self, status: str | None = None, kind: str | None = None
    ) -> dict[str, Any]:
        """List jobs with optional filters"""
        params = {}
        if status:
            params["status"] = status
        if kind:
            params["kind"] = kind
        return self.api.get("/jobs", params)

    def get_job(self, job_id: int) -> dict[str, Any]:
        """Get a specific job by ID"""
        return self.api.get(f"/jobs/{job_id}")

    def stats(self) -> dict[str, Any]:
        """Get job counts by status and kind"""
        return self.api.get("/jobs/stats/overview")

    def runner_status(self) -> dict[str, Any]:
        """Get runner state"""
        return self.api.get("/jobs/runner/status")

    def run_runner(self) -> dict[str, Any]:
        """Start the runner loop"""
        return self.api.post("/jobs/runner/run")
