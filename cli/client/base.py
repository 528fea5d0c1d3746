"""Base HTTP Client for the Job Queue API"""

from typing import Any

import httpx
from rich.console import Console

console = Console()


class JobQueueError(Exception):
    """Request to the Job Queue API failed"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class APIClient:
    """Thin httpx wrapper that unwraps the API's ``{"ok", "data"}`` envelope"""

    api_prefix = "/v1"

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers or {},
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("GET", path, params=params)

    def post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self._request("POST", path, json=json, params=params)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self.client.request(method, f"{self.api_prefix}{path}", **kwargs)
        except httpx.RequestError as e:
            raise JobQueueError(f"Connection failed: {e}") from None
        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            console.print(f"[dim]{response.text[:200]}[/dim]")
            raise JobQueueError(
                f"Invalid JSON response: {response.status_code}", response.status_code
            ) from None

        error = body.get("error") or {}
        if response.is_error:
            message = error.get("message", "Unknown error")
            raise JobQueueError(
                f"API Error {response.status_code}: {_describe(message, error)}",
                response.status_code,
            )
        if body.get("ok") is False:
            raise JobQueueError(error.get("message", "Request failed"), response.status_code)

        return body.get("data", body)


def _describe(message: str, error: dict[str, Any]) -> str:
    """Append the first field error of a validation failure to its message"""
    field_errors = error.get("details", {}).get("errors") or []
    if not field_errors:
        return message
    first = field_errors[0]
    location = ".".join(str(part) for part in first.get("loc", []))
    return f"{message} ({location}: {first.get('msg')})"
