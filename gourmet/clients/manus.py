"""Client for the Manus long-running agent task API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class ManusError(RuntimeError):
    """Base error for Manus client failures."""

    def __init__(self, message: str, code: str = "MANUS_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ManusRateLimitError(ManusError):
    """Raised when Manus responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by Manus") -> None:
        super().__init__(message, code="MANUS_429")


class ManusTimeoutError(ManusError):
    """Raised when Manus requests time out."""

    def __init__(self, message: str = "Manus request timed out") -> None:
        super().__init__(message, code="MANUS_TIMEOUT")


class ManusNotFoundError(ManusError):
    """Raised when Manus no longer knows the requested task."""

    def __init__(self, message: str = "Manus task not found") -> None:
        super().__init__(message, code="MANUS_NOT_FOUND")


class ManusSchemaError(ManusError):
    """Raised when a Manus response does not match the expected shape."""

    def __init__(self, message: str = "Unexpected Manus response schema") -> None:
        super().__init__(message, code="MANUS_SCHEMA_ERR")


@dataclass(frozen=True)
class ManusTaskHandle:
    task_id: str
    task_url: str


class ManusClient:
    """Minimal Manus agent API client wrapper."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.manus.ai/v1",
        task_base_url: str = "https://manus.ai/tasks",
        agent_profile: str = "manus-1.6",
        task_mode: str = "agent",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("MANUS_API_KEY is required to create a ManusClient.")
        self._api_key = api_key
        self._task_base_url = task_base_url.rstrip("/")
        self._agent_profile = agent_profile
        self._task_mode = task_mode
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def create_task(self, prompt: str) -> ManusTaskHandle:
        """Submit a research prompt and return the handle of the created task."""
        if not prompt.strip():
            raise ValueError("prompt must not be empty.")
        payload = {
            "prompt": prompt,
            "agentProfile": self._agent_profile,
            "taskMode": self._task_mode,
        }
        data = self._request("POST", "/tasks", json=payload)
        if not isinstance(data, dict):
            raise ManusSchemaError("Manus task creation did not return a JSON object.")

        task_id = data.get("id") or data.get("task_id")
        if not task_id:
            raise ManusSchemaError("Manus API did not return a task_id.")
        task_url = data.get("task_url") or data.get("url") or f"{self._task_base_url}/{task_id}"
        return ManusTaskHandle(task_id=str(task_id), task_url=str(task_url))

    def get_task(self, task_id: str) -> dict[str, Any]:
        """Fetch the current status (and output once finished) of a task."""
        if not task_id:
            raise ValueError("task_id is required.")
        data = self._request("GET", f"/tasks/{task_id}")
        if not isinstance(data, dict):
            raise ManusSchemaError("Manus task payload must be a JSON object.")
        return data

    def download_json(self, url: str) -> Any:
        """Download an output file attached to a task and decode it as JSON."""
        try:
            response = self._http.get(url)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failure
            raise ManusTimeoutError("Manus output file download timed out") from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failure
            raise ManusError(f"HTTP error downloading Manus output file: {exc}") from exc
        if response.status_code >= 400:
            raise ManusError(f"Manus output file download failed: {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise ManusSchemaError("Manus output file is not valid JSON.") from exc

    def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> Any:
        headers = {"API_KEY": self._api_key}
        try:
            response = self._http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failure
            raise ManusTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failure
            raise ManusError(f"HTTP error calling Manus: {exc}") from exc

        if response.status_code == 429:
            raise ManusRateLimitError()
        if response.status_code in (408, 504):
            raise ManusTimeoutError()
        if response.status_code == 404:
            raise ManusNotFoundError()
        if response.status_code >= 400:
            detail = response.text[:200]
            try:
                detail_json = response.json()
                detail = detail_json.get("message") or detail_json.get("detail") or detail
            except Exception:  # pragma: no cover - best effort decoding
                pass
            raise ManusError(f"Manus request failed: {response.status_code} - {detail}")

        try:
            return response.json()
        except ValueError as exc:
            raise ManusSchemaError("Failed to decode Manus response JSON.") from exc

    def __enter__(self) -> "ManusClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
