from __future__ import annotations

from typing import Any

from gourmet.clients.lovable import LovableAIError
from gourmet.clients.manus import ManusError, ManusTaskHandle
from gourmet.models.signal import Signal
from gourmet.services.enrichment.repositories import InMemoryEnrichmentRepository


class StubManusClient:
    """Scripted stand-in for the Manus task API."""

    def __init__(
        self,
        *,
        task_id: str = "t1",
        create_error: ManusError | None = None,
        tasks: list[dict[str, Any] | ManusError] | None = None,
        files: dict[str, Any] | None = None,
    ) -> None:
        self._task_id = task_id
        self._create_error = create_error
        self._tasks = list(tasks or [])
        self._files = files or {}
        self.prompts: list[str] = []
        self.get_calls: list[str] = []
        self.downloads: list[str] = []
        self.closed = False

    def create_task(self, prompt: str) -> ManusTaskHandle:
        self.prompts.append(prompt)
        if self._create_error is not None:
            raise self._create_error
        return ManusTaskHandle(
            task_id=self._task_id, task_url=f"https://manus.ai/tasks/{self._task_id}"
        )

    def get_task(self, task_id: str) -> dict[str, Any]:
        self.get_calls.append(task_id)
        if not self._tasks:
            raise AssertionError("get_task called more often than scripted")
        payload = self._tasks.pop(0) if len(self._tasks) > 1 else self._tasks[0]
        if isinstance(payload, ManusError):
            raise payload
        return payload

    def download_json(self, url: str) -> Any:
        self.downloads.append(url)
        if url not in self._files:
            raise ManusError(f"missing file {url}")
        return self._files[url]

    def close(self) -> None:
        self.closed = True


class StubChatClient:
    """Deterministic stub for the synchronous text-generation fallback."""

    def __init__(self, response: str | None = None, *, error: LovableAIError | None = None) -> None:
        self._response = response
        self._error = error
        self.calls = 0

    def generate(self, **_: str) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._response or ""


def make_signal(
    repository: InMemoryEnrichmentRepository, **overrides: Any
) -> Signal:
    payload: dict[str, Any] = {
        "company_name": "Acme Traiteur",
        "signal_type": "levee",
        "source_name": "Les Echos",
        "sector": "Restauration",
        "event_detail": "Levée de fonds de 4M€",
        "score": 4,
    }
    payload.update(overrides)
    return repository.add_signal(Signal(**payload))
