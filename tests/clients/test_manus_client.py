from __future__ import annotations

import json

import httpx
import pytest

from gourmet.clients.manus import (
    ManusClient,
    ManusError,
    ManusNotFoundError,
    ManusRateLimitError,
    ManusSchemaError,
)


def _client(handler) -> ManusClient:
    http_client = httpx.Client(
        base_url="https://api.manus.ai/v1", transport=httpx.MockTransport(handler)
    )
    return ManusClient("secret", http_client=http_client)


def test_create_task_sends_prompt_and_api_key_header():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"task_id": "abc", "task_url": "https://manus.ai/share/abc"})

    handle = _client(handler).create_task("Trouve des contacts")

    assert handle.task_id == "abc"
    assert handle.task_url == "https://manus.ai/share/abc"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/tasks"
    assert request.headers["API_KEY"] == "secret"
    body = json.loads(request.content)
    assert body == {"prompt": "Trouve des contacts", "agentProfile": "manus-1.6", "taskMode": "agent"}


def test_create_task_accepts_id_and_builds_url():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 42})

    handle = _client(handler).create_task("prompt")

    assert handle.task_id == "42"
    assert handle.task_url == "https://manus.ai/tasks/42"


def test_create_task_without_id_is_a_schema_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "queued"})

    with pytest.raises(ManusSchemaError):
        _client(handler).create_task("prompt")


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [(429, ManusRateLimitError), (404, ManusNotFoundError), (500, ManusError)],
)
def test_http_errors_map_to_client_errors(status_code, error_type):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"message": "nope"})

    with pytest.raises(error_type):
        _client(handler).get_task("abc")


def test_get_task_returns_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/tasks/abc"
        return httpx.Response(200, json={"status": "running"})

    assert _client(handler).get_task("abc") == {"status": "running"}


def test_download_json_fetches_absolute_urls():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "files.manus.ai"
        return httpx.Response(200, json={"contacts": []})

    assert _client(handler).download_json("https://files.manus.ai/out.json") == {"contacts": []}


def test_download_json_rejects_non_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(ManusSchemaError):
        _client(handler).download_json("https://files.manus.ai/out.json")


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        ManusClient("")
