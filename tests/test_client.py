"""Tests for the async task store client (client.py)."""

from __future__ import annotations

import json

import httpx
import pytest

from taskboard.board.errors import PersistenceError
from taskboard.client import TaskStoreClient


def _client(handler) -> TaskStoreClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://board")
    return TaskStoreClient(http_client=http)


@pytest.mark.anyio
class TestTaskStoreClient:
    async def test_list_tasks(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/api/tasks"
            return httpx.Response(200, json={"tasks": [{"id": "a"}], "total": 1})

        client = _client(handler)
        assert await client.list_tasks() == [{"id": "a"}]

    async def test_update_sends_partial_changes(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"task": {"id": "a", **seen["body"]}})

        client = _client(handler)
        task = await client.update_task("a", {"status": "DONE", "position": 1000.0})
        assert seen == {"method": "PATCH", "path": "/api/tasks/a", "body": {"status": "DONE", "position": 1000.0}}
        assert task["status"] == "DONE"

    async def test_error_reason_from_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"error": "Task is locked"})

        client = _client(handler)
        with pytest.raises(PersistenceError) as excinfo:
            await client.update_task("a", {"position": 1.0})
        assert excinfo.value.reason == "Task is locked"
        assert excinfo.value.http_status == 409

    async def test_error_without_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        client = _client(handler)
        with pytest.raises(PersistenceError) as excinfo:
            await client.list_tasks()
        assert excinfo.value.reason is None
        assert excinfo.value.http_status == 502

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(PersistenceError) as excinfo:
            await client.update_task("a", {"position": 1.0})
        assert excinfo.value.reason is None
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)

    async def test_move_task(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/tasks/a/move"
            body = json.loads(request.content)
            assert body == {"destination_column": "DONE", "destination_index": 0}
            return httpx.Response(200, json={"task": {"id": "a", "status": "DONE"}, "index": 0, "renormalized": False})

        client = _client(handler)
        assert (await client.move_task("a", "DONE", 0))["status"] == "DONE"

    async def test_non_json_success_body_is_not_a_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="ok")

        client = _client(handler)
        assert await client.update_task("a", {"position": 1.0}) == {}

    async def test_base_url_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASKBOARD_API_URL", "http://env-host:9999/")
        async with TaskStoreClient() as client:
            assert str(client._http.base_url).rstrip("/") == "http://env-host:9999"
        async with TaskStoreClient("http://explicit:1") as client:
            assert str(client._http.base_url).rstrip("/") == "http://explicit:1"

    async def test_base_url_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TASKBOARD_API_URL", raising=False)
        async with TaskStoreClient() as client:
            assert str(client._http.base_url).rstrip("/") == "http://127.0.0.1:8000"

    async def test_owned_client_closed(self) -> None:
        async with TaskStoreClient("http://127.0.0.1:1") as client:
            assert client._owns_client
        assert client._http.is_closed
