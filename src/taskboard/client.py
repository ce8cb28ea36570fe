"""Async HTTP client for the task board API.

This is the task store as seen from a board session: it reads the task list
and writes partial updates.  Every failure, whether a transport error or a
non-2xx response, surfaces as :class:`PersistenceError` carrying the
server-provided ``error`` reason when there is one.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from .board.errors import PersistenceError
from .config import get_api_url

API_PREFIX = "/api/tasks"


def _error_reason(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        reason = body.get("error") or body.get("detail")
        if isinstance(reason, str) and reason:
            return reason
    return None


class TaskStoreClient:
    """Talk to ``/api/tasks`` on a running board server.

    Args:
        base_url: Server root, e.g. ``http://127.0.0.1:8000``. Defaults to
            ``TASKBOARD_API_URL`` or the built-in local address.
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests pass one
            with a mock or ASGI transport). When given, it is not closed by
            :meth:`aclose`.
        timeout: Request timeout in seconds for the client built here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url or get_api_url(), timeout=timeout)

    async def __aenter__(self) -> "TaskStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(method, f"{API_PREFIX}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("{} {} failed: {}", method, path, exc)
            raise PersistenceError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            reason = _error_reason(response)
            raise PersistenceError(
                f"{method} {path} returned {response.status_code}",
                reason=reason,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError:
            # A 2xx with an unreadable body still counts as success.
            logger.debug("{} {} returned a non-JSON body", method, path)
            return {}
        return body if isinstance(body, dict) else {}

    # -- reads ----------------------------------------------------------------

    async def list_tasks(self, status: Optional[str] = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        body = await self._request("GET", "", params=params)
        return list(body.get("tasks") or [])

    async def get_board(self) -> dict[str, list[dict[str, Any]]]:
        body = await self._request("GET", "/board")
        return dict(body.get("columns") or {})

    # -- writes ---------------------------------------------------------------

    async def create_task(self, title: str, **fields: Any) -> dict[str, Any]:
        body = await self._request("POST", "", json={"title": title, **fields})
        return dict(body.get("task") or {})

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("PATCH", f"/{task_id}", json=changes)
        return dict(body.get("task") or {})

    async def move_task(self, task_id: str, destination_column: str, destination_index: int) -> dict[str, Any]:
        body = await self._request(
            "POST",
            f"/{task_id}/move",
            json={"destination_column": destination_column, "destination_index": destination_index},
        )
        return dict(body.get("task") or {})

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/{task_id}")
