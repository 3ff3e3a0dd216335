# src/taskdock/sync/remote_store.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, TypeVar

import httpx

from ..core.models import (
    Collection,
    Project,
    ProjectTag,
    RecordMixin,
    Tag,
    Task,
    TaskTag,
    TodayTask,
    utc_now_iso,
)
from ..errors import ConfigError, RemoteStoreError, ReorderError
from .wire import from_wire, to_wire, updates_to_wire

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=RecordMixin)

REST_PREFIX = "/rest/v1"

TABLES: dict[Collection, str] = {
    Collection.TASKS: "tasks",
    Collection.PROJECTS: "projects",
    Collection.TAGS: "tags",
    Collection.TASK_TAGS: "task_tags",
    Collection.PROJECT_TAGS: "project_tags",
    Collection.TODAY: "today_tasks",
}


class RemoteStore:
    """
    HTTP adapter for the remote authoritative store (PostgREST-style API).

    - every request carries the two static auth headers (apikey + bearer token)
    - non-2xx responses raise RemoteStoreError(status, body)
    - field names are translated by sync.wire; nothing else here knows about case
    - collections listed in `unwired` have no server endpoint yet: reads return []
      and writes are logged no-ops

    No retries and no timeout policy of its own beyond the httpx client timeout.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 15.0,
        unwired: Iterable[Collection | str] = (),
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base_url = (base_url or "").strip().rstrip("/")
        api_key = (api_key or "").strip()
        if not base_url or not api_key:
            raise ConfigError(
                "Missing remote store configuration. Set TASKDOCK_REMOTE_URL and TASKDOCK_REMOTE_API_KEY."
            )

        self.base_url = base_url
        self.unwired: frozenset[Collection] = frozenset(Collection(c) for c in unwired)
        self._client = httpx.AsyncClient(
            base_url=base_url + REST_PREFIX,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- low-level helpers ----

    async def _request(
        self,
        method: str,
        collection: Collection,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
        prefer_return: bool = False,
    ) -> httpx.Response:
        headers = {"Prefer": "return=representation"} if prefer_return else None
        resp = await self._client.request(
            method,
            "/" + TABLES[collection],
            params=params,
            json=body,
            headers=headers,
        )
        if not resp.is_success:
            raise RemoteStoreError(resp.status_code, resp.text, method=method, url=str(resp.request.url))
        return resp

    def _is_wired(self, collection: Collection, action: str) -> bool:
        if collection not in self.unwired:
            return True
        if action != "list":
            logger.warning("Remote %s for %s is not wired yet; skipping", action, collection.value)
        return False

    async def _list(self, collection: Collection, cls: type[E]) -> list[E]:
        if not self._is_wired(collection, "list"):
            return []
        resp = await self._request("GET", collection, params={"select": "*"})
        data = resp.json()
        if not isinstance(data, list):
            raise RemoteStoreError(resp.status_code, f"expected a JSON array, got {type(data).__name__}")
        return [from_wire(cls, row) for row in data]

    async def _create(self, collection: Collection, entity: RecordMixin) -> None:
        if not self._is_wired(collection, "create"):
            return
        await self._request("POST", collection, body=to_wire(entity), prefer_return=True)

    async def _update(self, collection: Collection, cls: type[RecordMixin], item_id: str, updates: dict[str, Any]) -> None:
        if not self._is_wired(collection, "update"):
            return
        body = updates_to_wire(cls, updates)
        if not body:
            return
        await self._request("PATCH", collection, params={"id": f"eq.{item_id}"}, body=body)

    async def _delete(self, collection: Collection, params: dict[str, str]) -> None:
        if not self._is_wired(collection, "delete"):
            return
        await self._request("DELETE", collection, params=params)

    async def _reorder(self, collection: Collection, entries: list[tuple[str, int]]) -> None:
        """N independent concurrent PATCHes. Succeeded ones stay applied if others fail."""
        if not self._is_wired(collection, "reorder") or not entries:
            return

        results = await asyncio.gather(
            *(
                self._request("PATCH", collection, params={"id": f"eq.{item_id}"}, body={"order": order})
                for item_id, order in entries
            ),
            return_exceptions=True,
        )
        failed: list[str] = []
        for (item_id, _), result in zip(entries, results):
            if isinstance(result, BaseException):
                logger.warning("Reorder %s id=%s failed: %s", collection.value, item_id, result)
                failed.append(item_id)
        if failed:
            raise ReorderError(TABLES[collection], failed, len(entries))

    # ---- tasks ----

    async def get_tasks(self) -> list[Task]:
        return await self._list(Collection.TASKS, Task)

    async def add_task(self, task: Task) -> None:
        await self._create(Collection.TASKS, task)

    async def update_task(self, task_id: str, updates: dict[str, Any]) -> None:
        await self._update(Collection.TASKS, Task, task_id, updates)

    async def delete_task(self, task_id: str) -> None:
        await self._delete(Collection.TASKS, {"id": f"eq.{task_id}"})

    async def reorder_tasks(self, entries: list[tuple[str, int]]) -> None:
        await self._reorder(Collection.TASKS, entries)

    # ---- projects ----

    async def get_projects(self) -> list[Project]:
        return await self._list(Collection.PROJECTS, Project)

    async def add_project(self, project: Project) -> None:
        await self._create(Collection.PROJECTS, project)

    async def update_project(self, project_id: str, updates: dict[str, Any]) -> None:
        await self._update(Collection.PROJECTS, Project, project_id, updates)

    async def delete_project(self, project_id: str) -> None:
        await self._delete(Collection.PROJECTS, {"id": f"eq.{project_id}"})

    async def reorder_projects(self, entries: list[tuple[str, int]]) -> None:
        await self._reorder(Collection.PROJECTS, entries)

    # ---- tags ----

    async def get_tags(self) -> list[Tag]:
        return await self._list(Collection.TAGS, Tag)

    async def add_tag(self, tag: Tag) -> None:
        await self._create(Collection.TAGS, tag)

    async def update_tag(self, tag_id: str, updates: dict[str, Any]) -> None:
        await self._update(Collection.TAGS, Tag, tag_id, updates)

    async def delete_tag(self, tag_id: str) -> None:
        await self._delete(Collection.TAGS, {"id": f"eq.{tag_id}"})

    # ---- tag links ----

    async def get_task_tags(self) -> list[TaskTag]:
        return await self._list(Collection.TASK_TAGS, TaskTag)

    async def add_task_tag(self, task_id: str, tag_id: str) -> None:
        await self._create(Collection.TASK_TAGS, TaskTag(task_id=task_id, tag_id=tag_id, created_at=utc_now_iso()))

    async def remove_task_tag(self, task_id: str, tag_id: str) -> None:
        await self._delete(Collection.TASK_TAGS, {"task_id": f"eq.{task_id}", "tag_id": f"eq.{tag_id}"})

    async def get_project_tags(self) -> list[ProjectTag]:
        return await self._list(Collection.PROJECT_TAGS, ProjectTag)

    async def add_project_tag(self, project_id: str, tag_id: str) -> None:
        await self._create(
            Collection.PROJECT_TAGS,
            ProjectTag(project_id=project_id, tag_id=tag_id, created_at=utc_now_iso()),
        )

    async def remove_project_tag(self, project_id: str, tag_id: str) -> None:
        await self._delete(
            Collection.PROJECT_TAGS,
            {"project_id": f"eq.{project_id}", "tag_id": f"eq.{tag_id}"},
        )

    # ---- today ----

    async def get_today_tasks(self) -> list[TodayTask]:
        return await self._list(Collection.TODAY, TodayTask)

    async def save_today_tasks(self, today_tasks: list[TodayTask]) -> None:
        """Replace the remote today list: delete every row, then insert the new list."""
        if not self._is_wired(Collection.TODAY, "save"):
            return
        await self._request("DELETE", Collection.TODAY, params={"task_id": "not.is.null"})
        if today_tasks:
            await self._request(
                "POST",
                Collection.TODAY,
                body=[to_wire(tt) for tt in today_tasks],
                prefer_return=True,
            )

    async def add_today_task(self, task_id: str, order: int) -> None:
        await self._create(Collection.TODAY, TodayTask(task_id=task_id, order=order))

    async def remove_today_task(self, task_id: str) -> None:
        await self._delete(Collection.TODAY, {"task_id": f"eq.{task_id}"})
