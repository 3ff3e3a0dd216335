# src/taskdock/sync/manager.py

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from ..core.models import (
    Collection,
    Project,
    ProjectTag,
    Tag,
    Task,
    TaskTag,
    TodayTask,
    check_updates,
)
from ..storage.local_store import CollectionListener, LocalStore
from .operations import (
    DeletePayload,
    OperationType,
    Payload,
    ProjectPayload,
    ProjectTagPayload,
    ReorderPayload,
    TagPayload,
    TaskPayload,
    TaskTagPayload,
    TodayListPayload,
    TodayTaskPayload,
    UpdatePayload,
)
from .queue import OperationQueue
from .worker import PassResult, SyncWorker

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncStatus:
    pending: int
    failed: int
    is_running: bool
    is_syncing: bool
    local_write_failures: int = 0


class StorageManager:
    """
    Local-first facade over LocalStore + OperationQueue + SyncWorker.

    - every mutation is applied to LocalStore synchronously and never raises for
      storage reasons (local write failures are logged and counted)
    - when remote sync is enabled the matching operation is queued (fire-and-forget)
    - reads always come from LocalStore; the network is never on the read path
    """

    def __init__(
        self,
        local: LocalStore,
        queue: OperationQueue,
        worker: SyncWorker | None = None,
        *,
        enable_remote_sync: bool = False,
    ) -> None:
        self.local = local
        self.queue = queue
        self.worker = worker
        self.enable_remote_sync = bool(enable_remote_sync and worker is not None)
        if enable_remote_sync and worker is None:
            logger.warning("Remote sync requested without a sync worker; running local-only")

    def _enqueue(self, op_type: OperationType, payload: Payload) -> None:
        if self.enable_remote_sync:
            self.queue.enqueue(op_type, payload)

    @staticmethod
    def _order_entries(items: list[Any]) -> tuple[tuple[str, int], ...]:
        return tuple((str(item.id), int(item.order)) for item in items)

    def on_collection_changed(self, listener: CollectionListener) -> None:
        """Register a callback fired after a peer instance changed a collection."""
        self.local.add_listener(listener)

    # ---- tasks ----

    def get_tasks(self) -> list[Task]:
        return self.local.get_tasks()

    def add_task(self, task: Task) -> None:
        self.local.add_task(task)
        self._enqueue(OperationType.ADD_TASK, TaskPayload(task=copy.deepcopy(task)))

    def update_task(self, task_id: str, updates: dict[str, Any]) -> None:
        check_updates(Task, updates)
        self.local.update_task(task_id, updates)
        self._enqueue(OperationType.UPDATE_TASK, UpdatePayload(id=task_id, updates=copy.deepcopy(updates)))

    def delete_task(self, task_id: str) -> None:
        self.local.delete_task(task_id)
        self._enqueue(OperationType.DELETE_TASK, DeletePayload(id=task_id))

    def reorder_tasks(self, tasks: list[Task]) -> None:
        entries = self._order_entries(tasks)
        self.local.reorder_tasks(list(entries))
        self._enqueue(OperationType.REORDER_TASKS, ReorderPayload(entries=entries))

    # ---- projects ----

    def get_projects(self) -> list[Project]:
        return self.local.get_projects()

    def add_project(self, project: Project) -> None:
        self.local.add_project(project)
        self._enqueue(OperationType.ADD_PROJECT, ProjectPayload(project=copy.deepcopy(project)))

    def update_project(self, project_id: str, updates: dict[str, Any]) -> None:
        check_updates(Project, updates)
        self.local.update_project(project_id, updates)
        self._enqueue(OperationType.UPDATE_PROJECT, UpdatePayload(id=project_id, updates=copy.deepcopy(updates)))

    def delete_project(self, project_id: str) -> None:
        self.local.delete_project(project_id)
        self._enqueue(OperationType.DELETE_PROJECT, DeletePayload(id=project_id))

    def reorder_projects(self, projects: list[Project]) -> None:
        entries = self._order_entries(projects)
        self.local.reorder_projects(list(entries))
        self._enqueue(OperationType.REORDER_PROJECTS, ReorderPayload(entries=entries))

    # ---- tags ----

    def get_tags(self) -> list[Tag]:
        return self.local.get_tags()

    def add_tag(self, tag: Tag) -> None:
        self.local.add_tag(tag)
        self._enqueue(OperationType.ADD_TAG, TagPayload(tag=copy.deepcopy(tag)))

    def update_tag(self, tag_id: str, updates: dict[str, Any]) -> None:
        check_updates(Tag, updates)
        self.local.update_tag(tag_id, updates)
        self._enqueue(OperationType.UPDATE_TAG, UpdatePayload(id=tag_id, updates=copy.deepcopy(updates)))

    def delete_tag(self, tag_id: str) -> None:
        self.local.delete_tag(tag_id)
        self._enqueue(OperationType.DELETE_TAG, DeletePayload(id=tag_id))

    # ---- tag links ----

    def get_task_tags(self) -> list[TaskTag]:
        return self.local.get_task_tags()

    def add_task_tag(self, task_id: str, tag_id: str) -> None:
        if self.local.add_task_tag(task_id, tag_id):
            self._enqueue(OperationType.ADD_TASK_TAG, TaskTagPayload(task_id=task_id, tag_id=tag_id))

    def remove_task_tag(self, task_id: str, tag_id: str) -> None:
        self.local.remove_task_tag(task_id, tag_id)
        self._enqueue(OperationType.REMOVE_TASK_TAG, TaskTagPayload(task_id=task_id, tag_id=tag_id))

    def get_project_tags(self) -> list[ProjectTag]:
        return self.local.get_project_tags()

    def add_project_tag(self, project_id: str, tag_id: str) -> None:
        if self.local.add_project_tag(project_id, tag_id):
            self._enqueue(
                OperationType.ADD_PROJECT_TAG,
                ProjectTagPayload(project_id=project_id, tag_id=tag_id),
            )

    def remove_project_tag(self, project_id: str, tag_id: str) -> None:
        self.local.remove_project_tag(project_id, tag_id)
        self._enqueue(
            OperationType.REMOVE_PROJECT_TAG,
            ProjectTagPayload(project_id=project_id, tag_id=tag_id),
        )

    # ---- today ----

    def get_today_tasks(self) -> list[TodayTask]:
        return self.local.get_today_tasks()

    def save_today_tasks(self, today_tasks: list[TodayTask]) -> None:
        self.local.save_today_tasks(today_tasks)
        self._enqueue(OperationType.REORDER_TODAY_TASKS, TodayListPayload(today_tasks=tuple(copy.deepcopy(today_tasks))))

    def add_today_task(self, task_id: str, order: int | None = None) -> None:
        """Append a task to the today list (no-op if it is already there)."""
        slots = self.local.get_today_tasks()
        if any(slot.task_id == task_id for slot in slots):
            return
        if order is None:
            order = max((slot.order for slot in slots), default=-1) + 1
        slots.append(TodayTask(task_id=task_id, order=order))
        self.local.save_today_tasks(slots)
        self._enqueue(OperationType.ADD_TODAY_TASK, TodayTaskPayload(task_id=task_id, order=order))

    def remove_today_task(self, task_id: str) -> None:
        slots = self.local.get_today_tasks()
        kept = [slot for slot in slots if slot.task_id != task_id]
        if len(kept) == len(slots):
            return
        self.local.save_today_tasks(kept)
        self._enqueue(OperationType.REMOVE_TODAY_TASK, TodayTaskPayload(task_id=task_id))

    # ---- sync control ----

    async def sync_now(self) -> PassResult | None:
        if self.worker is None:
            return None
        return await self.worker.sync_now()

    async def pull_from_remote(self) -> dict[Collection, bool]:
        if self.worker is None or not self.enable_remote_sync:
            return {c: False for c in Collection}
        return await self.worker.pull_from_remote()

    async def bootstrap(self, *, start_worker: bool = True) -> None:
        """
        Session start: push, then pull.

        The local backlog is flushed before the remote state is pulled back, so edits
        made while offline are on the server before the pull overwrites local copies.
        """
        if not self.enable_remote_sync or self.worker is None:
            logger.info("Local-only storage; bootstrap has nothing to sync")
            return

        logger.info("Bootstrap: pushing %d pending operations...", self.queue.pending_count())
        await self.worker.sync_now()
        logger.info("Bootstrap: pulling remote state...")
        await self.worker.pull_from_remote()
        if start_worker:
            self.worker.start()

    def start_sync(self) -> None:
        if self.worker is not None:
            self.worker.start()

    def stop_sync(self) -> None:
        if self.worker is not None:
            self.worker.stop()

    def get_sync_status(self) -> SyncStatus:
        return SyncStatus(
            pending=self.queue.pending_count(),
            failed=self.queue.failed_count(),
            is_running=self.worker.is_running if self.worker is not None else False,
            is_syncing=self.worker.is_syncing if self.worker is not None else False,
            local_write_failures=self.local.write_failures + self.queue.persist_failures,
        )

    def retry_failed(self) -> int:
        return self.queue.retry_failed()

    def clear_queue(self) -> None:
        """Drop every queued operation, synced or not. Destructive recovery action."""
        self.queue.clear()

    async def aclose(self) -> None:
        if self.worker is not None:
            self.worker.stop()
            await self.worker.wait_idle()
        self.local.close()
