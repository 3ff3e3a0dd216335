# src/taskdock/sync/worker.py

from __future__ import annotations

"""
Sync worker.

A small timer loop that:
- takes a bounded batch of pending operations from the queue,
- replays them against the remote store strictly one after another,
- removes confirmed operations and marks failed ones (the batch always runs to the end).

It also pulls every collection from the remote store into local storage on demand.

At most one pass runs at a time. Stopping the worker cancels the timer only;
a pass that already started is allowed to finish.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar, assert_never

from ..core.models import Collection
from ..core.ports import Connectivity, RemoteAdapter
from ..storage.local_store import LocalStore
from .connectivity import StaticConnectivity
from .operations import (
    DeletePayload,
    OperationType,
    ProjectPayload,
    ProjectTagPayload,
    QueuedOperation,
    ReorderPayload,
    TagPayload,
    TaskPayload,
    TaskTagPayload,
    TodayListPayload,
    TodayTaskPayload,
    UpdatePayload,
)
from .queue import OperationQueue

logger = logging.getLogger(__name__)

P = TypeVar("P")


@dataclass(slots=True)
class PassResult:
    """Outcome of one drain pass."""

    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: str | None = None  # "busy" | "offline"

    @property
    def attempted(self) -> int:
        return len(self.completed) + len(self.failed)


def _expect(op: QueuedOperation, cls: type[P]) -> P:
    payload = op.payload
    if not isinstance(payload, cls):
        raise TypeError(f"{op.type.value} carries {type(payload).__name__}, expected {cls.__name__}")
    return payload


class SyncWorker:
    def __init__(
        self,
        queue: OperationQueue,
        remote: RemoteAdapter,
        local: LocalStore,
        *,
        connectivity: Connectivity | None = None,
        interval_seconds: float = 5.0,
        batch_size: int = 10,
    ) -> None:
        self._queue = queue
        self._remote = remote
        self._local = local
        self._connectivity = connectivity or StaticConnectivity(True)
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.batch_size = max(1, int(batch_size))

        self._timer: asyncio.Task[None] | None = None
        self._passes: set[asyncio.Task[Any]] = set()
        self._processing = False

    # ---- lifecycle ----

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    @property
    def is_syncing(self) -> bool:
        return self._processing

    def start(self) -> None:
        """Install the periodic trigger and run one pass now. Idempotent."""
        if self._timer is not None:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run_timer(), name="taskdock-sync-timer")
        logger.info("Sync worker started interval=%.2fs batch=%d", self.interval_seconds, self.batch_size)

    def stop(self) -> None:
        """Cancel the periodic trigger. An in-flight pass keeps running to completion."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("Sync worker stopped")

    async def wait_idle(self) -> None:
        """Wait for passes started by the timer to finish."""
        while self._passes:
            await asyncio.gather(*list(self._passes), return_exceptions=True)

    async def _run_timer(self) -> None:
        while True:
            self._spawn_pass()
            await asyncio.sleep(self.interval_seconds)

    def _spawn_pass(self) -> None:
        # Separate task so cancelling the timer never interrupts a running pass.
        task = asyncio.get_running_loop().create_task(self.process_queue())
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    # ---- queue drain ----

    async def _online(self) -> bool:
        try:
            return bool(await self._connectivity.is_online())
        except Exception:
            logger.exception("Connectivity check failed; treating as offline")
            return False

    async def process_queue(self) -> PassResult:
        """
        One drain pass. Never raises.

        Skipped (nothing executed, no retry consumed) when another pass is in
        progress or the network is unreachable.
        """
        if self._processing:
            return PassResult(skipped="busy")

        # Flag goes up before the first await so concurrent callers see it.
        self._processing = True
        try:
            if not await self._online():
                logger.debug("Offline; sync pass skipped")
                return PassResult(skipped="offline")

            result = PassResult()
            batch = self._queue.next_batch(self.batch_size)
            for op in batch:
                try:
                    await self.execute_operation(op)
                except Exception as e:
                    logger.warning("Failed to execute operation %s id=%s: %s", op.type.value, op.id, e)
                    logger.debug("Operation failure details id=%s", op.id, exc_info=True)
                    self._queue.mark_failed(op.id)
                    result.failed.append(op.id)
                else:
                    self._queue.mark_complete(op.id)
                    result.completed.append(op.id)

            if batch:
                logger.info(
                    "Sync pass done: %d synced, %d failed, %d pending",
                    len(result.completed),
                    len(result.failed),
                    self._queue.pending_count(),
                )
            return result
        finally:
            self._processing = False

    async def sync_now(self) -> PassResult:
        """Out-of-schedule pass under the same single-pass guard."""
        return await self.process_queue()

    async def execute_operation(self, op: QueuedOperation) -> None:
        remote = self._remote
        match op.type:
            case OperationType.ADD_TASK:
                await remote.add_task(_expect(op, TaskPayload).task)
            case OperationType.UPDATE_TASK:
                upd = _expect(op, UpdatePayload)
                await remote.update_task(upd.id, upd.updates)
            case OperationType.DELETE_TASK:
                await remote.delete_task(_expect(op, DeletePayload).id)
            case OperationType.REORDER_TASKS:
                await remote.reorder_tasks(list(_expect(op, ReorderPayload).entries))

            case OperationType.ADD_PROJECT:
                await remote.add_project(_expect(op, ProjectPayload).project)
            case OperationType.UPDATE_PROJECT:
                upd = _expect(op, UpdatePayload)
                await remote.update_project(upd.id, upd.updates)
            case OperationType.DELETE_PROJECT:
                await remote.delete_project(_expect(op, DeletePayload).id)
            case OperationType.REORDER_PROJECTS:
                await remote.reorder_projects(list(_expect(op, ReorderPayload).entries))

            case OperationType.ADD_TAG:
                await remote.add_tag(_expect(op, TagPayload).tag)
            case OperationType.UPDATE_TAG:
                upd = _expect(op, UpdatePayload)
                await remote.update_tag(upd.id, upd.updates)
            case OperationType.DELETE_TAG:
                await remote.delete_tag(_expect(op, DeletePayload).id)

            case OperationType.ADD_TASK_TAG:
                link = _expect(op, TaskTagPayload)
                await remote.add_task_tag(link.task_id, link.tag_id)
            case OperationType.REMOVE_TASK_TAG:
                link = _expect(op, TaskTagPayload)
                await remote.remove_task_tag(link.task_id, link.tag_id)

            case OperationType.ADD_PROJECT_TAG:
                plink = _expect(op, ProjectTagPayload)
                await remote.add_project_tag(plink.project_id, plink.tag_id)
            case OperationType.REMOVE_PROJECT_TAG:
                plink = _expect(op, ProjectTagPayload)
                await remote.remove_project_tag(plink.project_id, plink.tag_id)

            case OperationType.ADD_TODAY_TASK:
                slot = _expect(op, TodayTaskPayload)
                await remote.add_today_task(slot.task_id, slot.order)
            case OperationType.REMOVE_TODAY_TASK:
                await remote.remove_today_task(_expect(op, TodayTaskPayload).task_id)
            case OperationType.REORDER_TODAY_TASKS:
                await remote.save_today_tasks(list(_expect(op, TodayListPayload).today_tasks))

            case _:
                assert_never(op.type)

    # ---- remote -> local ----

    def _fetchers(self) -> dict[Collection, Callable[[], Awaitable[list[Any]]]]:
        remote = self._remote
        return {
            Collection.TASKS: remote.get_tasks,
            Collection.PROJECTS: remote.get_projects,
            Collection.TAGS: remote.get_tags,
            Collection.TASK_TAGS: remote.get_task_tags,
            Collection.PROJECT_TAGS: remote.get_project_tags,
            Collection.TODAY: remote.get_today_tasks,
        }

    async def pull_from_remote(self) -> dict[Collection, bool]:
        """
        Fetch every collection concurrently and replace the local copy wholesale.

        Each collection succeeds or fails on its own; failures are logged, never raised.
        Returns collection -> replaced.
        """
        report = {c: False for c in Collection}
        if not await self._online():
            logger.info("Offline; skipping pull from remote")
            return report

        fetchers = self._fetchers()
        logger.info("Pulling %d collections from remote...", len(fetchers))
        results = await asyncio.gather(*(fetch() for fetch in fetchers.values()), return_exceptions=True)

        for collection, fetched in zip(fetchers, results):
            if isinstance(fetched, BaseException):
                logger.error("Failed to fetch %s from remote: %s", collection.value, fetched)
                continue
            try:
                report[collection] = self._local.save(collection, fetched)
            except Exception:
                logger.exception("Failed to save %s to local storage", collection.value)
                continue
            if not report[collection]:
                logger.error("Failed to save %s to local storage", collection.value)

        logger.info(
            "Pull from remote done: %d/%d collections replaced",
            sum(report.values()),
            len(report),
        )
        return report
