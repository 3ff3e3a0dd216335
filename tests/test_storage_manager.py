# tests/test_storage_manager.py

from __future__ import annotations

import pytest

from taskdock.core.models import Collection, Project, Tag, Task, TodayTask
from taskdock.storage.events import ChangeBus
from taskdock.storage.local_store import LocalStore
from taskdock.storage.medium import MemoryMedium
from taskdock.sync.manager import StorageManager
from taskdock.sync.operations import OperationType
from taskdock.sync.queue import OperationQueue
from taskdock.sync.worker import SyncWorker

from .fakes import FailingMedium, FakeRemoteAdapter


@pytest.fixture()
def manager(local: LocalStore, queue: OperationQueue, worker: SyncWorker) -> StorageManager:
    return StorageManager(local, queue, worker, enable_remote_sync=True)


def _types(queue: OperationQueue) -> list[OperationType]:
    return [op.type for op in queue.all_operations()]


def test_mutations_apply_locally_and_enqueue(manager: StorageManager, queue: OperationQueue) -> None:
    manager.add_task(Task(id="t1", title="one"))
    manager.update_task("t1", {"completed": True})
    manager.add_project(Project(id="p1", name="P"))
    manager.add_tag(Tag(id="g1", name="G"))
    manager.add_task_tag("t1", "g1")
    manager.add_project_tag("p1", "g1")
    manager.reorder_tasks([Task(id="t1", title="one", order=5)])
    manager.delete_project("p1")

    (task,) = manager.get_tasks()
    assert task.completed is True
    assert task.order == 5
    assert manager.get_projects() == []
    assert _types(queue) == [
        OperationType.ADD_TASK,
        OperationType.UPDATE_TASK,
        OperationType.ADD_PROJECT,
        OperationType.ADD_TAG,
        OperationType.ADD_TASK_TAG,
        OperationType.ADD_PROJECT_TAG,
        OperationType.REORDER_TASKS,
        OperationType.DELETE_PROJECT,
    ]


def test_duplicate_link_is_not_enqueued_twice(manager: StorageManager, queue: OperationQueue) -> None:
    manager.add_task_tag("t1", "g1")
    manager.add_task_tag("t1", "g1")
    assert _types(queue) == [OperationType.ADD_TASK_TAG]
    assert len(manager.get_task_tags()) == 1


def test_enqueued_payload_is_a_snapshot(manager: StorageManager, queue: OperationQueue) -> None:
    task = Task(id="t1", title="before")
    manager.add_task(task)
    task.title = "after"

    (op,) = queue.all_operations()
    assert op.payload.task.title == "before"


def test_today_list_add_remove(manager: StorageManager, queue: OperationQueue) -> None:
    manager.add_today_task("t1")
    manager.add_today_task("t2")
    manager.add_today_task("t1")  # already there
    manager.remove_today_task("missing")
    manager.remove_today_task("t1")
    manager.save_today_tasks([TodayTask(task_id="t2", order=0), TodayTask(task_id="t3", order=1)])

    assert [(s.task_id, s.order) for s in manager.get_today_tasks()] == [("t2", 0), ("t3", 1)]
    assert _types(queue) == [
        OperationType.ADD_TODAY_TASK,
        OperationType.ADD_TODAY_TASK,
        OperationType.REMOVE_TODAY_TASK,
        OperationType.REORDER_TODAY_TASKS,
    ]
    assert queue.all_operations()[1].payload.order == 1


def test_local_only_mode_never_enqueues(local: LocalStore, queue: OperationQueue) -> None:
    manager = StorageManager(local, queue)
    manager.add_task(Task(id="t1", title="one"))
    manager.delete_task("t1")

    assert len(queue) == 0
    status = manager.get_sync_status()
    assert (status.pending, status.failed, status.is_running, status.is_syncing) == (0, 0, False, False)


def test_invalid_update_is_rejected_before_anything_changes(
    manager: StorageManager, queue: OperationQueue
) -> None:
    manager.add_task(Task(id="t1", title="one"))
    with pytest.raises(ValueError):
        manager.update_task("t1", {"nope": 1})
    assert _types(queue) == [OperationType.ADD_TASK]


def test_local_write_failure_never_reaches_caller() -> None:
    medium = FailingMedium()
    local = LocalStore(medium)
    manager = StorageManager(local, OperationQueue(medium))

    manager.add_task(Task(id="t1", title="one"))  # must not raise

    assert manager.get_sync_status().local_write_failures >= 1


def test_two_managers_sharing_a_medium_see_each_other() -> None:
    medium = MemoryMedium()
    bus = ChangeBus()
    a = StorageManager(LocalStore(medium, bus=bus), OperationQueue(medium))
    b = StorageManager(LocalStore(medium, bus=bus), OperationQueue(medium))
    assert b.get_tasks() == []

    seen: list[Collection] = []
    b.on_collection_changed(seen.append)

    a.add_task(Task(id="t1", title="from a"))
    b.update_task("t1", {"title": "edited in b"})

    assert [t.title for t in b.get_tasks()] == ["edited in b"]
    assert [t.title for t in a.get_tasks()] == ["edited in b"]
    assert seen == [Collection.TASKS]


@pytest.mark.asyncio
async def test_two_syncing_managers_sharing_a_medium_queue_both_mutations() -> None:
    medium = MemoryMedium()
    bus = ChangeBus()
    remote = FakeRemoteAdapter()

    def build() -> StorageManager:
        local = LocalStore(medium, bus=bus)
        queue = OperationQueue(medium)
        return StorageManager(local, queue, SyncWorker(queue, remote, local), enable_remote_sync=True)

    a, b = build(), build()
    a.add_task(Task(id="t-a", title="from a"))
    b.add_task(Task(id="t-b", title="from b"))

    queued = OperationQueue(medium).all_operations()
    assert [op.payload.task.id for op in queued] == ["t-a", "t-b"]
    assert a.get_sync_status().pending == 2

    result = await a.sync_now()
    assert result is not None
    assert len(result.completed) == 2
    assert [c.args[0] for c in remote.calls] == ["t-a", "t-b"]
    assert b.get_sync_status().pending == 0


@pytest.mark.asyncio
async def test_bootstrap_pushes_before_pulling(
    manager: StorageManager, remote: FakeRemoteAdapter, worker: SyncWorker
) -> None:
    manager.add_task(Task(id="offline", title="made offline"))
    remote.remote_data["tasks"] = [Task(id="offline", title="made offline"), Task(id="t2", title="server")]

    await manager.bootstrap(start_worker=False)

    methods = remote.methods()
    assert methods[0] == "add_task"
    assert set(methods[1:]) == {
        "get_tasks",
        "get_projects",
        "get_tags",
        "get_task_tags",
        "get_project_tags",
        "get_today_tasks",
    }
    assert sorted(t.id for t in manager.get_tasks()) == ["offline", "t2"]
    assert manager.get_sync_status().pending == 0
    assert not worker.is_running


@pytest.mark.asyncio
async def test_bootstrap_is_a_noop_when_local_only(local: LocalStore, queue: OperationQueue) -> None:
    manager = StorageManager(local, queue)
    await manager.bootstrap()
    assert await manager.sync_now() is None
    assert not any((await manager.pull_from_remote()).values())


@pytest.mark.asyncio
async def test_status_retry_and_clear(
    manager: StorageManager, queue: OperationQueue, remote: FakeRemoteAdapter
) -> None:
    manager.add_task(Task(id="t1", title="one"))
    manager.delete_task("t2")
    remote.fail.add("add_task")

    await manager.sync_now()

    status = manager.get_sync_status()
    assert (status.pending, status.failed) == (0, 1)

    assert manager.retry_failed() == 1
    assert manager.get_sync_status().pending == 1

    manager.clear_queue()
    assert manager.get_sync_status().pending == 0
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_aclose_stops_worker_and_detaches_from_bus(
    manager: StorageManager, worker: SyncWorker, bus: ChangeBus
) -> None:
    manager.start_sync()
    assert worker.is_running
    subscribers = bus.subscriber_count

    await manager.aclose()

    assert not worker.is_running
    assert bus.subscriber_count == subscribers - 1
