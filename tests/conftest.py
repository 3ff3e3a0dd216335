# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdock.storage.events import ChangeBus
from taskdock.storage.local_store import LocalStore
from taskdock.storage.medium import MemoryMedium
from taskdock.sync.connectivity import StaticConnectivity
from taskdock.sync.queue import OperationQueue
from taskdock.sync.worker import SyncWorker

from .fakes import FakeRemoteAdapter


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_context().

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskdock-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        store_db_path=tmp_path / "store.sqlite3",
        storage_type="local",
        remote_sync_enabled=False,
        remote_url="",
        remote_api_key=None,
        remote_timeout_seconds=5.0,
        unwired_collections=[],
        sync_interval_seconds=60.0,
        sync_batch_size=10,
        connectivity_check=False,
    )


@pytest.fixture()
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture()
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture()
def local(medium: MemoryMedium, bus: ChangeBus) -> LocalStore:
    return LocalStore(medium, bus=bus)


@pytest.fixture()
def queue(medium: MemoryMedium) -> OperationQueue:
    # Deterministic, strictly increasing clock so FIFO order is stable.
    ticks = iter(range(1_000, 10_000_000))
    return OperationQueue(medium, clock=lambda: next(ticks))


@pytest.fixture()
def remote() -> FakeRemoteAdapter:
    return FakeRemoteAdapter()


@pytest.fixture()
def connectivity() -> StaticConnectivity:
    return StaticConnectivity(True)


@pytest.fixture()
def worker(
    queue: OperationQueue,
    remote: FakeRemoteAdapter,
    local: LocalStore,
    connectivity: StaticConnectivity,
) -> SyncWorker:
    return SyncWorker(queue, remote, local, connectivity=connectivity, interval_seconds=60.0)
