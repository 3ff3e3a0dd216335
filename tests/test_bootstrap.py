# tests/test_bootstrap.py

from __future__ import annotations

import pytest

from taskdock.cli.bootstrap import create_context
from taskdock.core.models import Task
from taskdock.storage.events import ChangeBus
from taskdock.storage.medium import MemoryMedium, SqliteMedium
from taskdock.sync.connectivity import StaticConnectivity, TcpConnectivity
from taskdock.sync.operations import OperationType

from .fakes import FakeRemoteAdapter


@pytest.mark.asyncio
async def test_local_only_context_uses_sqlite_in_data_dir(settings) -> None:
    ctx = create_context(settings=settings)
    try:
        assert isinstance(ctx.medium, SqliteMedium)
        assert ctx.medium.db_path == settings.store_db_path
        assert ctx.remote is None
        assert ctx.worker is None
        assert ctx.manager.enable_remote_sync is False
    finally:
        await ctx.aclose()


@pytest.mark.asyncio
async def test_remote_mode_without_credentials_falls_back_to_local(settings) -> None:
    settings.storage_type = "remote"
    settings.remote_sync_enabled = True

    ctx = create_context(settings=settings, medium=MemoryMedium())
    try:
        assert ctx.remote is None
        assert ctx.manager.enable_remote_sync is False
    finally:
        await ctx.aclose()


@pytest.mark.asyncio
async def test_remote_mode_builds_worker_and_enqueues(settings) -> None:
    settings.storage_type = "remote"
    settings.remote_sync_enabled = True
    settings.remote_url = "https://demo.example.co"
    settings.remote_api_key = "anon"
    settings.connectivity_check = True

    ctx = create_context(settings=settings, medium=MemoryMedium())
    try:
        assert ctx.remote is not None
        assert ctx.worker is not None
        assert isinstance(ctx.worker._connectivity, TcpConnectivity)
        assert ctx.worker._connectivity.port == 443

        ctx.manager.add_task(Task(id="t1", title="one"))
        assert [op.type for op in ctx.queue.all_operations()] == [OperationType.ADD_TASK]
    finally:
        await ctx.aclose()


@pytest.mark.asyncio
async def test_injected_remote_and_shared_bus(settings) -> None:
    medium = MemoryMedium()
    bus = ChangeBus()
    remote = FakeRemoteAdapter()

    a = create_context(settings=settings, medium=medium, bus=bus, remote=remote)
    b = create_context(settings=settings, medium=medium, bus=bus)
    try:
        assert isinstance(a.worker._connectivity, StaticConnectivity)
        assert b.manager.get_tasks() == []

        a.manager.add_task(Task(id="t1", title="shared"))
        assert [t.id for t in b.manager.get_tasks()] == ["t1"]

        await a.manager.sync_now()
        assert remote.methods() == ["add_task"]
    finally:
        await a.aclose()
        await b.aclose()
