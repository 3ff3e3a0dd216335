# tests/test_commands.py

from __future__ import annotations

import pytest

from taskdock.cli.bootstrap import create_context
from taskdock.cli.commands import CommandRegistry, registry
from taskdock.core.context import AppContext
from taskdock.storage.medium import MemoryMedium
from taskdock.sync.operations import OperationType, TaskTagPayload


@pytest.fixture()
def ctx(settings) -> AppContext:
    return create_context(settings=settings, medium=MemoryMedium())


@pytest.mark.asyncio
async def test_command_registry_routes_sync_async_and_emit_handlers(ctx: AppContext) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(ctx, args):
        called["h2"] += 1
        return "h2 " + " ".join(args)

    async def h3(ctx, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(ctx, "/a x y") == "h2 x y"
    assert await reg.handle(ctx, "/AA") == "h2 "
    assert await reg.handle(ctx, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(ctx: AppContext) -> None:
    reg = CommandRegistry()
    assert await reg.handle(ctx, "hello") is None
    assert "Unknown command" in (await reg.handle(ctx, "/nope") or "")
    assert "Empty command" in (await reg.handle(ctx, "/") or "")


@pytest.mark.asyncio
async def test_add_done_and_list_tasks(ctx: AppContext) -> None:
    reply = await registry.handle(ctx, "/add buy milk")
    assert reply and reply.startswith("Added task")
    (task,) = ctx.manager.get_tasks()

    assert await registry.handle(ctx, "/done " + task.id[:8]) == "Completed: buy milk"
    assert ctx.manager.get_tasks()[0].completed is True

    listing = await registry.handle(ctx, "/tasks") or ""
    assert "[x]" in listing
    assert "buy milk" in listing


@pytest.mark.asyncio
async def test_sync_commands_in_local_only_mode(ctx: AppContext) -> None:
    assert "local-only" in (await registry.handle(ctx, "/sync") or "")
    assert "local-only" in (await registry.handle(ctx, "/pull") or "")
    status = await registry.handle(ctx, "/status") or ""
    assert "LOCAL ONLY" in status
    assert "0 pending" in status


@pytest.mark.asyncio
async def test_queue_retry_and_clear_commands(ctx: AppContext) -> None:
    assert await registry.handle(ctx, "/queue") == "Sync queue is empty."

    op = ctx.queue.enqueue(OperationType.ADD_TASK_TAG, TaskTagPayload(task_id="t1", tag_id="g1"))
    ctx.queue.mark_failed(op.id)

    listing = await registry.handle(ctx, "/queue") or ""
    assert op.id in listing
    assert "failed" in listing

    assert await registry.handle(ctx, "/retry") == "Requeued 1 failed operation(s)."
    assert "confirm" in (await registry.handle(ctx, "/clear") or "")
    assert len(ctx.queue) == 1
    assert await registry.handle(ctx, "/clear yes") == "Sync queue cleared."
    assert len(ctx.queue) == 0


def test_help_lists_registered_commands() -> None:
    text = registry.build_help()
    for name in ("help", "status", "sync", "pull", "retry", "clear", "tasks", "add", "done", "queue"):
        assert f"/{name} " in text
