# src/taskdock/cli/commands.py

from __future__ import annotations

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.context import AppContext
from ..core.models import Task
from ..sync.worker import PassResult

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppContext, list[str]], CommandResult]
CommandHandler3 = Callable[[AppContext, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /sync, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        ctx: AppContext,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(ctx, args, emit)
        else:
            result = cast(CommandHandler2, handler)(ctx, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_pass(result: PassResult | None) -> str:
    if result is None:
        return "Remote sync is disabled (local-only storage)."
    if result.skipped == "busy":
        return "A sync pass is already running."
    if result.skipped == "offline":
        return "Offline. Nothing was sent; queued operations will be retried later."
    return f"Sync pass: {len(result.completed)} synced, {len(result.failed)} failed."


def cmd_help(ctx: AppContext, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(ctx: AppContext, args: list[str]) -> str:
    status = ctx.manager.get_sync_status()
    mode = "REMOTE SYNC" if ctx.manager.enable_remote_sync else "LOCAL ONLY"
    worker = "running" if status.is_running else "stopped"
    if status.is_syncing:
        worker += " (syncing)"
    return (
        "Status:\n"
        f"  Storage: {mode}\n"
        f"  Worker: {worker}\n"
        f"  Queue: {status.pending} pending, {status.failed} failed\n"
        f"  Local write failures: {status.local_write_failures}"
    )


async def cmd_sync(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit and ctx.manager.enable_remote_sync:
        emit("[SYNC] Pushing queued operations...")
    return _format_pass(await ctx.manager.sync_now())


async def cmd_pull(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not ctx.manager.enable_remote_sync:
        return "Remote sync is disabled (local-only storage)."
    if emit:
        emit("[SYNC] Pulling remote state...")
    report = await ctx.manager.pull_from_remote()
    failed = [c.value for c, ok in report.items() if not ok]
    if not failed:
        return f"Pulled {len(report)} collections."
    return f"Pulled {len(report) - len(failed)}/{len(report)} collections. Not replaced: {', '.join(failed)}"


def cmd_retry(ctx: AppContext, args: list[str]) -> str:
    n = ctx.manager.retry_failed()
    return f"Requeued {n} failed operation(s)."


def cmd_clear(ctx: AppContext, args: list[str]) -> str:
    """
    /clear        -> explain
    /clear yes    -> drop every queued operation
    """
    if not args or args[0].lower() not in ("yes", "y", "confirm"):
        return "This drops every queued operation, synced or not. Use /clear yes to confirm."
    ctx.manager.clear_queue()
    return "Sync queue cleared."


def cmd_tasks(ctx: AppContext, args: list[str]) -> str:
    tasks = sorted(ctx.manager.get_tasks(), key=lambda t: (t.order, t.created_at))
    if not tasks:
        return "No tasks."
    lines = [f"Tasks ({len(tasks)}):"]
    for t in tasks:
        mark = "x" if t.completed else " "
        lines.append(f"  [{mark}] {t.id}  {t.title}")
    return "\n".join(lines)


def cmd_add(ctx: AppContext, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    existing = ctx.manager.get_tasks()
    order = max((t.order for t in existing), default=-1) + 1
    task = Task(id=str(uuid.uuid4()), title=title, order=order)
    ctx.manager.add_task(task)
    logger.debug("Task added id=%s", task.id)
    return f"Added task {task.id}."


def cmd_done(ctx: AppContext, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task id or id prefix>"
    prefix = args[0]
    matches = [t for t in ctx.manager.get_tasks() if t.id.startswith(prefix)]
    if not matches:
        return f"No task matches {prefix!r}."
    if len(matches) > 1:
        return f"{len(matches)} tasks match {prefix!r}; use a longer prefix."
    task = matches[0]
    ctx.manager.update_task(task.id, {"completed": True})
    return f"Completed: {task.title}"


def cmd_queue(ctx: AppContext, args: list[str]) -> str:
    ops = ctx.queue.all_operations()
    if not ops:
        return "Sync queue is empty."
    lines = [f"Sync queue ({len(ops)}):"]
    for op in ops:
        lines.append(f"  {op.id}  {op.type.value:<20} {op.status.value:<8} retries={op.retries}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage mode and sync queue state.")
registry.register("sync", cmd_sync, help_text="Push queued operations now.")
registry.register("pull", cmd_pull, help_text="Replace local collections with the remote state.")
registry.register("retry", cmd_retry, help_text="Requeue failed operations that still have retries left.")
registry.register("clear", cmd_clear, help_text="Drop the whole sync queue: /clear yes.")
registry.register("tasks", cmd_tasks, help_text="List tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id prefix>.")
registry.register("queue", cmd_queue, help_text="Show queued sync operations.")
