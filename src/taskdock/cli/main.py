# src/taskdock/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppContext, runs the session bootstrap (push, then pull),
starts the sync worker and then runs the console REPL until /exit.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.bootstrap import create_context
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..core.context import AppContext
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(ctx: AppContext) -> None:
    logger.info("Console started (remote sync=%s).", ctx.manager.enable_remote_sync)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            # input() blocks; keep it off the loop so the sync worker keeps ticking.
            line = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(ctx, line, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Not a command. Use /help to list available commands."
        _print_ts(response)

    logger.info("Console finished.")


async def _shutdown(ctx: AppContext) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await ctx.aclose()
    except Exception:
        logger.exception("Shutdown failed.")


async def _run(settings) -> None:
    ctx = create_context(settings=settings)
    try:
        try:
            await ctx.manager.bootstrap(start_worker=True)
        except Exception:
            # Local data is still usable; the worker retries on its own schedule.
            logger.exception("Sync bootstrap failed; continuing with local data.")
        await run_console_loop(ctx)
    finally:
        await _shutdown(ctx)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        print()
        logger.info("Interrupted, shutting down.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
