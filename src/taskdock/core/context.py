# src/taskdock/core/context.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..storage.events import ChangeBus
from ..storage.local_store import LocalStore
from ..sync.manager import StorageManager
from ..sync.queue import OperationQueue
from ..sync.remote_store import RemoteStore
from ..sync.worker import SyncWorker
from .ports import KeyValueMedium

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    """
    Application-scoped object graph.

    Built once per process by cli.bootstrap.create_context() and passed explicitly to
    whoever needs it. Two contexts over the same medium and bus behave like two
    browser tabs of the same app.
    """

    settings: Any
    medium: KeyValueMedium
    bus: ChangeBus
    local: LocalStore
    queue: OperationQueue
    manager: StorageManager
    remote: RemoteStore | None = None
    worker: SyncWorker | None = None

    async def aclose(self) -> None:
        """Best-effort shutdown (no exceptions should escape)."""
        try:
            await self.manager.aclose()
        except Exception:
            logger.exception("Failed to close storage manager.")

        if self.remote is not None:
            try:
                await self.remote.aclose()
            except Exception:
                logger.debug("Remote store close failed.", exc_info=True)
