# src/taskdock/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppContext (medium/local store/queue/remote/worker).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.context import AppContext
from ..core.ports import Connectivity, KeyValueMedium
from ..errors import ConfigError
from ..storage.events import ChangeBus
from ..storage.local_store import LocalStore
from ..storage.medium import SqliteMedium
from ..sync.connectivity import StaticConnectivity, TcpConnectivity
from ..sync.manager import StorageManager
from ..sync.queue import OperationQueue
from ..sync.remote_store import RemoteStore
from ..sync.worker import SyncWorker

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_remote(settings) -> RemoteStore | None:
    if not settings.remote_sync_enabled:
        return None
    try:
        return RemoteStore(
            settings.remote_url,
            settings.remote_api_key or "",
            timeout=settings.remote_timeout_seconds,
            unwired=settings.unwired_collections,
        )
    except (ConfigError, ValueError) as e:
        # Fallback: keep the app usable offline instead of refusing to start.
        logger.warning("Remote storage disabled: %s", e)
        return None


def _build_connectivity(settings) -> Connectivity:
    if settings.connectivity_check:
        try:
            return TcpConnectivity.for_url(settings.remote_url)
        except ValueError:
            logger.warning("Cannot probe %r; assuming online", settings.remote_url)
    return StaticConnectivity(True)


def create_context(
    *,
    settings=None,
    medium: KeyValueMedium | None = None,
    bus: ChangeBus | None = None,
    remote: RemoteStore | None = None,
) -> AppContext:
    """
    Create AppContext from the provided settings.

    Keeping settings (and the medium/bus) injectable makes the app easier to test and
    lets two contexts share one medium. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if medium is None:
        _ensure_local_dirs(settings)
        medium = SqliteMedium(settings.store_db_path)
    if bus is None:
        bus = ChangeBus()

    local = LocalStore(medium, bus=bus)
    queue = OperationQueue(medium)

    if remote is None:
        remote = _build_remote(settings)

    worker: SyncWorker | None = None
    if remote is not None:
        worker = SyncWorker(
            queue,
            remote,
            local,
            connectivity=_build_connectivity(settings),
            interval_seconds=settings.sync_interval_seconds,
            batch_size=settings.sync_batch_size,
        )

    manager = StorageManager(local, queue, worker, enable_remote_sync=worker is not None)
    logger.info(
        "Storage ready: %s (queue: %d pending, %d failed)",
        "remote sync" if manager.enable_remote_sync else "local-only",
        queue.pending_count(),
        queue.failed_count(),
    )

    return AppContext(
        settings=settings,
        medium=medium,
        bus=bus,
        local=local,
        queue=queue,
        manager=manager,
        remote=remote,
        worker=worker,
    )
