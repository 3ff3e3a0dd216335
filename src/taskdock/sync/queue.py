# src/taskdock/sync/queue.py

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from ..core.ports import KeyValueMedium
from .operations import (
    OperationStatus,
    OperationType,
    Payload,
    QueuedOperation,
    check_payload,
    new_operation_id,
)

logger = logging.getLogger(__name__)

QUEUE_KEY = "sync_queue"
MAX_RETRIES = 3


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class OperationQueue:
    """
    Durable FIFO backlog of mutations waiting for remote confirmation.

    The whole queue is one JSON array under QUEUE_KEY in the medium. Every call
    re-reads that array before looking at or changing it, and every change rewrites
    it, so several instances over one medium all work on the same queue.

    If the last write failed, the in-memory list is newer than the medium and is kept
    until a later write succeeds.

    There is no "processing" state: operations handed out by next_batch stay pending
    until mark_complete / mark_failed, so a crash mid-batch replays them.
    No internal locking; the sync worker's pass guard is the only serialization.
    """

    def __init__(
        self,
        medium: KeyValueMedium,
        *,
        clock: Callable[[], int] = _now_ms,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self._medium = medium
        self._clock = clock
        self.max_retries = int(max_retries)
        self._ops: list[QueuedOperation] = []
        self._unsaved = False
        self.persist_failures = 0
        self._reload()
        logger.info(
            "Sync queue loaded: %d operations (%d pending, %d failed)",
            len(self._ops),
            self._count(OperationStatus.PENDING),
            self._count(OperationStatus.FAILED),
        )

    # ---- persistence ----

    def _reload(self) -> None:
        if self._unsaved:
            return
        try:
            raw = self._medium.get(QUEUE_KEY)
        except Exception:
            logger.exception("Failed to read sync queue; using the last loaded copy")
            return
        if not raw:
            self._ops = []
            return

        try:
            data = json.loads(raw)
        except ValueError:
            logger.exception("Sync queue is not valid JSON; using the last loaded copy")
            return

        ops: list[QueuedOperation] = []
        for rec in data if isinstance(data, list) else []:
            try:
                ops.append(QueuedOperation.from_json(rec))
            except (ValueError, TypeError):
                logger.error("Dropping corrupt queued operation: %r", rec)
        self._ops = ops

    def _persist(self) -> None:
        try:
            self._medium.set(QUEUE_KEY, json.dumps([op.to_json() for op in self._ops], ensure_ascii=False))
        except Exception:
            self._unsaved = True
            self.persist_failures += 1
            logger.exception("Failed to persist sync queue (%d operations)", len(self._ops))
        else:
            self._unsaved = False

    def _find(self, operation_id: str) -> QueuedOperation | None:
        for op in self._ops:
            if op.id == operation_id:
                return op
        return None

    def _count(self, status: OperationStatus) -> int:
        return sum(1 for op in self._ops if op.status == status)

    # ---- public API ----

    def enqueue(self, op_type: OperationType, payload: Payload) -> QueuedOperation:
        check_payload(op_type, payload)
        now = int(self._clock())
        op = QueuedOperation(
            id=new_operation_id(now),
            type=op_type,
            payload=payload,
            timestamp=now,
        )
        self._reload()
        self._ops.append(op)
        self._persist()
        logger.debug("Enqueued %s id=%s", op_type.value, op.id)
        return op

    def next_batch(self, batch_size: int = 10) -> list[QueuedOperation]:
        """Up to batch_size pending operations, oldest first. Does not change status."""
        if batch_size <= 0:
            return []
        self._reload()
        pending = [op for op in self._ops if op.status == OperationStatus.PENDING]
        pending.sort(key=lambda op: op.timestamp)
        return pending[:batch_size]

    def mark_complete(self, operation_id: str) -> None:
        self._reload()
        before = len(self._ops)
        self._ops = [op for op in self._ops if op.id != operation_id]
        if len(self._ops) != before:
            self._persist()

    def mark_failed(self, operation_id: str) -> None:
        self._reload()
        op = self._find(operation_id)
        if op is None:
            return
        op.status = OperationStatus.FAILED
        op.retries += 1
        self._persist()
        if op.retries >= self.max_retries:
            logger.warning(
                "Operation %s id=%s exhausted its retry budget (%d); kept as failed",
                op.type.value,
                op.id,
                op.retries,
            )

    def retry_failed(self) -> int:
        """Reset failed operations still under the retry budget. Returns how many."""
        self._reload()
        reset = 0
        for op in self._ops:
            if op.status == OperationStatus.FAILED and op.retries < self.max_retries:
                op.status = OperationStatus.PENDING
                reset += 1
        if reset:
            self._persist()
        return reset

    def pending_count(self) -> int:
        self._reload()
        return self._count(OperationStatus.PENDING)

    def failed_count(self) -> int:
        self._reload()
        return self._count(OperationStatus.FAILED)

    def all_operations(self) -> list[QueuedOperation]:
        self._reload()
        return list(self._ops)

    def clear(self) -> None:
        self._reload()
        dropped = len(self._ops)
        self._ops = []
        self._persist()
        logger.warning("Sync queue cleared (%d operations dropped)", dropped)

    def __len__(self) -> int:
        self._reload()
        return len(self._ops)
