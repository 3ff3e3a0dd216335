# src/taskdock/storage/events.py

"""
Change notifications between instances that share one medium.

Every LocalStore write publishes a StorageChange. Other instances subscribed to the
same bus pass the changed collection on to their listeners. Handlers run
synchronously, in subscription order, on the publisher's call stack.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StorageChange:
    key: str
    new_value: str | None
    origin: str


ChangeHandler = Callable[[StorageChange], None]


class ChangeBus:
    """In-process publish/subscribe channel for medium changes."""

    def __init__(self) -> None:
        self._subscribers: list[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """Register a handler. Returns a callable that unsubscribes it."""
        self._subscribers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return _unsubscribe

    def publish(self, change: StorageChange) -> None:
        for handler in list(self._subscribers):
            try:
                handler(change)
            except Exception:
                logger.exception("Change handler failed key=%s origin=%s", change.key, change.origin)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
