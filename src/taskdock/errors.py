# src/taskdock/errors.py

from __future__ import annotations


class TaskdockError(Exception):
    """Base class for errors raised by taskdock."""


class ConfigError(TaskdockError):
    """Required configuration is missing or invalid."""


class RemoteStoreError(TaskdockError):
    """The remote store answered with a non-success HTTP status."""

    def __init__(self, status: int, body: str, *, method: str = "", url: str = "") -> None:
        self.status = int(status)
        self.body = body
        self.method = method
        self.url = url
        where = f" {method} {url}" if method or url else ""
        super().__init__(f"API error ({self.status}){where}: {body}")


class ReorderError(TaskdockError):
    """Some of the per-record updates of a bulk reorder failed."""

    def __init__(self, table: str, failed_ids: list[str], total: int) -> None:
        self.table = table
        self.failed_ids = list(failed_ids)
        self.total = int(total)
        super().__init__(f"Failed to reorder {len(self.failed_ids)} of {self.total} {table}")
