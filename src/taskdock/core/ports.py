# src/taskdock/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the medium, the remote backend and the connectivity check swappable
and makes testing easier.
"""

from typing import Any, Awaitable, Protocol

from .models import Project, ProjectTag, Tag, Task, TaskTag, TodayTask


class KeyValueMedium(Protocol):
    """
    Synchronous durable key-value storage (one key per collection).

    Implementations may raise on failure; LocalStore and OperationQueue catch and log.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class Connectivity(Protocol):
    """Answers "is the network reachable right now?" before a sync pass."""

    def is_online(self) -> Awaitable[bool]: ...


class LocalAdapter(Protocol):
    """Synchronous CRUD surface over on-device storage."""

    def get_tasks(self) -> list[Task]: ...
    def add_task(self, task: Task) -> None: ...
    def update_task(self, task_id: str, updates: dict[str, Any]) -> None: ...
    def delete_task(self, task_id: str) -> None: ...
    def reorder_tasks(self, entries: list[tuple[str, int]]) -> None: ...

    def get_projects(self) -> list[Project]: ...
    def add_project(self, project: Project) -> None: ...
    def update_project(self, project_id: str, updates: dict[str, Any]) -> None: ...
    def delete_project(self, project_id: str) -> None: ...
    def reorder_projects(self, entries: list[tuple[str, int]]) -> None: ...

    def get_tags(self) -> list[Tag]: ...
    def add_tag(self, tag: Tag) -> None: ...
    def update_tag(self, tag_id: str, updates: dict[str, Any]) -> None: ...
    def delete_tag(self, tag_id: str) -> None: ...

    def get_task_tags(self) -> list[TaskTag]: ...
    def add_task_tag(self, task_id: str, tag_id: str) -> bool: ...
    def remove_task_tag(self, task_id: str, tag_id: str) -> None: ...

    def get_project_tags(self) -> list[ProjectTag]: ...
    def add_project_tag(self, project_id: str, tag_id: str) -> bool: ...
    def remove_project_tag(self, project_id: str, tag_id: str) -> None: ...

    def get_today_tasks(self) -> list[TodayTask]: ...
    def save_today_tasks(self, today_tasks: list[TodayTask]) -> None: ...


class RemoteAdapter(Protocol):
    """
    Same surface as LocalAdapter, but every call is a network round trip.

    Failures raise (RemoteStoreError / httpx.HTTPError); the sync worker turns them
    into queue state transitions.
    """

    async def get_tasks(self) -> list[Task]: ...
    async def add_task(self, task: Task) -> None: ...
    async def update_task(self, task_id: str, updates: dict[str, Any]) -> None: ...
    async def delete_task(self, task_id: str) -> None: ...
    async def reorder_tasks(self, entries: list[tuple[str, int]]) -> None: ...

    async def get_projects(self) -> list[Project]: ...
    async def add_project(self, project: Project) -> None: ...
    async def update_project(self, project_id: str, updates: dict[str, Any]) -> None: ...
    async def delete_project(self, project_id: str) -> None: ...
    async def reorder_projects(self, entries: list[tuple[str, int]]) -> None: ...

    async def get_tags(self) -> list[Tag]: ...
    async def add_tag(self, tag: Tag) -> None: ...
    async def update_tag(self, tag_id: str, updates: dict[str, Any]) -> None: ...
    async def delete_tag(self, tag_id: str) -> None: ...

    async def get_task_tags(self) -> list[TaskTag]: ...
    async def add_task_tag(self, task_id: str, tag_id: str) -> None: ...
    async def remove_task_tag(self, task_id: str, tag_id: str) -> None: ...

    async def get_project_tags(self) -> list[ProjectTag]: ...
    async def add_project_tag(self, project_id: str, tag_id: str) -> None: ...
    async def remove_project_tag(self, project_id: str, tag_id: str) -> None: ...

    async def get_today_tasks(self) -> list[TodayTask]: ...
    async def save_today_tasks(self, today_tasks: list[TodayTask]) -> None: ...
    async def add_today_task(self, task_id: str, order: int) -> None: ...
    async def remove_today_task(self, task_id: str) -> None: ...
