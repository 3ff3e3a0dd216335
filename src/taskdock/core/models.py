# src/taskdock/core/models.py

from __future__ import annotations

"""
Entities stored on-device and mirrored remotely.

Attribute names are snake_case. The persisted record form (what LocalStore writes
into the medium) uses camelCase keys, so records written by older clients stay
readable.
"""

import copy
import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, ClassVar, Self

_CAMEL_BOUNDARY = re.compile(r"[A-Z]")


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(lambda m: "_" + m.group(0).lower(), name)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Collection(StrEnum):
    """Entity collections. The value is the fixed key in the on-device medium."""

    TASKS = "tasks"
    PROJECTS = "projects"
    TAGS = "tags"
    TASK_TAGS = "task_tags"
    PROJECT_TAGS = "project_tags"
    TODAY = "today"


class RecordMixin:
    """camelCase record conversion shared by every entity dataclass."""

    __slots__ = ()

    # Fields that live only on-device and are never sent over the wire.
    LOCAL_ONLY: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))  # type: ignore[arg-type]

    def to_record(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            out[snake_to_camel(f.name)] = copy.deepcopy(value)
        return out

    @classmethod
    def from_record(cls, raw: dict[str, Any]) -> Self:
        if not isinstance(raw, dict):
            raise ValueError(f"{cls.__name__} record must be an object, got {type(raw).__name__}")
        kwargs: dict[str, Any] = {}
        for name in cls.field_names():
            key = snake_to_camel(name)
            if key in raw:
                kwargs[name] = copy.deepcopy(raw[key])
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ValueError(f"Invalid {cls.__name__} record: {e}") from e

    def with_updates(self, updates: dict[str, Any]) -> Self:
        """Return a copy with `updates` applied. `id` is immutable."""
        check_updates(type(self), updates)
        data = {name: getattr(self, name) for name in self.field_names()}
        data.update(copy.deepcopy(updates))
        return type(self)(**data)


def check_updates(cls: type[RecordMixin], updates: dict[str, Any]) -> None:
    known = set(cls.field_names())
    unknown = [k for k in updates if k not in known]
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} fields: {', '.join(sorted(unknown))}")
    if "id" in updates:
        raise ValueError(f"{cls.__name__}.id is immutable")


@dataclass(slots=True)
class Task(RecordMixin):
    LOCAL_ONLY: ClassVar[frozenset[str]] = frozenset({"tags"})

    id: str
    title: str
    completed: bool = False
    order: int = 0
    is_daily: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    description: str | None = None
    due_date: str | None = None
    project_id: str | None = None
    parent_task_id: str | None = None
    time_period: int | None = None  # minutes
    time_left: int | None = None  # seconds left in focus mode
    last_completed: str | None = None
    completion_history: dict[str, bool] | None = None  # YYYY-MM-DD -> done
    tags: list[str] | None = None


@dataclass(slots=True)
class Project(RecordMixin):
    LOCAL_ONLY: ClassVar[frozenset[str]] = frozenset({"tags"})

    id: str
    name: str
    completed: bool = False
    order: int = 0
    created_at: str = field(default_factory=utc_now_iso)
    description: str | None = None
    tags: list[str] | None = None


@dataclass(slots=True)
class Tag(RecordMixin):
    id: str
    name: str
    created_at: str = field(default_factory=utc_now_iso)
    color: str | None = None


@dataclass(slots=True)
class TaskTag(RecordMixin):
    task_id: str
    tag_id: str
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class ProjectTag(RecordMixin):
    project_id: str
    tag_id: str
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class TodayTask(RecordMixin):
    task_id: str
    order: int = 0


Entity = Task | Project | Tag | TaskTag | ProjectTag | TodayTask

ENTITY_TYPES: dict[Collection, type[RecordMixin]] = {
    Collection.TASKS: Task,
    Collection.PROJECTS: Project,
    Collection.TAGS: Tag,
    Collection.TASK_TAGS: TaskTag,
    Collection.PROJECT_TAGS: ProjectTag,
    Collection.TODAY: TodayTask,
}


def entity_key(item: Any) -> Any:
    """Identity of an entity inside its collection."""
    if isinstance(item, TaskTag):
        return (item.task_id, item.tag_id)
    if isinstance(item, ProjectTag):
        return (item.project_id, item.tag_id)
    if isinstance(item, TodayTask):
        return item.task_id
    return item.id
