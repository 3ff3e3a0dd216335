# src/taskdock/sync/operations.py

from __future__ import annotations

"""
Queued mutations.

OperationType is a closed set. Each type has exactly one payload class
(see PAYLOAD_TYPES). The worker dispatches on the type and relies on the payload
class matching it.
"""

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.models import Project, Tag, Task, TodayTask


class OperationType(StrEnum):
    ADD_TASK = "ADD_TASK"
    UPDATE_TASK = "UPDATE_TASK"
    DELETE_TASK = "DELETE_TASK"
    REORDER_TASKS = "REORDER_TASKS"

    ADD_PROJECT = "ADD_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    REORDER_PROJECTS = "REORDER_PROJECTS"

    ADD_TAG = "ADD_TAG"
    UPDATE_TAG = "UPDATE_TAG"
    DELETE_TAG = "DELETE_TAG"

    ADD_TASK_TAG = "ADD_TASK_TAG"
    REMOVE_TASK_TAG = "REMOVE_TASK_TAG"

    ADD_PROJECT_TAG = "ADD_PROJECT_TAG"
    REMOVE_PROJECT_TAG = "REMOVE_PROJECT_TAG"

    ADD_TODAY_TASK = "ADD_TODAY_TASK"
    REMOVE_TODAY_TASK = "REMOVE_TODAY_TASK"
    REORDER_TODAY_TASKS = "REORDER_TODAY_TASKS"


class OperationStatus(StrEnum):
    PENDING = "pending"
    FAILED = "failed"


# ---- payloads ----


@dataclass(slots=True, frozen=True)
class TaskPayload:
    task: Task

    def to_json(self) -> dict[str, Any]:
        return self.task.to_record()

    @classmethod
    def from_json(cls, raw: Any) -> TaskPayload:
        return cls(task=Task.from_record(raw))


@dataclass(slots=True, frozen=True)
class ProjectPayload:
    project: Project

    def to_json(self) -> dict[str, Any]:
        return self.project.to_record()

    @classmethod
    def from_json(cls, raw: Any) -> ProjectPayload:
        return cls(project=Project.from_record(raw))


@dataclass(slots=True, frozen=True)
class TagPayload:
    tag: Tag

    def to_json(self) -> dict[str, Any]:
        return self.tag.to_record()

    @classmethod
    def from_json(cls, raw: Any) -> TagPayload:
        return cls(tag=Tag.from_record(raw))


@dataclass(slots=True, frozen=True)
class UpdatePayload:
    """Partial update. `updates` is keyed by entity attribute names."""

    id: str
    updates: dict[str, Any]

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "updates": dict(self.updates)}

    @classmethod
    def from_json(cls, raw: Any) -> UpdatePayload:
        if not isinstance(raw, dict) or not isinstance(raw.get("updates"), dict):
            raise ValueError(f"Invalid update payload: {raw!r}")
        return cls(id=_require_str(raw, "id"), updates=dict(raw["updates"]))


@dataclass(slots=True, frozen=True)
class DeletePayload:
    id: str

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id}

    @classmethod
    def from_json(cls, raw: Any) -> DeletePayload:
        return cls(id=_require_str(raw, "id"))


@dataclass(slots=True, frozen=True)
class ReorderPayload:
    entries: tuple[tuple[str, int], ...]

    def to_json(self) -> list[dict[str, Any]]:
        return [{"id": item_id, "order": order} for item_id, order in self.entries]

    @classmethod
    def from_json(cls, raw: Any) -> ReorderPayload:
        if not isinstance(raw, list):
            raise ValueError(f"Invalid reorder payload: {raw!r}")
        return cls(entries=tuple((_require_str(e, "id"), int(e.get("order", 0))) for e in raw))


@dataclass(slots=True, frozen=True)
class TaskTagPayload:
    task_id: str
    tag_id: str

    def to_json(self) -> dict[str, Any]:
        return {"taskId": self.task_id, "tagId": self.tag_id}

    @classmethod
    def from_json(cls, raw: Any) -> TaskTagPayload:
        return cls(task_id=_require_str(raw, "taskId"), tag_id=_require_str(raw, "tagId"))


@dataclass(slots=True, frozen=True)
class ProjectTagPayload:
    project_id: str
    tag_id: str

    def to_json(self) -> dict[str, Any]:
        return {"projectId": self.project_id, "tagId": self.tag_id}

    @classmethod
    def from_json(cls, raw: Any) -> ProjectTagPayload:
        return cls(project_id=_require_str(raw, "projectId"), tag_id=_require_str(raw, "tagId"))


@dataclass(slots=True, frozen=True)
class TodayTaskPayload:
    task_id: str
    order: int = 0

    def to_json(self) -> dict[str, Any]:
        return {"taskId": self.task_id, "order": self.order}

    @classmethod
    def from_json(cls, raw: Any) -> TodayTaskPayload:
        return cls(task_id=_require_str(raw, "taskId"), order=int(raw.get("order", 0)))


@dataclass(slots=True, frozen=True)
class TodayListPayload:
    today_tasks: tuple[TodayTask, ...]

    def to_json(self) -> list[dict[str, Any]]:
        return [tt.to_record() for tt in self.today_tasks]

    @classmethod
    def from_json(cls, raw: Any) -> TodayListPayload:
        if not isinstance(raw, list):
            raise ValueError(f"Invalid today list payload: {raw!r}")
        return cls(today_tasks=tuple(TodayTask.from_record(r) for r in raw))


Payload = (
    TaskPayload
    | ProjectPayload
    | TagPayload
    | UpdatePayload
    | DeletePayload
    | ReorderPayload
    | TaskTagPayload
    | ProjectTagPayload
    | TodayTaskPayload
    | TodayListPayload
)

PAYLOAD_TYPES: dict[OperationType, type] = {
    OperationType.ADD_TASK: TaskPayload,
    OperationType.UPDATE_TASK: UpdatePayload,
    OperationType.DELETE_TASK: DeletePayload,
    OperationType.REORDER_TASKS: ReorderPayload,
    OperationType.ADD_PROJECT: ProjectPayload,
    OperationType.UPDATE_PROJECT: UpdatePayload,
    OperationType.DELETE_PROJECT: DeletePayload,
    OperationType.REORDER_PROJECTS: ReorderPayload,
    OperationType.ADD_TAG: TagPayload,
    OperationType.UPDATE_TAG: UpdatePayload,
    OperationType.DELETE_TAG: DeletePayload,
    OperationType.ADD_TASK_TAG: TaskTagPayload,
    OperationType.REMOVE_TASK_TAG: TaskTagPayload,
    OperationType.ADD_PROJECT_TAG: ProjectTagPayload,
    OperationType.REMOVE_PROJECT_TAG: ProjectTagPayload,
    OperationType.ADD_TODAY_TASK: TodayTaskPayload,
    OperationType.REMOVE_TODAY_TASK: TodayTaskPayload,
    OperationType.REORDER_TODAY_TASKS: TodayListPayload,
}


def _require_str(raw: Any, key: str) -> str:
    if not isinstance(raw, dict):
        raise ValueError(f"Expected an object with {key!r}, got {raw!r}")
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Missing {key!r} in payload {raw!r}")
    return value


def check_payload(op_type: OperationType, payload: Payload) -> None:
    expected = PAYLOAD_TYPES[op_type]
    if not isinstance(payload, expected):
        raise ValueError(f"{op_type.value} expects {expected.__name__}, got {type(payload).__name__}")


def new_operation_id(now_ms: int) -> str:
    return f"{now_ms}-{uuid.uuid4().hex[:9]}"


@dataclass(slots=True)
class QueuedOperation:
    id: str
    type: OperationType
    payload: Payload
    timestamp: int  # ms since epoch, enqueue time
    retries: int = 0
    status: OperationStatus = field(default=OperationStatus.PENDING)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "payload": self.payload.to_json(),
            "timestamp": self.timestamp,
            "retries": self.retries,
            "status": self.status.value,
        }

    @classmethod
    def from_json(cls, raw: Any) -> QueuedOperation:
        if not isinstance(raw, dict):
            raise ValueError(f"Queued operation must be an object, got {raw!r}")
        op_type = OperationType(raw.get("type"))
        payload_cls = PAYLOAD_TYPES[op_type]
        status_raw = raw.get("status") or OperationStatus.PENDING.value
        # Older clients persisted a transient "processing" state; it replays as pending.
        status = OperationStatus.FAILED if status_raw == "failed" else OperationStatus.PENDING
        return cls(
            id=_require_str(raw, "id"),
            type=op_type,
            payload=payload_cls.from_json(raw.get("payload")),
            timestamp=int(raw.get("timestamp") or 0),
            retries=int(raw.get("retries") or 0),
            status=status,
        )
