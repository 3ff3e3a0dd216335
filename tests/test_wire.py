# tests/test_wire.py

from __future__ import annotations

import pytest

from taskdock.core.models import Project, ProjectTag, Tag, Task, TaskTag, TodayTask
from taskdock.sync.wire import WIRE_FIELDS, from_wire, to_wire, updates_to_wire

FULL_ENTITIES = [
    Task(
        id="t1",
        title="Write report",
        completed=True,
        order=3,
        is_daily=True,
        created_at="2024-05-01T10:00:00.000Z",
        description="quarterly",
        due_date="2024-05-10",
        project_id="p1",
        parent_task_id="t0",
        time_period=25,
        time_left=600,
        last_completed="2024-05-02T08:00:00.000Z",
        completion_history={"2024-05-01": True, "2024-05-02": False},
    ),
    Project(
        id="p1",
        name="Work",
        completed=False,
        order=1,
        created_at="2024-05-01T10:00:00.000Z",
        description="day job",
    ),
    Tag(id="g1", name="urgent", created_at="2024-05-01T10:00:00.000Z", color="#ff0000"),
    TaskTag(task_id="t1", tag_id="g1", created_at="2024-05-01T10:00:00.000Z"),
    ProjectTag(project_id="p1", tag_id="g1", created_at="2024-05-01T10:00:00.000Z"),
    TodayTask(task_id="t1", order=2),
]


@pytest.mark.parametrize("entity", FULL_ENTITIES, ids=lambda e: type(e).__name__)
def test_entity_survives_wire_round_trip(entity) -> None:
    assert from_wire(type(entity), to_wire(entity)) == entity


def test_wire_rows_use_snake_case_columns() -> None:
    row = to_wire(FULL_ENTITIES[0])
    assert row["is_daily"] is True
    assert row["project_id"] == "p1"
    assert row["parent_task_id"] == "t0"
    assert row["completion_history"] == {"2024-05-01": True, "2024-05-02": False}
    assert "isDaily" not in row


def test_local_only_fields_never_go_over_the_wire() -> None:
    task = Task(id="t1", title="x", tags=["g1", "g2"])
    assert "tags" not in to_wire(task)
    assert "tags" not in WIRE_FIELDS[Task]
    assert "tags" not in WIRE_FIELDS[Project]


def test_null_columns_and_unknown_columns_are_ignored() -> None:
    task = from_wire(Task, {"id": "t1", "title": "x", "description": None, "user_id": "u1"})
    assert task == Task(id="t1", title="x", created_at=task.created_at)
    assert task.description is None


def test_updates_are_translated_and_local_only_fields_skipped() -> None:
    body = updates_to_wire(Task, {"is_daily": True, "due_date": None, "tags": ["g1"]})
    assert body == {"is_daily": True, "due_date": None}


def test_updates_reject_unknown_fields() -> None:
    with pytest.raises(ValueError):
        updates_to_wire(Task, {"nope": 1})
