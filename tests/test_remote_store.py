# tests/test_remote_store.py

from __future__ import annotations

import json

import httpx
import pytest

from taskdock.core.models import Collection, Task, TodayTask
from taskdock.errors import ConfigError, RemoteStoreError, ReorderError
from taskdock.sync.remote_store import RemoteStore

BASE_URL = "https://demo.example.co"
API_KEY = "anon-key"


class Recorder:
    """MockTransport handler that records requests and answers from a routing function."""

    def __init__(self, respond=None) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond or (lambda req: httpx.Response(200, json=[]))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)


def _store(recorder: Recorder, **kw) -> RemoteStore:
    return RemoteStore(BASE_URL, API_KEY, transport=httpx.MockTransport(recorder), **kw)


def test_missing_configuration_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        RemoteStore("", API_KEY)
    with pytest.raises(ConfigError):
        RemoteStore(BASE_URL, "")


@pytest.mark.asyncio
async def test_every_request_carries_static_auth_headers() -> None:
    rec = Recorder()
    store = _store(rec)
    try:
        await store.get_tasks()
        await store.delete_tag("g1")
    finally:
        await store.aclose()

    assert len(rec.requests) == 2
    for req in rec.requests:
        assert req.headers["apikey"] == API_KEY
        assert req.headers["Authorization"] == f"Bearer {API_KEY}"


@pytest.mark.asyncio
async def test_list_translates_wire_rows_to_entities() -> None:
    rows = [
        {"id": "t1", "title": "one", "is_daily": True, "project_id": "p1", "order": 2,
         "created_at": "2024-01-01T00:00:00Z", "description": None},
    ]
    rec = Recorder(lambda req: httpx.Response(200, json=rows))
    store = _store(rec)
    try:
        tasks = await store.get_tasks()
    finally:
        await store.aclose()

    assert tasks == [
        Task(id="t1", title="one", is_daily=True, project_id="p1", order=2, created_at="2024-01-01T00:00:00Z")
    ]
    req = rec.requests[0]
    assert req.method == "GET"
    assert req.url.path == "/rest/v1/tasks"
    assert req.url.params["select"] == "*"


@pytest.mark.asyncio
async def test_create_sends_snake_case_body() -> None:
    rec = Recorder(lambda req: httpx.Response(201, json=[]))
    store = _store(rec)
    try:
        await store.add_task(Task(id="t1", title="one", parent_task_id="t0", tags=["g1"]))
    finally:
        await store.aclose()

    req = rec.requests[0]
    body = json.loads(req.content)
    assert req.method == "POST"
    assert body["parent_task_id"] == "t0"
    assert "tags" not in body
    assert req.headers["Prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_update_patches_by_id_with_translated_fields() -> None:
    rec = Recorder(lambda req: httpx.Response(204))
    store = _store(rec)
    try:
        await store.update_task("t1", {"due_date": "2024-02-01", "completed": True})
        await store.update_task("t1", {"tags": ["g1"]})  # local-only: nothing to send
    finally:
        await store.aclose()

    assert len(rec.requests) == 1
    req = rec.requests[0]
    assert req.method == "PATCH"
    assert req.url.params["id"] == "eq.t1"
    assert json.loads(req.content) == {"due_date": "2024-02-01", "completed": True}


@pytest.mark.asyncio
async def test_non_success_raises_typed_error_with_status_and_body() -> None:
    rec = Recorder(lambda req: httpx.Response(409, text='{"message":"duplicate key"}'))
    store = _store(rec)
    try:
        with pytest.raises(RemoteStoreError) as ei:
            await store.add_task(Task(id="t1", title="one"))
    finally:
        await store.aclose()

    assert ei.value.status == 409
    assert "duplicate key" in ei.value.body
    assert ei.value.method == "POST"


@pytest.mark.asyncio
async def test_reorder_fails_as_a_whole_but_keeps_succeeded_updates() -> None:
    def respond(req: httpx.Request) -> httpx.Response:
        if req.url.params["id"] == "eq.b":
            return httpx.Response(500, text="boom")
        return httpx.Response(204)

    rec = Recorder(respond)
    store = _store(rec)
    try:
        with pytest.raises(ReorderError) as ei:
            await store.reorder_projects([("a", 0), ("b", 1), ("c", 2)])
    finally:
        await store.aclose()

    assert ei.value.failed_ids == ["b"]
    assert ei.value.total == 3
    # All three PATCHes were issued; a and c stay applied remotely.
    assert sorted(r.url.params["id"] for r in rec.requests) == ["eq.a", "eq.b", "eq.c"]
    assert all(r.method == "PATCH" for r in rec.requests)


@pytest.mark.asyncio
async def test_unwired_collection_reads_empty_and_skips_writes() -> None:
    rec = Recorder()
    store = _store(rec, unwired=[Collection.PROJECT_TAGS, "today"])
    try:
        assert await store.get_project_tags() == []
        await store.add_project_tag("p1", "g1")
        await store.remove_project_tag("p1", "g1")
        assert await store.get_today_tasks() == []
        await store.save_today_tasks([TodayTask(task_id="t1")])
    finally:
        await store.aclose()

    assert rec.requests == []


@pytest.mark.asyncio
async def test_link_removal_filters_by_both_keys() -> None:
    rec = Recorder(lambda req: httpx.Response(204))
    store = _store(rec)
    try:
        await store.remove_task_tag("t1", "g1")
    finally:
        await store.aclose()

    req = rec.requests[0]
    assert req.method == "DELETE"
    assert req.url.path == "/rest/v1/task_tags"
    assert req.url.params["task_id"] == "eq.t1"
    assert req.url.params["tag_id"] == "eq.g1"


@pytest.mark.asyncio
async def test_save_today_tasks_replaces_remote_list() -> None:
    rec = Recorder(lambda req: httpx.Response(201 if req.method == "POST" else 204))
    store = _store(rec)
    try:
        await store.save_today_tasks([TodayTask(task_id="t1", order=0), TodayTask(task_id="t2", order=1)])
    finally:
        await store.aclose()

    delete, insert = rec.requests
    assert delete.method == "DELETE"
    assert delete.url.path == "/rest/v1/today_tasks"
    assert insert.method == "POST"
    assert json.loads(insert.content) == [{"task_id": "t1", "order": 0}, {"task_id": "t2", "order": 1}]
