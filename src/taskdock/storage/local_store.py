# src/taskdock/storage/local_store.py

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from ..core.models import (
    ENTITY_TYPES,
    Collection,
    Project,
    ProjectTag,
    RecordMixin,
    Tag,
    Task,
    TaskTag,
    TodayTask,
    check_updates,
    entity_key,
)
from ..core.ports import KeyValueMedium
from .events import ChangeBus, StorageChange

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=RecordMixin)

CollectionListener = Callable[[Collection], None]


class LocalStore:
    """
    Whole-collection persistence over a synchronous key-value medium.

    Rules:
    - a read returns [] when the key is missing, the medium fails or the value is corrupt
    - a write serializes and replaces the entire collection
    - update/delete of an unknown id is a silent no-op
    - write failures are logged and swallowed (local-first: callers never see them)

    Nothing is cached: every read and every read-modify-write goes to the medium, so
    instances sharing a medium (in this process or another one) never overwrite each
    other with a stale copy. The ChangeBus only tells listeners that a peer wrote.
    """

    def __init__(
        self,
        medium: KeyValueMedium,
        *,
        bus: ChangeBus | None = None,
        instance_id: str | None = None,
    ) -> None:
        self._medium = medium
        self._bus = bus
        self.instance_id = instance_id or uuid.uuid4().hex
        self._listeners: list[CollectionListener] = []
        self.write_failures = 0
        self._unsubscribe: Callable[[], None] | None = None
        if bus is not None:
            self._unsubscribe = bus.subscribe(self._on_peer_change)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ---- low-level helpers ----

    @staticmethod
    def _decode(collection: Collection, raw: str | None) -> list[Any]:
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"{collection.value} is not a JSON array")
        cls = ENTITY_TYPES[collection]
        out: list[Any] = []
        for rec in data:
            try:
                out.append(cls.from_record(rec))
            except ValueError:
                logger.warning("Skipping corrupt %s record: %r", collection.value, rec)
        return out

    def _read(self, collection: Collection) -> list[Any]:
        try:
            raw = self._medium.get(collection.value)
            return self._decode(collection, raw)
        except Exception:
            logger.exception("Error reading collection %s", collection.value)
            return []

    def _write(self, collection: Collection, items: list[Any]) -> bool:
        try:
            raw = json.dumps([item.to_record() for item in items], ensure_ascii=False)
            self._medium.set(collection.value, raw)
        except Exception:
            self.write_failures += 1
            logger.exception("Error writing collection %s (%d items)", collection.value, len(items))
            return False

        if self._bus is not None:
            self._bus.publish(StorageChange(key=collection.value, new_value=raw, origin=self.instance_id))
        return True

    def _on_peer_change(self, change: StorageChange) -> None:
        if change.origin == self.instance_id:
            return
        try:
            collection = Collection(change.key)
        except ValueError:
            return  # not an entity collection (e.g. the sync queue)

        logger.debug("Peer %s changed %s", change.origin, collection.value)
        for listener in list(self._listeners):
            try:
                listener(collection)
            except Exception:
                logger.exception("Collection listener failed for %s", collection.value)

    # ---- generic collection API ----

    def add_listener(self, listener: CollectionListener) -> None:
        """Called with the collection after a peer wrote it."""
        self._listeners.append(listener)

    def load(self, collection: Collection) -> list[Any]:
        return self._read(collection)

    def save(self, collection: Collection, items: Iterable[Any]) -> bool:
        """Replace the whole collection. Returns False if the medium write failed."""
        cls = ENTITY_TYPES[collection]
        checked: list[Any] = []
        for item in items:
            if not isinstance(item, cls):
                raise TypeError(f"{collection.value} expects {cls.__name__}, got {type(item).__name__}")
            checked.append(item)
        return self._write(collection, checked)

    def add(self, collection: Collection, item: Any) -> None:
        items = self.load(collection)
        items.append(item)
        self.save(collection, items)

    def update(self, collection: Collection, item_id: Any, updates: dict[str, Any]) -> None:
        check_updates(ENTITY_TYPES[collection], updates)
        items = self.load(collection)
        for i, item in enumerate(items):
            if entity_key(item) == item_id:
                items[i] = item.with_updates(updates)
                self.save(collection, items)
                return

    def delete(self, collection: Collection, item_id: Any) -> None:
        items = self.load(collection)
        kept = [item for item in items if entity_key(item) != item_id]
        if len(kept) != len(items):
            self.save(collection, kept)

    def reorder(self, collection: Collection, entries: Iterable[tuple[str, int]]) -> None:
        orders = {str(item_id): int(order) for item_id, order in entries}
        items = self.load(collection)
        changed = False
        for item in items:
            new_order = orders.get(entity_key(item))
            if new_order is not None and item.order != new_order:
                item.order = new_order
                changed = True
        if changed:
            self.save(collection, items)

    # ---- tasks ----

    def get_tasks(self) -> list[Task]:
        return self.load(Collection.TASKS)

    def add_task(self, task: Task) -> None:
        self.add(Collection.TASKS, task)

    def update_task(self, task_id: str, updates: dict[str, Any]) -> None:
        self.update(Collection.TASKS, task_id, updates)

    def delete_task(self, task_id: str) -> None:
        self.delete(Collection.TASKS, task_id)

    def reorder_tasks(self, entries: list[tuple[str, int]]) -> None:
        self.reorder(Collection.TASKS, entries)

    # ---- projects ----

    def get_projects(self) -> list[Project]:
        return self.load(Collection.PROJECTS)

    def add_project(self, project: Project) -> None:
        self.add(Collection.PROJECTS, project)

    def update_project(self, project_id: str, updates: dict[str, Any]) -> None:
        self.update(Collection.PROJECTS, project_id, updates)

    def delete_project(self, project_id: str) -> None:
        self.delete(Collection.PROJECTS, project_id)

    def reorder_projects(self, entries: list[tuple[str, int]]) -> None:
        self.reorder(Collection.PROJECTS, entries)

    # ---- tags ----

    def get_tags(self) -> list[Tag]:
        return self.load(Collection.TAGS)

    def add_tag(self, tag: Tag) -> None:
        self.add(Collection.TAGS, tag)

    def update_tag(self, tag_id: str, updates: dict[str, Any]) -> None:
        self.update(Collection.TAGS, tag_id, updates)

    def delete_tag(self, tag_id: str) -> None:
        self.delete(Collection.TAGS, tag_id)

    # ---- tag links ----

    def get_task_tags(self) -> list[TaskTag]:
        return self.load(Collection.TASK_TAGS)

    def add_task_tag(self, task_id: str, tag_id: str) -> bool:
        """Insert the link unless it exists. Returns True if a link was added."""
        links = self.get_task_tags()
        if any(link.task_id == task_id and link.tag_id == tag_id for link in links):
            return False
        links.append(TaskTag(task_id=task_id, tag_id=tag_id))
        self.save(Collection.TASK_TAGS, links)
        return True

    def remove_task_tag(self, task_id: str, tag_id: str) -> None:
        self.delete(Collection.TASK_TAGS, (task_id, tag_id))

    def get_project_tags(self) -> list[ProjectTag]:
        return self.load(Collection.PROJECT_TAGS)

    def add_project_tag(self, project_id: str, tag_id: str) -> bool:
        links = self.get_project_tags()
        if any(link.project_id == project_id and link.tag_id == tag_id for link in links):
            return False
        links.append(ProjectTag(project_id=project_id, tag_id=tag_id))
        self.save(Collection.PROJECT_TAGS, links)
        return True

    def remove_project_tag(self, project_id: str, tag_id: str) -> None:
        self.delete(Collection.PROJECT_TAGS, (project_id, tag_id))

    # ---- today ----

    def get_today_tasks(self) -> list[TodayTask]:
        return self.load(Collection.TODAY)

    def save_today_tasks(self, today_tasks: list[TodayTask]) -> None:
        self.save(Collection.TODAY, today_tasks)
