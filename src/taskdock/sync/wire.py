# src/taskdock/sync/wire.py

"""
Translation between on-device records (camelCase) and wire rows (snake_case).

Every entity field is mapped explicitly. Fields in an entity's LOCAL_ONLY set
(denormalized tag id lists) never go over the wire. The tables are checked at
import time so a field added to a model without a reversible wire name fails fast.
"""

from __future__ import annotations

from typing import Any, TypeVar

from ..core.models import (
    ENTITY_TYPES,
    RecordMixin,
    camel_to_snake,
    check_updates,
    snake_to_camel,
)

E = TypeVar("E", bound=RecordMixin)


def _build_table(cls: type[RecordMixin]) -> dict[str, str]:
    """record key (camelCase) -> wire column (snake_case)."""
    table: dict[str, str] = {}
    for name in cls.field_names():
        if name in cls.LOCAL_ONLY:
            continue
        record_key = snake_to_camel(name)
        wire_key = camel_to_snake(record_key)
        if wire_key != name or snake_to_camel(wire_key) != record_key:
            raise RuntimeError(f"{cls.__name__}.{name} has no reversible wire name")
        table[record_key] = wire_key
    return table


WIRE_FIELDS: dict[type[RecordMixin], dict[str, str]] = {
    cls: _build_table(cls) for cls in ENTITY_TYPES.values()
}
RECORD_FIELDS: dict[type[RecordMixin], dict[str, str]] = {
    cls: {wire: rec for rec, wire in table.items()} for cls, table in WIRE_FIELDS.items()
}


def record_to_wire(cls: type[RecordMixin], record: dict[str, Any]) -> dict[str, Any]:
    table = WIRE_FIELDS[cls]
    return {table[k]: v for k, v in record.items() if k in table}


def wire_to_record(cls: type[RecordMixin], row: dict[str, Any]) -> dict[str, Any]:
    table = RECORD_FIELDS[cls]
    return {table[k]: v for k, v in row.items() if k in table and v is not None}


def to_wire(entity: RecordMixin) -> dict[str, Any]:
    return record_to_wire(type(entity), entity.to_record())


def from_wire(cls: type[E], row: dict[str, Any]) -> E:
    if not isinstance(row, dict):
        raise ValueError(f"{cls.__name__} row must be an object, got {row!r}")
    return cls.from_record(wire_to_record(cls, row))


def updates_to_wire(cls: type[RecordMixin], updates: dict[str, Any]) -> dict[str, Any]:
    """Partial update keyed by attribute names -> wire columns. None clears a column."""
    check_updates(cls, updates)
    table = WIRE_FIELDS[cls]
    out: dict[str, Any] = {}
    for name, value in updates.items():
        wire_key = table.get(snake_to_camel(name))
        if wire_key is not None:
            out[wire_key] = value
    return out
