"""
Activity records: the audit trail of entity inserts, updates and deletes.

One record type with a ``kind`` discriminant covers all three events. The
variant-specific payload is ``diff`` for updates and ``deleted_obj`` for
deletes; the other variants leave them ``None``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from .base import Entity, utc_now


class ActivityKind(str, Enum):
    """Kinds of recorded entity events."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class DiffEntry:
    """A single changed field: its stored value before and after."""

    field_name: str
    old_value: Any = None
    new_value: Any = None


@dataclass
class ActivityRecord(Entity):
    """
    Immutable audit record.

    Build records with :meth:`insert`, :meth:`update` or :meth:`delete`.
    After construction every field is read-only, except that ``id`` may be
    assigned once when the record is first stored.

    Stored document shape:
        {
            "_id": ObjectId,
            "kind": "insert" | "update" | "delete",
            "actor": str,
            "collection_name": str,
            "obj_id": str,
            "timestamp": datetime,
            "diff": [{"field_name", "old_value", "new_value"}] | None,
            "deleted_obj": dict | None
        }
    """

    kind: ActivityKind = ActivityKind.INSERT
    actor: str = ""
    collection_name: str = ""
    obj_id: str | None = None
    timestamp: datetime | None = None
    diff: tuple[DiffEntry, ...] | None = None
    deleted_obj: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ActivityKind):
            object.__setattr__(self, "kind", ActivityKind(self.kind))
        if self.diff is not None and not isinstance(self.diff, tuple):
            object.__setattr__(self, "diff", tuple(self.diff))
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False) and not (name == "id" and self.id is None):
            raise AttributeError(f"ActivityRecord is immutable; cannot set '{name}'")
        object.__setattr__(self, name, value)

    @classmethod
    def insert(cls, actor: str, collection_name: str, obj_id: str) -> "ActivityRecord":
        return cls(
            kind=ActivityKind.INSERT,
            actor=actor,
            collection_name=collection_name,
            obj_id=obj_id,
            timestamp=utc_now(),
        )

    @classmethod
    def update(
        cls,
        actor: str,
        collection_name: str,
        obj_id: str,
        diff: Sequence[DiffEntry],
    ) -> "ActivityRecord":
        return cls(
            kind=ActivityKind.UPDATE,
            actor=actor,
            collection_name=collection_name,
            obj_id=obj_id,
            timestamp=utc_now(),
            diff=tuple(diff),
        )

    @classmethod
    def delete(
        cls,
        actor: str,
        collection_name: str,
        obj_id: str,
        deleted_obj: dict[str, Any],
    ) -> "ActivityRecord":
        return cls(
            kind=ActivityKind.DELETE,
            actor=actor,
            collection_name=collection_name,
            obj_id=obj_id,
            timestamp=utc_now(),
            deleted_obj=deleted_obj,
        )
