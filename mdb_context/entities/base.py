"""
Entity base classes and save preprocessors.

Entities are plain dataclasses. The only contract the context relies on is a
nullable ``id``: ``None`` means "not yet persisted".
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from ..constants import PERSIST_METADATA_KEY


@dataclass
class Entity:
    """
    Base class for stored entities.

    ``id`` is keyword-only so subclasses can declare required fields.

    Example:
        @dataclass
        class Order(Entity):
            total: int
            customer: str = ""
    """

    id: str | None = field(default=None, kw_only=True)


@dataclass
class TimestampedEntity(Entity):
    """Entity carrying creation and modification times, set by TimestampPreprocessor."""

    created_at: datetime | None = field(default=None, kw_only=True)
    updated_at: datetime | None = field(default=None, kw_only=True)


@lru_cache(maxsize=None)
def persisted_fields(entity_type: type) -> tuple[dataclasses.Field, ...]:
    """
    Dataclass fields stored in documents, in declaration order.

    Fields declared with ``metadata={"persist": False}`` are excluded.

    Raises:
        TypeError: If entity_type is not a dataclass
    """
    if not dataclasses.is_dataclass(entity_type):
        raise TypeError(f"{entity_type!r} is not a dataclass entity")
    return tuple(
        f for f in dataclasses.fields(entity_type) if f.metadata.get(PERSIST_METADATA_KEY, True)
    )


def bson_datetime(value: datetime) -> datetime:
    """Datetime as BSON stores it: naive UTC with millisecond precision."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    return bson_datetime(datetime.now(timezone.utc))


class SavePreprocessor(ABC):
    """
    Hook run on an entity before it is inserted or replaced.

    Enabled per entity type through the ``preprocess`` policy flag.
    Implementations may mutate the entity in place.
    """

    @abstractmethod
    def preprocess(self, entity: Any) -> None:
        pass


class TimestampPreprocessor(SavePreprocessor):
    """Sets ``created_at`` once and ``updated_at`` on every save."""

    def preprocess(self, entity: Any) -> None:
        now = utc_now()
        if hasattr(entity, "created_at") and entity.created_at is None:
            entity.created_at = now
        if hasattr(entity, "updated_at"):
            entity.updated_at = now
