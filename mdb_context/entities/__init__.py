"""
Entity model: base classes, activity records and the document codec.
"""

from .activity import ActivityKind, ActivityRecord, DiffEntry
from .base import (
    Entity,
    SavePreprocessor,
    TimestampedEntity,
    TimestampPreprocessor,
    persisted_fields,
)
from .codec import DocumentCodec, id_filter, to_object_id

__all__ = [
    "Entity",
    "TimestampedEntity",
    "SavePreprocessor",
    "TimestampPreprocessor",
    "persisted_fields",
    "ActivityKind",
    "ActivityRecord",
    "DiffEntry",
    "DocumentCodec",
    "id_filter",
    "to_object_id",
]
