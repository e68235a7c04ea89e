"""
Activity record writer.

Builds insert, update and delete records for entity types whose policy has
``write_log`` enabled and stores them through the context's own save path.
Activity types are never logged themselves, so storing a record cannot
trigger another one.
"""

import logging
import time
from typing import Any, Awaitable, Callable

from ..entities.activity import ActivityRecord
from ..entities.codec import DocumentCodec
from ..exceptions import ConfigurationError
from ..metadata.registry import MetadataRegistry
from ..observability import record_operation
from .diff import diff

logger = logging.getLogger(__name__)

ActorAccessor = Callable[[], str | None]


class _ActivityBuilder:
    def __init__(
        self,
        registry: MetadataRegistry,
        current_actor: ActorAccessor | None = None,
        codec: DocumentCodec | None = None,
    ) -> None:
        self.registry = registry
        self.current_actor = current_actor
        self.codec = codec or DocumentCodec()

    def resolve_actor(self, actor: str | None = None) -> str:
        """
        Return the explicit actor, or ask the configured accessor.

        Raises:
            ConfigurationError: If no actor is available
        """
        if actor:
            return actor
        if self.current_actor is None:
            raise ConfigurationError(
                "Activity logging is enabled but no current_actor accessor is configured",
                config_key="current_actor",
            )
        resolved = self.current_actor()
        if not resolved:
            raise ConfigurationError(
                "current_actor accessor returned no identity", config_key="current_actor"
            )
        return resolved

    def build_insert(
        self, entity_type: type, obj_id: str, actor: str | None = None
    ) -> ActivityRecord:
        return ActivityRecord.insert(
            self.resolve_actor(actor), self.registry.collection_name(entity_type), obj_id
        )

    def build_update(
        self, entity_type: type, obj_id: str, old: Any, new: Any, actor: str | None = None
    ) -> ActivityRecord | None:
        actor = self.resolve_actor(actor)
        entries = diff(old, new, self.codec)
        if not entries:
            logger.debug(f"No field changes for {entity_type.__name__} id={obj_id}; no record")
            return None
        return ActivityRecord.update(
            actor, self.registry.collection_name(entity_type), obj_id, entries
        )

    def build_delete(
        self, entity_type: type, obj_id: str, snapshot: Any, actor: str | None = None
    ) -> ActivityRecord:
        return ActivityRecord.delete(
            self.resolve_actor(actor),
            self.registry.collection_name(entity_type),
            obj_id,
            self.codec.to_document(snapshot),
        )


class AuditWriter(_ActivityBuilder):
    """
    Writes activity records with a synchronous save callable.

    Args:
        registry: Metadata registry (for collection names)
        save: Stores a record, assigning its id (normally ``MongoDbContext.save``)
        current_actor: Returns the acting user's identity
        codec: Codec used for diff values and deleted snapshots

    Failures of ``save`` propagate unchanged.
    """

    def __init__(
        self,
        registry: MetadataRegistry,
        save: Callable[[ActivityRecord], Any],
        current_actor: ActorAccessor | None = None,
        codec: DocumentCodec | None = None,
    ) -> None:
        super().__init__(registry, current_actor, codec)
        self._save = save

    def record_insert(
        self, entity_type: type, obj_id: str, actor: str | None = None
    ) -> ActivityRecord:
        return self._write(self.build_insert(entity_type, obj_id, actor))

    def record_update(
        self, entity_type: type, obj_id: str, old: Any, new: Any, actor: str | None = None
    ) -> ActivityRecord | None:
        """Write an update record, or nothing (returns None) when no field changed."""
        record = self.build_update(entity_type, obj_id, old, new, actor)
        return self._write(record) if record is not None else None

    def record_delete(
        self, entity_type: type, obj_id: str, snapshot: Any, actor: str | None = None
    ) -> ActivityRecord:
        return self._write(self.build_delete(entity_type, obj_id, snapshot, actor))

    def _write(self, record: ActivityRecord) -> ActivityRecord:
        start_time = time.time()
        success = False
        try:
            self._save(record)
            success = True
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("audit.write", duration_ms, success=success, kind=record.kind.value)
        logger.debug(
            f"Recorded {record.kind.value} of {record.collection_name}/{record.obj_id} "
            f"by {record.actor}"
        )
        return record


class AsyncAuditWriter(_ActivityBuilder):
    """
    Writes activity records with an awaitable save callable
    (normally ``AsyncMongoDbContext.save``). Same semantics as AuditWriter.
    """

    def __init__(
        self,
        registry: MetadataRegistry,
        save: Callable[[ActivityRecord], Awaitable[Any]],
        current_actor: ActorAccessor | None = None,
        codec: DocumentCodec | None = None,
    ) -> None:
        super().__init__(registry, current_actor, codec)
        self._save = save

    async def record_insert(
        self, entity_type: type, obj_id: str, actor: str | None = None
    ) -> ActivityRecord:
        return await self._write(self.build_insert(entity_type, obj_id, actor))

    async def record_update(
        self, entity_type: type, obj_id: str, old: Any, new: Any, actor: str | None = None
    ) -> ActivityRecord | None:
        record = self.build_update(entity_type, obj_id, old, new, actor)
        return await self._write(record) if record is not None else None

    async def record_delete(
        self, entity_type: type, obj_id: str, snapshot: Any, actor: str | None = None
    ) -> ActivityRecord:
        return await self._write(self.build_delete(entity_type, obj_id, snapshot, actor))

    async def _write(self, record: ActivityRecord) -> ActivityRecord:
        start_time = time.time()
        success = False
        try:
            await self._save(record)
            success = True
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("audit.write", duration_ms, success=success, kind=record.kind.value)
        logger.debug(
            f"Recorded {record.kind.value} of {record.collection_name}/{record.obj_id} "
            f"by {record.actor}"
        )
        return record
