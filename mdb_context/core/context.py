"""
MongoDbContext: typed entity access over a pymongo database.

Example:
    from dataclasses import dataclass
    from mdb_context import Entity, MongoDbContext, ContextConfig

    @dataclass
    class Order(Entity):
        total: int = 0

    with MongoDbContext.from_config(ContextConfig.from_env(), current_actor=lambda: "alice") as ctx:
        ctx.register(Order, collection_name="orders", write_log=True)
        order = ctx.save(Order(total=10))
        order.total = 20
        ctx.save(order)  # writes an update activity with one diff entry
"""

import time
from typing import Any, Iterable, Iterator, Mapping, TypeVar

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.results import DeleteResult, UpdateResult

from ..audit.writer import AuditWriter
from ..config import ContextConfig
from ..database.connection import open_client
from ..database.provisioner import CollectionProvisioner
from ..entities.codec import id_filter
from ..observability import get_logger, log_operation, timed_operation
from .base import ContextBase
from .repository import EntityRepository

logger = get_logger(__name__)

T = TypeVar("T")


class MongoDbContext(ContextBase):
    """
    Synchronous entity access facade.

    Collections are provisioned lazily on first use of each entity type.
    Entity types with ``write_log`` get an activity record for every
    single-document insert, update and delete; bulk operations are not logged.
    """

    def __init__(self, database: Database, **kwargs: Any) -> None:
        super().__init__(database, **kwargs)
        self.provisioner = CollectionProvisioner(
            self.registry, self.router, database, config=self._config
        )
        self.audit = AuditWriter(
            self.registry, self.save, current_actor=self.current_actor, codec=self.codec
        )

    @classmethod
    def from_config(cls, config: ContextConfig, **kwargs: Any) -> "MongoDbContext":
        """
        Open a client from a ContextConfig and build a context that owns it.

        Keyword arguments are passed to the constructor; flags not given
        there are taken from the config.
        """
        client = open_client(config.mongo_uri, config)
        kwargs = cls._settings_from_config(config, kwargs)
        return cls(client[config.db_name], config=config, client=client, **kwargs)

    def get_collection(self, entity_type: type) -> Collection:
        """Provisioned collection of an entity type."""
        return self.provisioner.get_collection(entity_type)

    def repository(self, entity_type: type[T]) -> EntityRepository[T]:
        """Per-type view over this context."""
        return EntityRepository(self, entity_type)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, entity_type: type[T], entity_id: Any) -> T | None:
        doc = self.get_collection(entity_type).find_one(id_filter(entity_id))
        return self._decode(entity_type, doc)

    def find_first(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> T | None:
        doc = self.get_collection(entity_type).find_one(dict(filter or {}), **kwargs)
        return self._decode(entity_type, doc)

    def find(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> Iterator[T]:
        """
        Lazily iterate entities matching a filter.

        Keyword arguments (sort, skip, limit, projection...) go to ``Collection.find``.
        """
        cursor = self.get_collection(entity_type).find(dict(filter or {}), **kwargs)
        return (self._decode(entity_type, doc) for doc in cursor)

    def find_all(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> list[T]:
        return list(self.find(entity_type, filter, **kwargs))

    def all(self, entity_type: type[T]) -> Iterator[T]:
        return self.find(entity_type)

    def any(self, entity_type: type, filter: Mapping[str, Any] | None = None) -> bool:
        doc = self.get_collection(entity_type).find_one(dict(filter or {}), projection={"_id": 1})
        return doc is not None

    def count(
        self, entity_type: type, filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> int:
        return self.get_collection(entity_type).count_documents(dict(filter or {}), **kwargs)

    def aggregate(
        self, entity_type: type, pipeline: list[dict[str, Any]], **kwargs: Any
    ) -> list[dict[str, Any]]:
        """Run an aggregation pipeline on the entity's collection; returns raw documents."""
        return list(self.get_collection(entity_type).aggregate(pipeline, **kwargs))

    def as_queryable(self, entity_type: type) -> Collection:
        """Raw collection handle for queries the facade does not cover."""
        return self.get_collection(entity_type)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, item: T) -> T:
        """
        Insert a new entity (``id is None``) or replace it by id with upsert.

        The entity's ``id`` is assigned on insert.

        Raises:
            ConfigurationError: If logging is enabled and no actor is available
            pymongo.errors.PyMongoError: Driver failures, unchanged
        """
        entity_type = type(item)
        policy = self.registry.resolve(entity_type)
        self._preprocess(item, policy)
        collection = self.get_collection(entity_type)

        with self._entity_scope("save", entity_type):
            if item.id is None:
                result = collection.insert_one(self.codec.to_document(item))
                item.id = str(result.inserted_id)
                logger.debug(f"Inserted {entity_type.__name__} id={item.id}")
                if policy.write_log:
                    with self._audit_guard("insert", entity_type, item.id):
                        self.audit.record_insert(entity_type, item.id)
                return item

            old = None
            if policy.write_log:
                old = self._decode(entity_type, collection.find_one(id_filter(item.id)))
            collection.replace_one(
                id_filter(item.id), self.codec.to_document(item, include_id=False), upsert=True
            )
            logger.debug(f"Replaced {entity_type.__name__} id={item.id}")
            if policy.write_log:
                with self._audit_guard("save", entity_type, item.id):
                    if old is None:
                        self.audit.record_insert(entity_type, item.id)
                    else:
                        self.audit.record_update(entity_type, item.id, old, item)
        return item

    def insert_many(self, items: Iterable[T], **kwargs: Any) -> list[str]:
        """
        Insert a batch of entities of one type and assign their ids.
        No activity records are written.
        """
        items = list(items)
        if not items:
            return []
        entity_type = self._check_batch(items)
        policy = self.registry.resolve(entity_type)
        for item in items:
            self._preprocess(item, policy)
        start_time = time.time()
        result = self.get_collection(entity_type).insert_many(
            [self.codec.to_document(item) for item in items], **kwargs
        )
        ids = [str(inserted_id) for inserted_id in result.inserted_ids]
        for item, inserted_id in zip(items, ids):
            item.id = inserted_id
        log_operation(
            logger,
            "insert_many",
            duration_ms=(time.time() - start_time) * 1000,
            entity_type=entity_type.__name__,
            count=len(ids),
        )
        return ids

    def delete_one(self, entity_type: type, target: Any) -> DeleteResult:
        """
        Delete one document selected by entity instance, id or filter.

        With logging enabled the document is read first; a delete record is
        written only if it existed and was removed. The delete still applies
        the caller's filter, so a document changed to no longer match after
        the read is left alone.
        """
        policy = self.registry.resolve(entity_type)
        collection = self.get_collection(entity_type)
        selector = self._target_filter(entity_type, target)

        with self._entity_scope("delete", entity_type):
            if not policy.write_log:
                return collection.delete_one(selector)

            snapshot = self._decode(entity_type, collection.find_one(selector))
            if snapshot is None:
                logger.debug(f"No {entity_type.__name__} matched {selector}; nothing to record")
                return collection.delete_one(selector)

            result = collection.delete_one(self._pinned(selector, snapshot.id))
            if result.deleted_count:
                with self._audit_guard("delete", entity_type, snapshot.id):
                    self.audit.record_delete(entity_type, snapshot.id, snapshot)
            return result

    def delete(self, item: Any) -> DeleteResult:
        """Delete a saved entity instance."""
        return self.delete_one(type(item), item)

    def delete_many(self, entity_type: type, filter: Mapping[str, Any]) -> DeleteResult:
        return self.get_collection(entity_type).delete_many(dict(filter))

    def update_one(
        self, entity_type: type, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        """
        Apply an update document (or pipeline) to the first matching document.

        With logging enabled the pre-image and post-image are diffed and an
        update record is written when a field changed. The update still
        applies the caller's filter to the document that was read.
        """
        policy = self.registry.resolve(entity_type)
        collection = self.get_collection(entity_type)
        selector = dict(filter)

        with self._entity_scope("update", entity_type):
            if not policy.write_log:
                return collection.update_one(selector, update, **kwargs)

            before = self._decode(entity_type, collection.find_one(selector))
            if before is None:
                return collection.update_one(selector, update, **kwargs)

            result = collection.update_one(self._pinned(selector, before.id), update, **kwargs)
            if not result.matched_count:
                return result
            after = self.find_by_id(entity_type, before.id)
            if after is not None:
                with self._audit_guard("update", entity_type, before.id):
                    self.audit.record_update(entity_type, before.id, before, after)
            return result

    def update_many(
        self, entity_type: type, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        return self.get_collection(entity_type).update_many(dict(filter), update, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @timed_operation("context.close")
    def close(self) -> None:
        """Close clients opened by this context. Safe to call twice."""
        if not self._mark_closed():
            return
        self.provisioner.close()
        if self._client is not None:
            self._client.close()
        logger.info("MongoDbContext closed")

    def __enter__(self) -> "MongoDbContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
