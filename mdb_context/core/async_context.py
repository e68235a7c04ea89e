"""
AsyncMongoDbContext: typed entity access over a motor database.

Mirrors MongoDbContext with awaitable operations; ``find`` and ``all`` are
async iterators.

Example:
    async with AsyncMongoDbContext.from_config(config, current_actor=get_user) as ctx:
        order = await ctx.save(Order(total=10))
        async for order in ctx.find(Order, {"total": {"$gte": 10}}):
            ...
"""

import time
from typing import Any, AsyncIterator, Iterable, Mapping, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.results import DeleteResult, UpdateResult

from ..audit.writer import AsyncAuditWriter
from ..config import ContextConfig
from ..database.connection import open_async_client
from ..database.provisioner import AsyncCollectionProvisioner
from ..entities.codec import id_filter
from ..observability import get_logger, log_operation, timed_operation
from .base import ContextBase
from .repository import AsyncEntityRepository

logger = get_logger(__name__)

T = TypeVar("T")


class AsyncMongoDbContext(ContextBase):
    """
    Asyncio entity access facade. Same semantics as MongoDbContext.
    """

    def __init__(self, database: AsyncIOMotorDatabase, **kwargs: Any) -> None:
        super().__init__(database, **kwargs)
        self.provisioner = AsyncCollectionProvisioner(
            self.registry, self.router, database, config=self._config
        )
        self.audit = AsyncAuditWriter(
            self.registry, self.save, current_actor=self.current_actor, codec=self.codec
        )

    @classmethod
    def from_config(cls, config: ContextConfig, **kwargs: Any) -> "AsyncMongoDbContext":
        """Open a motor client from a ContextConfig and build a context that owns it."""
        client = open_async_client(config.mongo_uri, config)
        kwargs = cls._settings_from_config(config, kwargs)
        return cls(client[config.db_name], config=config, client=client, **kwargs)

    async def get_collection(self, entity_type: type) -> AsyncIOMotorCollection:
        return await self.provisioner.get_collection(entity_type)

    def repository(self, entity_type: type[T]) -> AsyncEntityRepository[T]:
        return AsyncEntityRepository(self, entity_type)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(self, entity_type: type[T], entity_id: Any) -> T | None:
        collection = await self.get_collection(entity_type)
        return self._decode(entity_type, await collection.find_one(id_filter(entity_id)))

    async def find_first(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> T | None:
        collection = await self.get_collection(entity_type)
        return self._decode(entity_type, await collection.find_one(dict(filter or {}), **kwargs))

    async def find(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> AsyncIterator[T]:
        """Async iterator over entities matching a filter."""
        collection = await self.get_collection(entity_type)
        async for doc in collection.find(dict(filter or {}), **kwargs):
            yield self._decode(entity_type, doc)

    async def find_all(
        self, entity_type: type[T], filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> list[T]:
        collection = await self.get_collection(entity_type)
        docs = await collection.find(dict(filter or {}), **kwargs).to_list(length=None)
        return [self._decode(entity_type, doc) for doc in docs]

    def all(self, entity_type: type[T]) -> AsyncIterator[T]:
        return self.find(entity_type)

    async def any(self, entity_type: type, filter: Mapping[str, Any] | None = None) -> bool:
        collection = await self.get_collection(entity_type)
        doc = await collection.find_one(dict(filter or {}), projection={"_id": 1})
        return doc is not None

    async def count(
        self, entity_type: type, filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> int:
        collection = await self.get_collection(entity_type)
        return await collection.count_documents(dict(filter or {}), **kwargs)

    async def aggregate(
        self, entity_type: type, pipeline: list[dict[str, Any]], **kwargs: Any
    ) -> list[dict[str, Any]]:
        collection = await self.get_collection(entity_type)
        return await collection.aggregate(pipeline, **kwargs).to_list(length=None)

    async def as_queryable(self, entity_type: type) -> AsyncIOMotorCollection:
        return await self.get_collection(entity_type)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, item: T) -> T:
        """See :meth:`MongoDbContext.save`."""
        entity_type = type(item)
        policy = self.registry.resolve(entity_type)
        self._preprocess(item, policy)
        collection = await self.get_collection(entity_type)

        with self._entity_scope("save", entity_type):
            if item.id is None:
                result = await collection.insert_one(self.codec.to_document(item))
                item.id = str(result.inserted_id)
                logger.debug(f"Inserted {entity_type.__name__} id={item.id}")
                if policy.write_log:
                    with self._audit_guard("insert", entity_type, item.id):
                        await self.audit.record_insert(entity_type, item.id)
                return item

            old = None
            if policy.write_log:
                old = self._decode(entity_type, await collection.find_one(id_filter(item.id)))
            await collection.replace_one(
                id_filter(item.id), self.codec.to_document(item, include_id=False), upsert=True
            )
            logger.debug(f"Replaced {entity_type.__name__} id={item.id}")
            if policy.write_log:
                with self._audit_guard("save", entity_type, item.id):
                    if old is None:
                        await self.audit.record_insert(entity_type, item.id)
                    else:
                        await self.audit.record_update(entity_type, item.id, old, item)
        return item

    async def insert_many(self, items: Iterable[T], **kwargs: Any) -> list[str]:
        """Insert a batch of entities of one type. No activity records are written."""
        items = list(items)
        if not items:
            return []
        entity_type = self._check_batch(items)
        policy = self.registry.resolve(entity_type)
        for item in items:
            self._preprocess(item, policy)
        start_time = time.time()
        collection = await self.get_collection(entity_type)
        result = await collection.insert_many(
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

    async def delete_one(self, entity_type: type, target: Any) -> DeleteResult:
        """See :meth:`MongoDbContext.delete_one`."""
        policy = self.registry.resolve(entity_type)
        collection = await self.get_collection(entity_type)
        selector = self._target_filter(entity_type, target)

        with self._entity_scope("delete", entity_type):
            if not policy.write_log:
                return await collection.delete_one(selector)

            snapshot = self._decode(entity_type, await collection.find_one(selector))
            if snapshot is None:
                logger.debug(f"No {entity_type.__name__} matched {selector}; nothing to record")
                return await collection.delete_one(selector)

            result = await collection.delete_one(self._pinned(selector, snapshot.id))
            if result.deleted_count:
                with self._audit_guard("delete", entity_type, snapshot.id):
                    await self.audit.record_delete(entity_type, snapshot.id, snapshot)
            return result

    async def delete(self, item: Any) -> DeleteResult:
        return await self.delete_one(type(item), item)

    async def delete_many(self, entity_type: type, filter: Mapping[str, Any]) -> DeleteResult:
        collection = await self.get_collection(entity_type)
        return await collection.delete_many(dict(filter))

    async def update_one(
        self, entity_type: type, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        """See :meth:`MongoDbContext.update_one`."""
        policy = self.registry.resolve(entity_type)
        collection = await self.get_collection(entity_type)
        selector = dict(filter)

        with self._entity_scope("update", entity_type):
            if not policy.write_log:
                return await collection.update_one(selector, update, **kwargs)

            before = self._decode(entity_type, await collection.find_one(selector))
            if before is None:
                return await collection.update_one(selector, update, **kwargs)

            result = await collection.update_one(
                self._pinned(selector, before.id), update, **kwargs
            )
            if not result.matched_count:
                return result
            after = await self.find_by_id(entity_type, before.id)
            if after is not None:
                with self._audit_guard("update", entity_type, before.id):
                    await self.audit.record_update(entity_type, before.id, before, after)
            return result

    async def update_many(
        self, entity_type: type, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        collection = await self.get_collection(entity_type)
        return await collection.update_many(dict(filter), update, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @timed_operation("context.close")
    async def close(self) -> None:
        """Close clients opened by this context. Safe to call twice."""
        if not self._mark_closed():
            return
        self.provisioner.close()
        if self._client is not None:
            self._client.close()
        logger.info("AsyncMongoDbContext closed")

    async def __aenter__(self) -> "AsyncMongoDbContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
