"""
Per-type repository views over a context.

A repository binds one entity type to a context so callers do not pass the
type on every call. It holds no state of its own: provisioning, caching and
activity logging all happen in the context.

Example:
    orders = context.repository(Order)
    order = orders.save(Order(total=10))
    orders.find_all({"total": {"$gt": 5}})
"""

from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Generic,
    Iterable,
    Iterator,
    Mapping,
    TypeVar,
)

if TYPE_CHECKING:
    from .async_context import AsyncMongoDbContext
    from .context import MongoDbContext

T = TypeVar("T")


class EntityRepository(Generic[T]):
    """Synchronous repository bound to a MongoDbContext."""

    def __init__(self, context: "MongoDbContext", entity_type: type[T]) -> None:
        self._context = context
        self.entity_type = entity_type

    @property
    def collection_name(self) -> str:
        return self._context.collection_name(self.entity_type)

    def get(self, entity_id: Any) -> T | None:
        return self._context.find_by_id(self.entity_type, entity_id)

    def find_one(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> T | None:
        return self._context.find_first(self.entity_type, filter, **kwargs)

    def find(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> Iterator[T]:
        return self._context.find(self.entity_type, filter, **kwargs)

    def find_all(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> list[T]:
        return self._context.find_all(self.entity_type, filter, **kwargs)

    def all(self) -> Iterator[T]:
        return self._context.all(self.entity_type)

    def exists(self, filter: Mapping[str, Any] | None = None) -> bool:
        return self._context.any(self.entity_type, filter)

    def count(self, filter: Mapping[str, Any] | None = None) -> int:
        return self._context.count(self.entity_type, filter)

    def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._context.aggregate(self.entity_type, pipeline)

    def save(self, item: T) -> T:
        return self._context.save(item)

    def add_many(self, items: Iterable[T]) -> list[str]:
        return self._context.insert_many(items)

    def delete(self, target: Any) -> bool:
        """Delete by instance, id or filter. Returns True if a document was removed."""
        return self._context.delete_one(self.entity_type, target).deleted_count > 0

    def delete_many(self, filter: Mapping[str, Any]) -> int:
        return self._context.delete_many(self.entity_type, filter).deleted_count

    def update_one(self, filter: Mapping[str, Any], update: Any) -> bool:
        return self._context.update_one(self.entity_type, filter, update).modified_count > 0

    def update_many(self, filter: Mapping[str, Any], update: Any) -> int:
        return self._context.update_many(self.entity_type, filter, update).modified_count


class AsyncEntityRepository(Generic[T]):
    """Asyncio repository bound to an AsyncMongoDbContext."""

    def __init__(self, context: "AsyncMongoDbContext", entity_type: type[T]) -> None:
        self._context = context
        self.entity_type = entity_type

    @property
    def collection_name(self) -> str:
        return self._context.collection_name(self.entity_type)

    async def get(self, entity_id: Any) -> T | None:
        return await self._context.find_by_id(self.entity_type, entity_id)

    async def find_one(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> T | None:
        return await self._context.find_first(self.entity_type, filter, **kwargs)

    def find(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> AsyncIterator[T]:
        return self._context.find(self.entity_type, filter, **kwargs)

    async def find_all(self, filter: Mapping[str, Any] | None = None, **kwargs: Any) -> list[T]:
        return await self._context.find_all(self.entity_type, filter, **kwargs)

    def all(self) -> AsyncIterator[T]:
        return self._context.all(self.entity_type)

    async def exists(self, filter: Mapping[str, Any] | None = None) -> bool:
        return await self._context.any(self.entity_type, filter)

    async def count(self, filter: Mapping[str, Any] | None = None) -> int:
        return await self._context.count(self.entity_type, filter)

    async def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return await self._context.aggregate(self.entity_type, pipeline)

    async def save(self, item: T) -> T:
        return await self._context.save(item)

    async def add_many(self, items: Iterable[T]) -> list[str]:
        return await self._context.insert_many(items)

    async def delete(self, target: Any) -> bool:
        result = await self._context.delete_one(self.entity_type, target)
        return result.deleted_count > 0

    async def delete_many(self, filter: Mapping[str, Any]) -> int:
        result = await self._context.delete_many(self.entity_type, filter)
        return result.deleted_count

    async def update_one(self, filter: Mapping[str, Any], update: Any) -> bool:
        result = await self._context.update_one(self.entity_type, filter, update)
        return result.modified_count > 0

    async def update_many(self, filter: Mapping[str, Any], update: Any) -> int:
        result = await self._context.update_many(self.entity_type, filter, update)
        return result.modified_count
