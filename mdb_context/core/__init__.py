"""
Entity access facades.
"""

from .async_context import AsyncMongoDbContext
from .context import MongoDbContext
from .repository import AsyncEntityRepository, EntityRepository

__all__ = [
    "MongoDbContext",
    "AsyncMongoDbContext",
    "EntityRepository",
    "AsyncEntityRepository",
]
