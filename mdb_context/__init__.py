"""
MDB_CONTEXT - typed entity access for MongoDB

Maps dataclass entities to collections, provisions capped collections and
indexes on first use, routes selected types to other databases, and keeps an
activity trail of inserts, updates and deletes.
"""

# Audit trail
from .audit import AsyncAuditWriter, AuditWriter, diff
# Configuration
from .config import ContextConfig
# Core facades
from .core import AsyncEntityRepository, AsyncMongoDbContext, EntityRepository, MongoDbContext
# Database layer
from .database import (AsyncCollectionProvisioner, CollectionProvisioner, ConnectionRouter,
                       ConnectionTarget)
# Entity model
from .entities import (ActivityKind, ActivityRecord, DiffEntry, DocumentCodec, Entity,
                       SavePreprocessor, TimestampedEntity, TimestampPreprocessor)
from .exceptions import (ConfigurationError, ManifestValidationError, MongoContextError,
                         ProvisioningError)
# Metadata
from .metadata import EntityPolicy, IndexKind, IndexSpec, MetadataRegistry

__version__ = "0.1.0"

__all__ = [
    # Core
    "MongoDbContext",
    "AsyncMongoDbContext",
    "EntityRepository",
    "AsyncEntityRepository",
    "ContextConfig",
    # Entities
    "Entity",
    "TimestampedEntity",
    "SavePreprocessor",
    "TimestampPreprocessor",
    "ActivityKind",
    "ActivityRecord",
    "DiffEntry",
    "DocumentCodec",
    # Metadata
    "IndexKind",
    "IndexSpec",
    "EntityPolicy",
    "MetadataRegistry",
    # Database
    "ConnectionTarget",
    "ConnectionRouter",
    "CollectionProvisioner",
    "AsyncCollectionProvisioner",
    # Audit
    "diff",
    "AuditWriter",
    "AsyncAuditWriter",
    # Errors
    "MongoContextError",
    "ConfigurationError",
    "ManifestValidationError",
    "ProvisioningError",
]
