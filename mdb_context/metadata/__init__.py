"""
Entity metadata: index declarations, policies, the registry and manifests.
"""

from .manifest import MANIFEST_SCHEMA, validate_manifest
from .policy import EntityDeclaration, EntityPolicy, IndexKind, IndexSpec
from .registry import MetadataRegistry

__all__ = [
    "IndexKind",
    "IndexSpec",
    "EntityPolicy",
    "EntityDeclaration",
    "MetadataRegistry",
    "MANIFEST_SCHEMA",
    "validate_manifest",
]
