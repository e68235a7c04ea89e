"""
Database layer: client construction, connection routing and collection
provisioning.
"""

from .connection import client_options, open_async_client, open_client
from .provisioner import AsyncCollectionProvisioner, CollectionProvisioner, capped_options
from .routing import ConnectionRouter, ConnectionTarget, connection_targets_from_manifest

__all__ = [
    "client_options",
    "open_client",
    "open_async_client",
    "ConnectionTarget",
    "ConnectionRouter",
    "connection_targets_from_manifest",
    "CollectionProvisioner",
    "AsyncCollectionProvisioner",
    "capped_options",
]
