"""
Custom exceptions for MDB_CONTEXT.

Driver failures (``pymongo.errors.PyMongoError`` and subclasses) are never
wrapped: callers see the driver's native error. The classes below cover the
conditions this layer detects itself.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple


class MongoContextError(RuntimeError):
    """
    Base exception for MDB_CONTEXT errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (entity_type,
                 collection_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(MongoContextError):
    """
    Raised when configuration is invalid or missing.

    Covers invalid settings, unknown index kinds, late or duplicate entity
    registrations, and a missing actor accessor while audit logging is enabled.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ManifestValidationError(ConfigurationError):
    """
    Raised when an entity manifest does not match the manifest schema.

    Attributes:
        message: Error message
        error_paths: List of JSON paths with validation errors
    """

    def __init__(
        self,
        message: str,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.error_paths = error_paths


class ProvisioningError(MongoContextError):
    """
    Raised when a collection or index cannot be provisioned as declared.

    The typical cause is an existing index whose keys or options conflict with
    the declaration. The driver error is chained as ``__cause__``.

    Attributes:
        collection_name: Collection being provisioned
        index_keys: Index keys that failed (if an index was involved)
    """

    def __init__(
        self,
        message: str,
        collection_name: Optional[str] = None,
        index_keys: Optional[Sequence[Tuple[str, Any]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection_name:
            context["collection_name"] = collection_name
        if index_keys:
            context["index_keys"] = list(index_keys)
        super().__init__(message, context=context)
        self.collection_name = collection_name
        self.index_keys = list(index_keys) if index_keys else None
