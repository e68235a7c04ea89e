"""
Configuration management for MDB_CONTEXT.

``ContextConfig`` can be built from direct parameters or from environment
variables. The MongoDbContext can still be used with a bare database handle
and no config at all; the config is only needed when the context opens its
own clients.
"""

import os
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from .constants import (
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    MIN_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


class ContextConfig(BaseModel):
    """
    MongoDB context configuration.

    Example:
        # Using environment variables
        config = ContextConfig.from_env()
        context = MongoDbContext.from_config(config, current_actor=lambda: "alice")

        # Or using direct parameters
        config = ContextConfig.load(mongo_uri="mongodb://localhost:27017", db_name="shop")
    """

    model_config = {"frozen": True}

    mongo_uri: str = Field(..., min_length=1, description="MongoDB connection URI")
    db_name: str = Field(..., min_length=1, description="Database name")
    max_pool_size: int = Field(DEFAULT_MAX_POOL_SIZE, ge=1)
    min_pool_size: int = Field(DEFAULT_MIN_POOL_SIZE, ge=0)
    server_selection_timeout_ms: int = Field(
        DEFAULT_SERVER_SELECTION_TIMEOUT_MS, ge=MIN_SERVER_SELECTION_TIMEOUT_MS
    )
    max_idle_time_ms: int = Field(DEFAULT_MAX_IDLE_TIME_MS, ge=0)
    default_write_log: bool = Field(
        False, description="Write activity records for types without an explicit policy"
    )
    default_preprocess: bool = Field(
        False, description="Run the preprocessor for types without an explicit policy"
    )
    dict_as_documents: bool = Field(
        False, description="Store mapping fields as arrays of {k, v} documents"
    )

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "ContextConfig":
        if self.min_pool_size > self.max_pool_size:
            raise ValueError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})"
            )
        return self

    @classmethod
    def load(cls, **values: Any) -> "ContextConfig":
        """
        Build a config, converting validation failures to ConfigurationError.

        Raises:
            ConfigurationError: If a value is missing or out of range
        """
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ConfigurationError(
                f"Invalid context configuration: {first.get('msg')}",
                config_key=key,
                config_value=first.get("input") if key else None,
            ) from e

    @classmethod
    def from_env(cls, **overrides: Any) -> "ContextConfig":
        """
        Build a config from environment variables.

        Explicit keyword overrides take precedence over the environment.

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        values: dict[str, Any] = {
            "mongo_uri": os.getenv("MONGO_URI", ""),
            "db_name": os.getenv("DB_NAME", ""),
            "max_pool_size": os.getenv("MONGO_MAX_POOL_SIZE", str(DEFAULT_MAX_POOL_SIZE)),
            "min_pool_size": os.getenv("MONGO_MIN_POOL_SIZE", str(DEFAULT_MIN_POOL_SIZE)),
            "server_selection_timeout_ms": os.getenv(
                "MONGO_SERVER_SELECTION_TIMEOUT_MS", str(DEFAULT_SERVER_SELECTION_TIMEOUT_MS)
            ),
            "max_idle_time_ms": os.getenv("MONGO_MAX_IDLE_TIME_MS", str(DEFAULT_MAX_IDLE_TIME_MS)),
            "default_write_log": _env_flag("MDB_CONTEXT_WRITE_LOG"),
            "default_preprocess": _env_flag("MDB_CONTEXT_PREPROCESS"),
            "dict_as_documents": _env_flag("MDB_CONTEXT_DICT_AS_DOCUMENTS"),
        }
        values.update(overrides)
        return cls.load(**values)

    def client_options(self) -> dict[str, Any]:
        """Keyword arguments for MongoClient / AsyncIOMotorClient."""
        return {
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "maxIdleTimeMS": self.max_idle_time_ms,
        }
