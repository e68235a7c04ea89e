"""
MongoDB client construction.

Opens synchronous (pymongo) and asyncio (motor) clients for the default
connection and for alternate connection targets, with pool and timeout
options taken from ContextConfig. Timeouts and retries belong to the driver:
this layer only passes the options through.
"""

import logging
from typing import Any, Mapping

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import MongoClient
from pymongo.errors import ConfigurationError as DriverConfigurationError
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from ..config import ContextConfig
from ..constants import (
    CLIENT_APP_NAME,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)

logger = logging.getLogger(__name__)

_CLIENT_ERRORS = (
    DriverConfigurationError,
    ConnectionFailure,
    ServerSelectionTimeoutError,
    ValueError,
    TypeError,
)

ConnectionSettings = str | Mapping[str, Any]


def client_options(config: ContextConfig | None = None) -> dict[str, Any]:
    """
    Client keyword options shared by every client the context opens.

    Args:
        config: Optional context configuration (defaults from constants otherwise)
    """
    options = (
        config.client_options()
        if config is not None
        else {
            "maxPoolSize": DEFAULT_MAX_POOL_SIZE,
            "minPoolSize": DEFAULT_MIN_POOL_SIZE,
            "serverSelectionTimeoutMS": DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
            "maxIdleTimeMS": DEFAULT_MAX_IDLE_TIME_MS,
        }
    )
    return {
        **options,
        "appname": CLIENT_APP_NAME,
        "retryWrites": True,
        "retryReads": True,
    }


def _client_arguments(
    settings: ConnectionSettings, config: ContextConfig | None
) -> tuple[tuple[Any, ...], dict[str, Any]]:
    options = client_options(config)
    if isinstance(settings, str):
        return (settings,), options
    return (), {**options, **dict(settings)}


def _describe(settings: ConnectionSettings) -> str:
    if isinstance(settings, str):
        # Strip credentials from the URI before logging
        scheme, _, rest = settings.partition("://")
        return f"{scheme}://{rest.rpartition('@')[2]}" if rest else settings
    return str(settings.get("host", "<settings>"))


def open_client(settings: ConnectionSettings, config: ContextConfig | None = None) -> MongoClient:
    """
    Open a pymongo client.

    Args:
        settings: MongoDB URI or mapping of MongoClient keyword arguments
        config: Optional context configuration for pool options

    Raises:
        pymongo.errors.ConfigurationError: If the URI or options are invalid
    """
    args, kwargs = _client_arguments(settings, config)
    try:
        client = MongoClient(*args, **kwargs)
    except _CLIENT_ERRORS as e:
        logger.error(f"Failed to create MongoDB client for {_describe(settings)}: {e}")
        raise
    logger.info(f"Opened MongoDB client for {_describe(settings)}")
    return client


def open_async_client(
    settings: ConnectionSettings, config: ContextConfig | None = None
) -> AsyncIOMotorClient:
    """
    Open a motor client. Same arguments as :func:`open_client`.
    """
    args, kwargs = _client_arguments(settings, config)
    try:
        client = AsyncIOMotorClient(*args, **kwargs)
    except _CLIENT_ERRORS as e:
        logger.error(f"Failed to create async MongoDB client for {_describe(settings)}: {e}")
        raise
    logger.info(f"Opened async MongoDB client for {_describe(settings)}")
    return client
