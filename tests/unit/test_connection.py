"""
Unit tests for client construction.
"""

from unittest.mock import patch

import pytest
from pymongo.errors import ConfigurationError as DriverConfigurationError

from mdb_context.config import ContextConfig
from mdb_context.constants import CLIENT_APP_NAME, DEFAULT_MAX_POOL_SIZE
from mdb_context.database.connection import client_options, open_async_client, open_client


class TestClientOptions:
    def test_defaults_without_config(self):
        options = client_options()
        assert options["maxPoolSize"] == DEFAULT_MAX_POOL_SIZE
        assert options["appname"] == CLIENT_APP_NAME
        assert options["retryWrites"] is True
        assert options["retryReads"] is True

    def test_config_values(self):
        config = ContextConfig.load(
            mongo_uri="mongodb://localhost", db_name="shop", max_pool_size=7, min_pool_size=1
        )
        options = client_options(config)
        assert options["maxPoolSize"] == 7
        assert options["minPoolSize"] == 1


class TestOpenClient:
    def test_uri_settings(self):
        with patch("mdb_context.database.connection.MongoClient") as mongo_client:
            client = open_client("mongodb://db:27017")

        assert client is mongo_client.return_value
        args, kwargs = mongo_client.call_args
        assert args == ("mongodb://db:27017",)
        assert kwargs["appname"] == CLIENT_APP_NAME

    def test_mapping_settings_override_defaults(self):
        with patch("mdb_context.database.connection.MongoClient") as mongo_client:
            open_client({"host": "db", "port": 27018, "maxPoolSize": 3})

        args, kwargs = mongo_client.call_args
        assert args == ()
        assert kwargs["host"] == "db"
        assert kwargs["port"] == 27018
        assert kwargs["maxPoolSize"] == 3

    def test_invalid_uri_propagates(self):
        with patch(
            "mdb_context.database.connection.MongoClient",
            side_effect=DriverConfigurationError("bad uri"),
        ):
            with pytest.raises(DriverConfigurationError):
                open_client("mongodb://user:secret@db")

    def test_async_client(self):
        with patch("mdb_context.database.connection.AsyncIOMotorClient") as motor_client:
            client = open_async_client("mongodb://db:27017")

        assert client is motor_client.return_value
        assert motor_client.call_args.kwargs["retryWrites"] is True
