"""
Unit tests for ContextConfig.
"""

import pytest

from mdb_context.config import ContextConfig
from mdb_context.constants import DEFAULT_MAX_POOL_SIZE, DEFAULT_SERVER_SELECTION_TIMEOUT_MS
from mdb_context.exceptions import ConfigurationError


class TestContextConfigLoad:
    def test_defaults(self):
        config = ContextConfig.load(mongo_uri="mongodb://localhost:27017", db_name="shop")
        assert config.max_pool_size == DEFAULT_MAX_POOL_SIZE
        assert config.server_selection_timeout_ms == DEFAULT_SERVER_SELECTION_TIMEOUT_MS
        assert config.default_write_log is False
        assert config.dict_as_documents is False

    def test_missing_db_name_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ContextConfig.load(mongo_uri="mongodb://localhost:27017")
        assert exc_info.value.config_key == "db_name"

    def test_pool_bounds_checked(self):
        with pytest.raises(ConfigurationError, match="min_pool_size"):
            ContextConfig.load(
                mongo_uri="mongodb://localhost", db_name="shop", max_pool_size=5, min_pool_size=10
            )

    def test_timeout_lower_bound(self):
        with pytest.raises(ConfigurationError):
            ContextConfig.load(
                mongo_uri="mongodb://localhost", db_name="shop", server_selection_timeout_ms=10
            )

    def test_config_is_frozen(self):
        config = ContextConfig.load(mongo_uri="mongodb://localhost", db_name="shop")
        with pytest.raises(Exception):
            config.db_name = "other"

    def test_client_options(self):
        config = ContextConfig.load(
            mongo_uri="mongodb://localhost", db_name="shop", max_pool_size=20, min_pool_size=2
        )
        options = config.client_options()
        assert options["maxPoolSize"] == 20
        assert options["minPoolSize"] == 2
        assert "serverSelectionTimeoutMS" in options
        assert "maxIdleTimeMS" in options


class TestContextConfigFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("DB_NAME", "inventory")
        monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "25")
        monkeypatch.setenv("MDB_CONTEXT_WRITE_LOG", "true")
        monkeypatch.setenv("MDB_CONTEXT_DICT_AS_DOCUMENTS", "1")

        config = ContextConfig.from_env()

        assert config.mongo_uri == "mongodb://db:27017"
        assert config.db_name == "inventory"
        assert config.max_pool_size == 25
        assert config.default_write_log is True
        assert config.default_preprocess is False
        assert config.dict_as_documents is True

    def test_overrides_take_precedence(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("DB_NAME", "inventory")
        config = ContextConfig.from_env(db_name="override")
        assert config.db_name == "override"

    def test_missing_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGO_URI", raising=False)
        monkeypatch.setenv("DB_NAME", "inventory")
        with pytest.raises(ConfigurationError) as exc_info:
            ContextConfig.from_env()
        assert exc_info.value.config_key == "mongo_uri"

    def test_invalid_integer_raises(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("DB_NAME", "inventory")
        monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "many")
        with pytest.raises(ConfigurationError):
            ContextConfig.from_env()
