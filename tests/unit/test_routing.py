"""
Unit tests for connection routing.
"""

import pytest
from sample_entities import Invoice, Order

from mdb_context.database.routing import (ConnectionRouter, ConnectionTarget,
                                          connection_targets_from_manifest)
from mdb_context.exceptions import ConfigurationError, ManifestValidationError

BILLING = ConnectionTarget("Invoice", "mongodb://billing:27017", "billing")


class TestConnectionRouter:
    def test_route_returns_override(self):
        router = ConnectionRouter([BILLING])
        assert router.route("Invoice") is BILLING

    def test_route_returns_none_for_default(self):
        router = ConnectionRouter([BILLING])
        assert router.route("Order") is None

    def test_empty_router(self):
        router = ConnectionRouter()
        assert router.route("Invoice") is None
        assert len(router) == 0

    def test_route_entity_prefers_class_name(self):
        by_collection = ConnectionTarget("invoices", "mongodb://archive", "archive")
        router = ConnectionRouter([by_collection, BILLING])
        assert router.route_entity(Invoice, "invoices") is BILLING

    def test_route_entity_falls_back_to_collection_name(self):
        by_collection = ConnectionTarget("orders", "mongodb://archive", "archive")
        router = ConnectionRouter([by_collection])
        assert router.route_entity(Order, "orders") is by_collection

    def test_duplicate_target_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            ConnectionRouter([BILLING, ConnectionTarget("Invoice", "mongodb://x", "x")])

    def test_target_without_db_name_rejected(self):
        with pytest.raises(ConfigurationError):
            ConnectionRouter([ConnectionTarget("Invoice", "mongodb://x", "")])

    def test_targets_returns_copy(self):
        router = ConnectionRouter([BILLING])
        router.targets.clear()
        assert len(router) == 1


class TestTargetsFromManifest:
    def test_uri_and_settings_entries(self):
        manifest = {
            "connections": [
                {"type": "Invoice", "uri": "mongodb://billing:27017", "db_name": "billing"},
                {"type": "PageView", "settings": {"host": "analytics"}, "db_name": "analytics"},
            ]
        }
        targets = connection_targets_from_manifest(manifest)
        assert [t.type_name for t in targets] == ["Invoice", "PageView"]
        assert targets[0].connection_settings == "mongodb://billing:27017"
        assert targets[1].connection_settings == {"host": "analytics"}
        assert targets[1].db_name == "analytics"

    def test_no_connections(self):
        assert connection_targets_from_manifest({"entities": {}}) == []

    def test_invalid_manifest_raises(self):
        with pytest.raises(ManifestValidationError):
            connection_targets_from_manifest({"connections": [{"type": "Invoice"}]})
