"""
Unit tests for the activity record writers.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import AutoReconnect
from sample_entities import Order

from mdb_context.audit import AsyncAuditWriter, AuditWriter
from mdb_context.entities import ActivityKind, DiffEntry
from mdb_context.exceptions import ConfigurationError
from mdb_context.metadata import MetadataRegistry
from mdb_context.observability import get_metrics_collector


@pytest.fixture
def registry():
    registry = MetadataRegistry()
    registry.register(Order, collection_name="orders", write_log=True)
    return registry


class TestAuditWriter:
    def test_record_insert(self, registry):
        save = MagicMock()
        writer = AuditWriter(registry, save, current_actor=lambda: "alice")

        record = writer.record_insert(Order, "o-1")

        save.assert_called_once_with(record)
        assert record.kind is ActivityKind.INSERT
        assert record.actor == "alice"
        assert record.collection_name == "orders"
        assert record.obj_id == "o-1"
        assert get_metrics_collector().get_operation_count("audit.write") == 1

    def test_record_update_with_changes(self, registry):
        save = MagicMock()
        writer = AuditWriter(registry, save, current_actor=lambda: "alice")

        old, new = Order(id="o-1", total=10), Order(id="o-1", total=20)
        record = writer.record_update(Order, "o-1", old, new)

        save.assert_called_once()
        assert record.diff == (DiffEntry("total", 10, 20),)

    def test_record_update_without_changes_writes_nothing(self, registry):
        save = MagicMock()
        writer = AuditWriter(registry, save, current_actor=lambda: "alice")

        order = Order(id="o-1", total=10)
        assert writer.record_update(Order, "o-1", order, Order(id="o-1", total=10)) is None
        save.assert_not_called()

    def test_record_delete_stores_snapshot(self, registry):
        save = MagicMock()
        writer = AuditWriter(registry, save, current_actor=lambda: "alice")

        record = writer.record_delete(Order, "o-1", Order(id="o-1", total=5, customer="bob"))

        assert record.kind is ActivityKind.DELETE
        assert record.deleted_obj == {"_id": "o-1", "total": 5, "customer": "bob", "tags": []}

    def test_explicit_actor_wins(self, registry):
        writer = AuditWriter(registry, MagicMock(), current_actor=lambda: "alice")
        assert writer.record_insert(Order, "o-1", actor="bob").actor == "bob"

    def test_missing_actor_accessor_raises(self, registry):
        save = MagicMock()
        writer = AuditWriter(registry, save)

        with pytest.raises(ConfigurationError) as exc_info:
            writer.record_insert(Order, "o-1")

        assert exc_info.value.config_key == "current_actor"
        save.assert_not_called()

    def test_empty_actor_raises(self, registry):
        writer = AuditWriter(registry, MagicMock(), current_actor=lambda: None)
        with pytest.raises(ConfigurationError):
            writer.record_insert(Order, "o-1")

    def test_save_failure_propagates(self, registry):
        error = AutoReconnect("primary stepped down")
        writer = AuditWriter(registry, MagicMock(side_effect=error), current_actor=lambda: "a")

        with pytest.raises(AutoReconnect) as exc_info:
            writer.record_insert(Order, "o-1")

        assert exc_info.value is error
        metrics = get_metrics_collector().get_metrics("audit.write")["metrics"]
        assert metrics["audit.write[kind=insert]"]["error_count"] == 1


class TestAsyncAuditWriter:
    @pytest.mark.asyncio
    async def test_record_insert(self, registry):
        save = AsyncMock()
        writer = AsyncAuditWriter(registry, save, current_actor=lambda: "alice")

        record = await writer.record_insert(Order, "o-1")

        save.assert_awaited_once_with(record)
        assert record.collection_name == "orders"

    @pytest.mark.asyncio
    async def test_record_update_noop(self, registry):
        save = AsyncMock()
        writer = AsyncAuditWriter(registry, save, current_actor=lambda: "alice")

        order = Order(id="o-1", total=3)
        assert await writer.record_update(Order, "o-1", order, order) is None
        save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_delete(self, registry):
        save = AsyncMock()
        writer = AsyncAuditWriter(registry, save, current_actor=lambda: "alice")

        record = await writer.record_delete(Order, "o-1", Order(id="o-1"))

        assert record.kind is ActivityKind.DELETE
        save.assert_awaited_once()
