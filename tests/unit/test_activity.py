"""
Unit tests for activity records and preprocessors.
"""

import pytest
from sample_entities import Customer

from mdb_context.entities import (ActivityKind, ActivityRecord, DiffEntry,
                                  TimestampPreprocessor)


class TestActivityRecord:
    def test_insert_variant(self):
        record = ActivityRecord.insert("alice", "orders", "o-1")
        assert record.kind is ActivityKind.INSERT
        assert record.diff is None
        assert record.deleted_obj is None
        assert record.timestamp is not None
        assert record.timestamp.microsecond % 1000 == 0

    def test_update_variant(self):
        record = ActivityRecord.update("alice", "orders", "o-1", [DiffEntry("total", 1, 2)])
        assert record.kind is ActivityKind.UPDATE
        assert record.diff == (DiffEntry("total", 1, 2),)

    def test_delete_variant(self):
        record = ActivityRecord.delete("alice", "orders", "o-1", {"total": 2})
        assert record.kind is ActivityKind.DELETE
        assert record.deleted_obj == {"total": 2}

    def test_kind_coerced_from_string(self):
        assert ActivityRecord(kind="delete").kind is ActivityKind.DELETE

    def test_fields_are_read_only(self):
        record = ActivityRecord.insert("alice", "orders", "o-1")
        with pytest.raises(AttributeError):
            record.actor = "mallory"

    def test_id_assigned_once(self):
        record = ActivityRecord.insert("alice", "orders", "o-1")
        record.id = "a-1"
        assert record.id == "a-1"
        with pytest.raises(AttributeError):
            record.id = "a-2"


class TestTimestampPreprocessor:
    def test_sets_created_once_and_updated_each_time(self):
        customer = Customer(name="Ada")
        preprocessor = TimestampPreprocessor()

        preprocessor.preprocess(customer)
        created = customer.created_at
        assert created is not None
        assert customer.updated_at == created

        customer.updated_at = None
        preprocessor.preprocess(customer)
        assert customer.created_at == created
        assert customer.updated_at is not None
