"""
Unit tests for index declarations.
"""

import pytest

from mdb_context.exceptions import ConfigurationError
from mdb_context.metadata.policy import IndexKind, IndexSpec


class TestIndexKindParse:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("ascending", IndexKind.ASCENDING),
            ("DESC", IndexKind.DESCENDING),
            ("2dsphere", IndexKind.GEO2DSPHERE),
            ("geo2d", IndexKind.GEO2D),
            (1, IndexKind.ASCENDING),
            (-1, IndexKind.DESCENDING),
            (IndexKind.TEXT, IndexKind.TEXT),
        ],
    )
    def test_accepted_spellings(self, value, expected):
        assert IndexKind.parse(value) is expected

    @pytest.mark.parametrize("value", ["wildcard", 2, True, None])
    def test_unknown_kind_raises(self, value):
        with pytest.raises(ConfigurationError):
            IndexKind.parse(value)


class TestIndexSpec:
    def test_single_field_string(self):
        spec = IndexSpec(fields="email", unique=True)
        assert spec.fields == ("email",)
        assert spec.types == ()
        assert not spec.is_compound

    def test_kinds_default_to_ascending(self):
        spec = IndexSpec(fields=("a", "b", "c"), types=("descending",))
        assert spec.kind_for(0) is IndexKind.DESCENDING
        assert spec.kind_for(1) is IndexKind.ASCENDING
        assert spec.kind_for(2) is IndexKind.ASCENDING
        assert spec.is_compound

    def test_empty_fields_rejected(self):
        with pytest.raises(ConfigurationError):
            IndexSpec(fields=())

    def test_more_kinds_than_fields_rejected(self):
        with pytest.raises(ConfigurationError):
            IndexSpec(fields=("a",), types=("ascending", "descending"))

    def test_negative_ttl_rejected(self):
        with pytest.raises(ConfigurationError):
            IndexSpec(fields="created_at", expire_after_seconds=-1)

    def test_spec_is_immutable(self):
        spec = IndexSpec(fields="a")
        with pytest.raises(AttributeError):
            spec.unique = True
