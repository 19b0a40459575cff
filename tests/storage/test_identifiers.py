"""
Tests for identifier parsing and classification.

============================================================
PURPOSE
============================================================
Covers the full classification table:
- every input category yields exactly one kind
- a configured name column wins over UUID detection
- numeric identifiers need a key column

============================================================
"""

import pytest

from storage import (
    Empty,
    FieldMapping,
    IdentifierKind,
    Record,
    SameKindReference,
    Scalar,
    classify,
    is_uuid,
    parse_identifier,
)

UUID_VALUE = "6F9619FF-8B86-D011-B42D-00C04FC964FF"


class OtherRecord(Record):
    my_table = "others"


# ============================================================
# PARSING TESTS
# ============================================================

class TestParseIdentifier:
    """Raw values become variants at the boundary."""

    @pytest.mark.parametrize("value", [7, 7.5, "ann", UUID_VALUE, 0, ""])
    def test_scalars(self, value):
        assert parse_identifier(value) == Scalar(value)

    @pytest.mark.parametrize("value", [None, True, False, object(), [1, 2], (1,)])
    def test_empty(self, value):
        assert isinstance(parse_identifier(value), Empty)

    def test_mapping(self):
        parsed = parse_identifier({"id": 1})
        assert isinstance(parsed, FieldMapping)
        assert parsed.values == {"id": 1}

    def test_reference(self):
        other = OtherRecord()
        parsed = parse_identifier(other, reference_type=Record)
        assert isinstance(parsed, SameKindReference)
        assert parsed.record is other

    def test_reference_needs_reference_type(self):
        assert isinstance(parse_identifier(OtherRecord()), Empty)

    def test_variants_pass_through(self):
        variant = Scalar(3)
        assert parse_identifier(variant) is variant


# ============================================================
# CLASSIFICATION TESTS
# ============================================================

def kind_of(value, key_column="id", name_column=""):
    return classify(parse_identifier(value, reference_type=Record), key_column, name_column)


class TestClassify:
    """Decision table."""

    @pytest.mark.parametrize("value", [42, 4.2, 0, -1])
    def test_numeric_with_key_column(self, value):
        assert kind_of(value) == IdentifierKind.ID

    def test_numeric_without_key_column(self):
        assert kind_of(42, key_column="") == IdentifierKind.UNKNOWN

    def test_string_with_name_column(self):
        assert kind_of("ann", name_column="login") == IdentifierKind.NAME

    def test_uuid_string_with_name_column_is_name(self):
        assert kind_of(UUID_VALUE, name_column="login") == IdentifierKind.NAME

    def test_uuid_string_without_name_column(self):
        assert kind_of(UUID_VALUE) == IdentifierKind.UUID
        assert kind_of(UUID_VALUE.lower()) == IdentifierKind.UUID

    @pytest.mark.parametrize("value", ["ann", "", "6F9619FF-8B86-D011-B42D", "42"])
    def test_other_strings(self, value):
        assert kind_of(value) == IdentifierKind.UNKNOWN

    def test_mapping(self):
        assert kind_of({"name": "Ann"}) == IdentifierKind.VALUES
        assert kind_of({}) == IdentifierKind.VALUES

    def test_record_instance(self):
        assert kind_of(OtherRecord()) == IdentifierKind.REUSE

    @pytest.mark.parametrize("value", [None, True, False, object(), [1]])
    def test_unknown(self, value):
        assert kind_of(value) == IdentifierKind.UNKNOWN

    @pytest.mark.parametrize(
        "value",
        [1, 1.5, "x", UUID_VALUE, {"a": 1}, OtherRecord(), None, True, b"raw"],
    )
    @pytest.mark.parametrize("key_column", ["id", ""])
    @pytest.mark.parametrize("name_column", ["login", ""])
    def test_total(self, value, key_column, name_column):
        assert isinstance(kind_of(value, key_column, name_column), IdentifierKind)


class TestIsUuid:
    """UUID shape detection."""

    def test_shapes(self):
        assert is_uuid("0f8fad5b-d9cb-469f-a165-70867728950e")
        assert is_uuid(UUID_VALUE)
        assert not is_uuid("0f8fad5bd9cb469fa16570867728950e")
        assert not is_uuid("0f8fad5b-d9cb-469f-a165-70867728950e-")
        assert not is_uuid("zf8fad5b-d9cb-469f-a165-70867728950e")
