"""Tests for type descriptors, table structures and column maps."""

import pytest

from porter.exceptions import UndeclaredColumn, UnsupportedTypeDescriptor
from porter.models.schema import (
    ColumnKind,
    ColumnMap,
    ColumnSpec,
    TableStructure,
    TypeDescriptor,
)
from porter.models.structures import EXPORT_STRUCTURE, get_structure


class TestTypeDescriptor:
    """Parsing declared column types."""

    @pytest.mark.parametrize("declared", ["int", "int(11)", "tinyint(1)", "smallint", "mediumint", "integer", "int unsigned"])
    def test_integer_aliases(self, declared):
        """Narrow integer spellings normalize to integer."""
        assert TypeDescriptor.parse(declared).kind == ColumnKind.INTEGER

    def test_bigint(self):
        """bigint stays bigint."""
        assert TypeDescriptor.parse("bigint(20)").kind == ColumnKind.BIGINT

    def test_varchar_length(self):
        """varchar(N) keeps its length."""
        descriptor = TypeDescriptor.parse("varchar(50)")
        assert descriptor.kind == ColumnKind.VARCHAR
        assert descriptor.length == 50

    def test_varchar_default_length(self):
        """Unparsable varchar lengths fall back to 100."""
        assert TypeDescriptor.parse("varchar").length == 100
        assert TypeDescriptor.parse("varchar(abc)").length == 100
        assert TypeDescriptor.parse("varchar(1000)").length == 100

    def test_varbinary(self):
        """varbinary of any width is a binary blob."""
        assert TypeDescriptor.parse("varbinary(100)").kind == ColumnKind.VARBINARY

    def test_enum_from_list(self):
        """A list declares an enum over its options."""
        descriptor = TypeDescriptor.parse(["u", "m", "f"])
        assert descriptor.kind == ColumnKind.ENUM
        assert descriptor.options == ("u", "m", "f")

    def test_enum_from_string(self):
        """enum('a','b') strings declare an enum too."""
        descriptor = TypeDescriptor.parse("enum('yes','no')")
        assert descriptor.kind == ColumnKind.ENUM
        assert descriptor.options == ("yes", "no")

    def test_other_kinds(self):
        """Text, dates and floats used by the canonical structures."""
        assert TypeDescriptor.parse("mediumtext").kind == ColumnKind.TEXT
        assert TypeDescriptor.parse("timestamp").kind == ColumnKind.DATETIME
        assert TypeDescriptor.parse("date").kind == ColumnKind.DATE
        assert TypeDescriptor.parse("decimal(10,2)").kind == ColumnKind.FLOAT

    @pytest.mark.parametrize("declared", ["geometry", "", [], None, "json"])
    def test_unsupported(self, declared):
        """Anything outside the vocabulary is rejected."""
        with pytest.raises(UnsupportedTypeDescriptor):
            TypeDescriptor.parse(declared)

    def test_describe(self):
        """Descriptors render back to type strings."""
        assert TypeDescriptor.parse("char(10)").describe() == "varchar(10)"
        assert TypeDescriptor.parse("tinyint").describe() == "integer"


class TestTableStructure:
    """Ordered destination structures."""

    def test_preserves_order(self):
        """Columns keep their declared order."""
        structure = TableStructure({"b": "int", "a": "varchar(5)", "c": "text"})
        assert list(structure) == ["b", "a", "c"]

    def test_rejects_bad_type_at_declaration(self):
        """Types are resolved when the structure is built."""
        with pytest.raises(UnsupportedTypeDescriptor):
            TableStructure({"a": "point"})

    def test_with_columns(self):
        """Overrides retype existing columns and append new ones."""
        structure = TableStructure({"a": "int", "b": "varchar(5)"})
        merged = structure.with_columns({"b": "text", "c": "int"})

        assert list(merged) == ["a", "b", "c"]
        assert merged["b"].kind == ColumnKind.TEXT
        assert structure["b"].kind == ColumnKind.VARCHAR

    def test_canonical_structures(self):
        """Canonical entities are available by name."""
        assert "UserID" in get_structure("User")
        assert get_structure("User")["Gender"].options == ("u", "m", "f")
        assert set(EXPORT_STRUCTURE) >= {"User", "Discussion", "Comment", "ConversationMessage"}
        with pytest.raises(KeyError):
            get_structure("Nope")


class TestColumnMap:
    """Column map declarations and effective maps."""

    def test_bare_target(self):
        """A string entry only renames."""
        spec = ColumnSpec.from_declaration("id", "UserID")
        assert spec.target == "UserID"
        assert spec.filters == ()
        assert not spec.has_default

    def test_structured_entry(self):
        """Dict entries carry type, filters and default."""
        spec = ColumnSpec.from_declaration(
            "Real_name",
            {"Column": "FullName", "Type": "varchar(50)", "Filter": "HTMLDecoder", "Default": ""},
        )
        assert spec.target == "FullName"
        assert spec.type.length == 50
        assert spec.filters == ("HTMLDecoder",)
        assert spec.has_default
        assert spec.default == ""

    def test_type_overrides(self):
        """Typed entries add their target to the structure."""
        column_map = ColumnMap.from_declaration({
            "a": "A",
            "b": {"Column": "B", "Type": "varchar(10)"},
        })
        assert list(column_map.type_overrides()) == ["B"]

    def test_effective_adds_optional_identity(self):
        """Untargeted structure columns pass through by name, optionally."""
        structure = TableStructure({"UserID": "int", "Name": "varchar(50)", "Email": "varchar(100)"})
        column_map = ColumnMap.from_declaration({"id": "UserID"})

        effective = column_map.effective(structure)

        assert list(effective) == ["id", "Name", "Email"]
        assert effective["id"].required
        assert not effective["Name"].required

    def test_with_filters(self):
        """Extra filters append to the named columns' chains."""
        column_map = ColumnMap.from_declaration({"name": {"Column": "Name", "Filter": "strip_tags"}})
        extended = column_map.with_filters({"name": "lowercase"})
        assert extended["name"].filters == ("strip_tags", "lowercase")

    def test_with_filters_unknown_key(self):
        """Extra filters on a column the map does not have are refused."""
        column_map = ColumnMap.from_declaration({"name": "Name"})
        with pytest.raises(UndeclaredColumn) as exc_info:
            column_map.with_filters({"nmae": "lowercase"}, entity="User")
        assert exc_info.value.column == "nmae"
        assert exc_info.value.entity == "User"
