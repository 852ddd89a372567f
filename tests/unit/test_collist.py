"""
Unit tests for column list and sort key construction.
"""

import pytest

from tablesync.collist import build_column_set, choose_ranking_key
from tablesync.config import EndpointConfig, Role
from tablesync.dialects import MySQLDialect, OracleDialect, PostgreSQLDialect
from tablesync.errors import InvalidKeyColumn
from tablesync.schema import ColumnDescriptor, ColumnSchema, ColumnType


def _schema(*names, excluded=(), masked=(), long_values=()):
    return ColumnSchema([
        ColumnDescriptor(
            name,
            None,
            "VARCHAR",
            ColumnType.UNKNOWN if name in excluded else ColumnType.STRING,
            excluded=name in excluded,
            masked=name in masked,
            long_value=name in long_values,
        )
        for name in names
    ])


class TestChooseRankingKey:
    """Test ranking key selection."""

    def test_sort_override_wins(self):
        config = EndpointConfig(table="t", unique_keys=[("id",)], sort_key=("b", "a"))

        assert choose_ranking_key(config) == ("b", "a")

    def test_first_non_empty_unique_key(self):
        config = EndpointConfig(table="t", unique_keys=[(), ("a", "b", "c"), ("d",)])

        assert choose_ranking_key(config) == ("a", "b", "c")

    def test_none(self):
        assert choose_ranking_key(EndpointConfig(table="t")) is None


class TestBuildColumnSet:
    """Test column ordering, masking and sort columns."""

    def test_default_order_sorts_all_but_long_values(self):
        schema = _schema("id", "body", "name", long_values={"body"})

        column_set = build_column_set(schema, EndpointConfig(table="t"), PostgreSQLDialect())

        assert column_set.output_column_names == ("id", "body", "name")
        assert column_set.sort_columns == ("id", "name")
        assert column_set.ranking_key is None

    def test_ranking_key_moves_to_front(self):
        schema = _schema("a", "b", "c", "d", "e")
        config = EndpointConfig(table="t", unique_keys=[("d", "b")])

        column_set = build_column_set(schema, config, PostgreSQLDialect())

        assert column_set.output_column_names == ("d", "b", "a", "c", "e")
        assert column_set.sort_columns == ("d", "b")
        assert column_set.positions == {"d": 0, "b": 1, "a": 2, "c": 3, "e": 4}

    def test_excluded_columns_dropped(self):
        schema = _schema("id", "photo", "name", excluded={"photo"})

        column_set = build_column_set(schema, EndpointConfig(table="t"), PostgreSQLDialect())

        assert "photo" not in column_set.output_column_names
        assert column_set.select_columns == ("id", "name")
        assert column_set.insert_columns == ("id", "name")

    def test_mysql_quotes_and_null_pairs(self):
        schema = _schema("id", "name")
        config = EndpointConfig(table="t", unique_keys=[("name",)])

        column_set = build_column_set(schema, config, MySQLDialect())

        assert column_set.select_columns == ("`name`", "`id`")
        assert column_set.sort_columns == ("`name` IS NULL", "`name`")
        assert column_set.output_column_names == ("name", "id")

    def test_mask_on_source_only(self):
        schema = _schema("id", "ssn", masked={"ssn"})
        masks = {"ssn": "XXX"}
        source = EndpointConfig(table="t", masked_columns=masks)
        dest = EndpointConfig(table="t", masked_columns=masks, role=Role.DESTINATION)

        source_set = build_column_set(schema, source, OracleDialect())
        dest_set = build_column_set(schema, dest, OracleDialect())

        assert source_set.select_columns == ("id", "'XXX' AS ssn")
        assert dest_set.select_columns == ("id", "ssn")
        assert source_set.insert_columns == dest_set.insert_columns == ("id", "ssn")
        assert source_set.output_column_names == dest_set.output_column_names

    def test_mysql_mask_literal_escaped(self):
        schema = _schema("id", "note", masked={"note"})
        config = EndpointConfig(table="t", masked_columns={"note": "it's 100%"})

        column_set = build_column_set(schema, config, MySQLDialect())

        assert column_set.select_columns[1] == "'it''s 100%%' AS `note`"

    @pytest.mark.parametrize("key", [("missing",), ("photo",)])
    def test_invalid_sort_key(self, key):
        schema = _schema("id", "photo", excluded={"photo"})
        config = EndpointConfig(table="t", sort_key=key)

        with pytest.raises(InvalidKeyColumn):
            build_column_set(schema, config, PostgreSQLDialect())

    def test_row_mapping(self):
        schema = _schema("id", "name")
        column_set = build_column_set(schema, EndpointConfig(table="t"), PostgreSQLDialect())

        assert column_set.row_mapping((1, None)) == {"id": 1, "name": None}
