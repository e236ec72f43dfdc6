"""Tests for the async PostgreSQL schema introspector.

No live database: psycopg's AsyncConnection and cursors are mocked, and
each test feeds the rows the information_schema queries would return.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from model_sync.schema.introspector import SchemaIntrospector
from model_sync.schema.models import LogicalType


def _connected(*results: list[tuple]) -> tuple[SchemaIntrospector, AsyncMock]:
    """Introspector wired to a mock connection whose successive
    ``fetchall()`` calls return *results* in order."""
    introspector = SchemaIntrospector("postgresql://localhost/app_test")

    mock_cursor = AsyncMock()
    mock_cursor.fetchall.side_effect = list(results)

    mock_conn = MagicMock()
    mock_ctx = MagicMock()
    mock_ctx.__aenter__ = AsyncMock(return_value=mock_cursor)
    mock_ctx.__aexit__ = AsyncMock(return_value=None)
    mock_conn.cursor.return_value = mock_ctx

    introspector._conn = mock_conn
    return introspector, mock_cursor


# column_name, data_type, udt_name, is_nullable, column_default, max_length, is_identity
PEOPLE_COLUMNS = [
    ("id", "integer", "int4", "NO", None, None, "YES"),
    ("firstName", "character varying", "varchar", "YES", None, 100, "NO"),
    ("email", "text", "text", "NO", "'none'::text", None, "NO"),
    ("status", "USER-DEFINED", "enum_People_status", "YES", None, None, "NO"),
    ("location", "USER-DEFINED", "geometry", "YES", None, None, "NO"),
    ("createdAt", "timestamp with time zone", "timestamptz", "NO", None, None, "NO"),
]

PEOPLE_KEYS = [
    ("People_pkey", "PRIMARY KEY", "id"),
    ("People_email_key", "UNIQUE", "email"),
    ("People_multi_key", "UNIQUE", "firstName"),
    ("People_multi_key", "UNIQUE", "status"),
]

PEOPLE_ENUMS = [
    ("enum_People_status", "active"),
    ("enum_People_status", "archived"),
]


# ============================================================
# Test: Connection lifecycle
# ============================================================


class TestConnectionLifecycle:
    """Verify async context manager behavior and connection checks."""

    def test_describe_requires_connection(self) -> None:
        introspector = SchemaIntrospector("postgresql://localhost/test")
        with pytest.raises(RuntimeError, match="not connected"):
            asyncio.run(introspector.describe("People"))

    def test_aenter_connects_with_timeout(self) -> None:
        introspector = SchemaIntrospector("postgresql://localhost/test", connect_timeout=3)
        mock_conn = AsyncMock()
        with patch(
            "model_sync.schema.introspector.psycopg.AsyncConnection.connect",
            new_callable=AsyncMock,
            return_value=mock_conn,
        ) as mock_connect:
            result = asyncio.run(introspector.__aenter__())

        assert result is introspector
        mock_connect.assert_awaited_once_with("postgresql://localhost/test", connect_timeout=3)

    def test_aexit_closes(self) -> None:
        introspector = SchemaIntrospector("postgresql://localhost/test")
        mock_conn = AsyncMock()
        introspector._conn = mock_conn

        asyncio.run(introspector.__aexit__(None, None, None))

        mock_conn.close.assert_awaited_once()
        assert introspector._conn is None

    def test_test_connection_success(self) -> None:
        introspector, cursor = _connected()
        cursor.fetchone.return_value = (1,)
        assert asyncio.run(introspector.test_connection()) is True
        cursor.execute.assert_awaited_once_with("SELECT 1")

    def test_test_connection_failure(self) -> None:
        introspector, cursor = _connected()
        cursor.execute.side_effect = psycopg.Error("connection lost")
        with pytest.raises(ConnectionError, match="Connection test failed"):
            asyncio.run(introspector.test_connection())


# ============================================================
# Test: Table listing
# ============================================================


class TestListTables:
    """Verify table listing and exclusions."""

    def test_excludes_default_tables(self) -> None:
        introspector, _ = _connected([("People",), ("schema_migrations",), ("Tags",)])
        assert asyncio.run(introspector.list_tables()) == ["People", "Tags"]

    def test_custom_exclusions(self) -> None:
        introspector, cursor = _connected([("People",), ("Tags",)])
        introspector._excluded_tables = {"Tags"}
        assert asyncio.run(introspector.list_tables()) == ["People"]

    def test_database_name(self) -> None:
        introspector, _ = _connected([("app_test",)])
        assert asyncio.run(introspector.get_database_name()) == "app_test"


# ============================================================
# Test: describe()
# ============================================================


class TestDescribe:
    """Verify live table description and type mapping."""

    def test_absent_table_returns_none(self) -> None:
        introspector, cursor = _connected([])
        assert asyncio.run(introspector.describe("Ghosts")) is None
        assert cursor.execute.await_count == 1

    def test_columns_in_ordinal_order(self) -> None:
        introspector, _ = _connected([(1,)], PEOPLE_COLUMNS, PEOPLE_KEYS, PEOPLE_ENUMS)
        schema = asyncio.run(introspector.describe("People"))

        assert schema.name == "People"
        assert schema.column_names == [
            "id", "firstName", "email", "status", "location", "createdAt",
        ]

    def test_type_mapping(self) -> None:
        introspector, _ = _connected([(1,)], PEOPLE_COLUMNS, PEOPLE_KEYS, PEOPLE_ENUMS)
        schema = asyncio.run(introspector.describe("People"))
        types = {c.name: c.logical_type for c in schema.columns}

        assert types == {
            "id": LogicalType.INTEGER,
            "firstName": LogicalType.STRING,
            "email": LogicalType.STRING,
            "status": LogicalType.ENUM,
            "location": LogicalType.UNKNOWN,
            "createdAt": LogicalType.DATETIME,
        }

    def test_unknown_type_keeps_native_name(self) -> None:
        introspector, _ = _connected([(1,)], PEOPLE_COLUMNS, PEOPLE_KEYS, PEOPLE_ENUMS)
        schema = asyncio.run(introspector.describe("People"))
        assert schema.get_column("location").native_type == "geometry"

    def test_column_facets(self) -> None:
        introspector, _ = _connected([(1,)], PEOPLE_COLUMNS, PEOPLE_KEYS, PEOPLE_ENUMS)
        schema = asyncio.run(introspector.describe("People"))

        id_col = schema.get_column("id")
        assert id_col.primary_key and id_col.auto_increment and not id_col.nullable
        assert schema.get_column("firstName").length == 100
        assert schema.get_column("email").unique is True
        assert schema.get_column("email").default == "'none'::text"
        assert schema.get_column("status").enum_values == ("active", "archived")

    def test_multi_column_unique_not_reported(self) -> None:
        """Only single-column unique constraints mark a column unique."""
        introspector, _ = _connected([(1,)], PEOPLE_COLUMNS, PEOPLE_KEYS, PEOPLE_ENUMS)
        schema = asyncio.run(introspector.describe("People"))
        assert schema.get_column("firstName").unique is False
        assert schema.get_column("status").unique is False

    def test_serial_column_is_auto_increment(self) -> None:
        columns = [
            ("id", "integer", "int4", "NO", "nextval('\"Tags_id_seq\"'::regclass)", None, "NO"),
        ]
        introspector, _ = _connected([(1,)], columns, [])
        schema = asyncio.run(introspector.describe("Tags"))

        id_col = schema.get_column("id")
        assert id_col.auto_increment is True
        assert id_col.default is None

    def test_no_enum_query_without_user_defined_types(self) -> None:
        columns = [("name", "text", "text", "YES", None, None, "NO")]
        introspector, cursor = _connected([(1,)], columns, [])
        asyncio.run(introspector.describe("Tags"))
        assert cursor.execute.await_count == 3
