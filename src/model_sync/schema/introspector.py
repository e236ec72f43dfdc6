"""PostgreSQL schema introspection via information_schema (async).

This module queries the live database for the actual structure of a table:
- Columns, native data types, nullability, defaults, string lengths
- Primary-key and single-column unique constraints
- Identity / serial columns (auto-increment)
- Enum types and their labels

Native types are mapped onto ``LogicalType``.  Types with no mapping come
back as ``LogicalType.UNKNOWN`` with the native name kept in
``ColumnSchema.native_type``, so one odd column never fails the whole call.

All queries are read-only.

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.

Usage:
    async with SchemaIntrospector(database_url) as introspector:
        actual = await introspector.describe("People")
        if actual is None:
            print("table does not exist")
"""

import logging

import psycopg

from model_sync.schema.models import ColumnSchema, LogicalType, TableSchema

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects PostgreSQL table structure.

    Works with any PostgreSQL database (RDS, Supabase, local).  The
    connection is opened by ``__aenter__`` and closed by ``__aexit__``;
    the caller owns its lifecycle.

    Args:
        database_url: PostgreSQL connection URL.
        excluded_tables: Table names ``list_tables()`` never reports.
            Defaults to ``EXCLUDED_TABLES_DEFAULT``.
        connect_timeout: Connection timeout in seconds.
        schema_name: PostgreSQL schema to inspect (default: public).
    """

    EXCLUDED_TABLES_DEFAULT = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    # information_schema data_type -> logical type
    NATIVE_TYPES: dict[str, LogicalType] = {
        "character varying": LogicalType.STRING,
        "varchar": LogicalType.STRING,
        "character": LogicalType.STRING,
        "char": LogicalType.STRING,
        "text": LogicalType.STRING,
        "smallint": LogicalType.INTEGER,
        "integer": LogicalType.INTEGER,
        "bigint": LogicalType.INTEGER,
        "real": LogicalType.FLOAT,
        "double precision": LogicalType.FLOAT,
        "numeric": LogicalType.FLOAT,
        "boolean": LogicalType.BOOLEAN,
        "timestamp with time zone": LogicalType.DATETIME,
        "timestamp without time zone": LogicalType.DATETIME,
        "bytea": LogicalType.BINARY,
    }

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | None = None,
        connect_timeout: int = 10,
        schema_name: str = "public",
    ) -> None:
        self._database_url = database_url
        self._excluded_tables = (
            set(self.EXCLUDED_TABLES_DEFAULT) if excluded_tables is None else excluded_tables
        )
        self._connect_timeout = connect_timeout
        self._schema_name = schema_name
        self._conn: psycopg.AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        self._conn = await psycopg.AsyncConnection.connect(
            self._database_url,
            connect_timeout=self._connect_timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> psycopg.AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use 'async with'.")
        return self._conn

    async def _fetchall(self, query: str, params: tuple = ()) -> list[tuple]:
        conn = self._require_connection()
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` to verify the connection.

        Raises:
            RuntimeError: If not connected.
            ConnectionError: If the query fails.
        """
        conn = self._require_connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                row = await cur.fetchone()
                return row is not None and row[0] == 1
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e

    async def get_database_name(self) -> str:
        """Return the name of the connected database."""
        rows = await self._fetchall("SELECT current_database()")
        return rows[0][0]

    async def list_tables(self) -> list[str]:
        """Return all base table names in the schema, minus excluded tables."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await self._fetchall(query, (self._schema_name,))
        return [row[0] for row in rows if row[0] not in self._excluded_tables]

    async def describe(self, table_name: str) -> TableSchema | None:
        """Describe the live structure of *table_name*.

        Returns:
            ``TableSchema`` with columns in ordinal order, or ``None`` if the
            table does not exist.  Absence is a normal outcome, not an error.
        """
        if not await self._table_exists(table_name):
            logger.debug("Table %r does not exist", table_name)
            return None

        rows = await self._get_columns(table_name)
        keys = await self._get_key_columns(table_name)
        enum_udts = {row[2] for row in rows if row[1] == "USER-DEFINED"}
        enum_labels = await self._get_enum_labels(enum_udts) if enum_udts else {}

        columns = []
        for name, data_type, udt_name, is_nullable, default, max_length, is_identity in rows:
            logical_type = self._map_data_type(data_type, udt_name, enum_labels)
            auto_increment = is_identity == "YES" or (
                isinstance(default, str) and default.startswith("nextval(")
            )
            columns.append(
                ColumnSchema(
                    name=name,
                    logical_type=logical_type,
                    nullable=(is_nullable == "YES"),
                    default=None if auto_increment else default,
                    primary_key=name in keys["PRIMARY KEY"],
                    auto_increment=auto_increment,
                    unique=name in keys["UNIQUE"],
                    length=max_length if logical_type is LogicalType.STRING else None,
                    enum_values=enum_labels.get(udt_name, ()),
                    native_type=udt_name if data_type == "USER-DEFINED" else data_type,
                )
            )

        schema = TableSchema(name=table_name, columns=tuple(columns))
        logger.debug("Introspected %r: %s", table_name, schema.column_names)
        return schema

    async def _table_exists(self, table_name: str) -> bool:
        query = """
            SELECT 1
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_name = %s
              AND table_type = 'BASE TABLE'
        """
        rows = await self._fetchall(query, (self._schema_name, table_name))
        return bool(rows)

    async def _get_columns(self, table_name: str) -> list[tuple]:
        query = """
            SELECT
                column_name,
                data_type,
                udt_name,
                is_nullable,
                column_default,
                character_maximum_length,
                is_identity
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
        """
        return await self._fetchall(query, (self._schema_name, table_name))

    async def _get_key_columns(self, table_name: str) -> dict[str, set[str]]:
        """Columns covered by the primary key, and by single-column unique constraints."""
        query = """
            SELECT
                tc.constraint_name,
                tc.constraint_type,
                kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.table_schema = %s
              AND tc.table_name = %s
              AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE')
            ORDER BY tc.constraint_name, kcu.ordinal_position
        """
        rows = await self._fetchall(query, (self._schema_name, table_name))

        constraint_columns: dict[tuple[str, str], list[str]] = {}
        for name, ctype, col_name in rows:
            constraint_columns.setdefault((name, ctype), []).append(col_name)

        keys: dict[str, set[str]] = {"PRIMARY KEY": set(), "UNIQUE": set()}
        for (_, ctype), cols in constraint_columns.items():
            if ctype == "PRIMARY KEY":
                keys[ctype].update(cols)
            elif len(cols) == 1:
                keys[ctype].add(cols[0])
        return keys

    async def _get_enum_labels(self, udt_names: set[str]) -> dict[str, tuple[str, ...]]:
        query = """
            SELECT t.typname, e.enumlabel
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            WHERE t.typname = ANY(%s)
            ORDER BY t.typname, e.enumsortorder
        """
        rows = await self._fetchall(query, (sorted(udt_names),))
        labels: dict[str, list[str]] = {}
        for typname, label in rows:
            labels.setdefault(typname, []).append(label)
        return {name: tuple(values) for name, values in labels.items()}

    def _map_data_type(
        self,
        data_type: str,
        udt_name: str,
        enum_labels: dict[str, tuple[str, ...]],
    ) -> LogicalType:
        """Map an information_schema data type onto a logical type.

        User-defined types are enums only if they have labels; anything
        else without a mapping is ``UNKNOWN``.
        """
        if data_type == "USER-DEFINED":
            return LogicalType.ENUM if udt_name in enum_labels else LogicalType.UNKNOWN
        return self.NATIVE_TYPES.get(data_type.lower(), LogicalType.UNKNOWN)
