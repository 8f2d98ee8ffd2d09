import re
from typing import Any, Dict, List, Optional, Tuple

from localbridge.common.exceptions import LocalBridgeError, resource_not_found_error, validation_error
from localbridge.logging import get_logger
from localbridge.query_builder.identifiers import is_valid_identifier, strip_identifier_quotes
from localbridge.types import ColumnInfo, ColumnMetadata, ForeignKeyInfo, TableInfo, TableMetadata

from .base import BaseRepository

logger = get_logger(__name__)

_NUMBERED = re.compile(r"\$(\d+)")

# Bind placeholders must not be followed by a "::" cast; SQLAlchemy text()
# would misread ":pN::type". Casts go on columns instead.
LIST_TABLES_SQL = (
    "SELECT table_name AS table_name FROM information_schema.tables "
    "WHERE table_schema = $1 AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)

DESCRIBE_TABLE_SQL = """
SELECT c.column_name AS column_name,
       c.data_type AS data_type,
       c.is_nullable AS is_nullable,
       c.column_default AS column_default,
       EXISTS (
           SELECT 1
           FROM information_schema.table_constraints tc
           JOIN information_schema.key_column_usage kcu
             ON tc.constraint_name = kcu.constraint_name
            AND tc.table_schema = kcu.table_schema
            AND tc.table_name = kcu.table_name
           WHERE tc.constraint_type = 'PRIMARY KEY'
             AND tc.table_schema = c.table_schema
             AND tc.table_name = c.table_name
             AND kcu.column_name = c.column_name
       ) AS is_primary_key
FROM information_schema.columns c
WHERE c.table_name = $1 AND c.table_schema = $2
ORDER BY c.ordinal_position
"""

ROW_ESTIMATE_SQL = """
SELECT c.reltuples::bigint AS row_count
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE c.relname = $1 AND n.nspname = $2
"""

FOREIGN_KEYS_SQL = """
SELECT tc.constraint_name AS name,
       tc.table_name AS source_table,
       kcu.column_name AS source_column,
       ccu.table_name AS referenced_table,
       ccu.column_name AS referenced_column
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
  ON tc.constraint_name = kcu.constraint_name
 AND tc.table_schema = kcu.table_schema
JOIN information_schema.constraint_column_usage ccu
  ON ccu.constraint_name = tc.constraint_name
 AND ccu.table_schema = tc.table_schema
WHERE tc.constraint_type = 'FOREIGN KEY'
  AND tc.table_name = $1
  AND tc.table_schema = $2
ORDER BY tc.constraint_name, kcu.ordinal_position
"""

TABLE_COMMENT_SQL = """
SELECT obj_description(c.oid, 'pg_class') AS table_comment
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE c.relname = $1 AND n.nspname = $2
"""

COLUMN_COMMENTS_SQL = """
SELECT c.column_name AS column_name,
       c.data_type AS column_type,
       c.is_nullable AS is_nullable,
       c.column_default AS column_default,
       pgd.description AS column_comment
FROM information_schema.columns c
LEFT JOIN pg_catalog.pg_statio_all_tables st
  ON c.table_schema = st.schemaname AND c.table_name = st.relname
LEFT JOIN pg_catalog.pg_description pgd
  ON pgd.objoid = st.relid AND pgd.objsubid = c.ordinal_position
WHERE c.table_name = $1 AND c.table_schema = $2
ORDER BY c.ordinal_position
"""


class PostgresRepository(BaseRepository):
    """Repository for PostgreSQL over psycopg 3.

    Catalog lookups default to the configured ``default_schema``
    (``public`` unless overridden), always bound as a parameter.
    """

    @property
    def default_schema(self) -> str:
        return self.settings.default_schema

    def _to_named_binds(self, query: str, params: List[Any]) -> Tuple[str, Dict[str, Any]]:
        referenced = {int(index) for index in _NUMBERED.findall(query)}
        if referenced and (min(referenced) < 1 or max(referenced) > len(params)):
            raise validation_error(
                f"query references ${max(referenced)} but {len(params)} parameter(s) were supplied",
                field="params",
            )
        if not referenced and params:
            raise validation_error(
                f"query has no placeholders but {len(params)} parameter(s) were supplied",
                field="params",
            )

        statement = _NUMBERED.sub(lambda m: f":p{m.group(1)}", query)
        return statement, {f"p{i}": value for i, value in enumerate(params, start=1)}

    async def list_tables(self, schema: Optional[str] = None) -> List[str]:
        schema_name = strip_identifier_quotes(schema) if schema else ""
        if schema_name and not is_valid_identifier(schema_name):
            logger.warning("Ignoring invalid schema name, using default schema", extra={"schema": schema})
            schema_name = ""

        result = await self.execute(LIST_TABLES_SQL, [schema_name or self.default_schema])
        return [row["table_name"] for row in result.rows]

    async def describe_table(self, table: str, schema: Optional[str] = None) -> TableInfo:
        table_name = self._require_identifier(table, "table")
        schema_name = self._require_identifier(schema, "schema") if schema else self.default_schema

        result = await self.execute(DESCRIBE_TABLE_SQL, [table_name, schema_name])
        if not result.rows:
            raise resource_not_found_error(
                f"table '{table_name}' not found in schema '{schema_name}' of database '{self.name}'",
                resource_type="table",
                resource_name=table_name,
            )

        columns = [
            ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=str(row["is_nullable"]).upper() == "YES",
                is_primary_key=bool(row["is_primary_key"]),
                default_value=row["column_default"],
            )
            for row in result.rows
        ]

        return TableInfo(
            table_name=table_name,
            schema_name=schema_name,
            columns=columns,
            row_count=await self._row_estimate(table_name, schema_name),
        )

    async def _row_estimate(self, table: str, schema: str) -> Optional[int]:
        # Planner estimate from pg_class; -1 until the table is first analyzed
        try:
            row = await self.execute_one(ROW_ESTIMATE_SQL, [table, schema])
        except LocalBridgeError as exc:
            logger.warning("Row estimate unavailable", extra={"database": self.name, "table": table, "error": str(exc)})
            return None
        if not row or row["row_count"] is None or row["row_count"] < 0:
            return None
        return int(row["row_count"])

    async def list_foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        table_name = self._require_identifier(table, "table")
        result = await self.execute(FOREIGN_KEYS_SQL, [table_name, self.default_schema])
        return [ForeignKeyInfo(**row) for row in result.rows]

    async def get_table_metadata(self, table: str) -> TableMetadata:
        table_name = self._require_identifier(table, "table")

        result = await self.execute(COLUMN_COMMENTS_SQL, [table_name, self.default_schema])
        if not result.rows:
            raise resource_not_found_error(
                f"table '{table_name}' not found in schema '{self.default_schema}' of database '{self.name}'",
                resource_type="table",
                resource_name=table_name,
            )

        comment_row = await self.execute_one(TABLE_COMMENT_SQL, [table_name, self.default_schema])
        columns = [
            ColumnMetadata(
                name=row["column_name"],
                type=row["column_type"],
                nullable=str(row["is_nullable"]).upper() == "YES",
                default=row["column_default"],
                comment=row["column_comment"] or "",
            )
            for row in result.rows
        ]

        return TableMetadata(
            database=self.name,
            table=table_name,
            table_comment=(comment_row or {}).get("table_comment") or "",
            columns=columns,
        )
