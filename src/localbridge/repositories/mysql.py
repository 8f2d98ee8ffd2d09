import re
from typing import Any, Dict, List, Optional, Tuple

from localbridge.common.exceptions import LocalBridgeError, resource_not_found_error, validation_error
from localbridge.logging import get_logger
from localbridge.query_builder.identifiers import is_valid_identifier, strip_identifier_quotes
from localbridge.types import ColumnInfo, ColumnMetadata, ForeignKeyInfo, TableInfo, TableMetadata

from .base import BaseRepository

logger = get_logger(__name__)

_QMARK = re.compile(r"\?")

LIST_TABLES_SQL = (
    "SELECT table_name AS table_name FROM information_schema.tables "
    "WHERE table_schema = {schema} AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)

DESCRIBE_TABLE_SQL = (
    "SELECT column_name AS column_name, data_type AS data_type, "
    "is_nullable AS is_nullable, column_default AS column_default, "
    "column_key = 'PRI' AS is_primary_key "
    "FROM information_schema.columns "
    "WHERE table_schema = {schema} AND table_name = ? "
    "ORDER BY ordinal_position"
)

FOREIGN_KEYS_SQL = (
    "SELECT constraint_name AS name, table_name AS source_table, "
    "column_name AS source_column, referenced_table_name AS referenced_table, "
    "referenced_column_name AS referenced_column "
    "FROM information_schema.key_column_usage "
    "WHERE table_schema = DATABASE() AND table_name = ? "
    "AND referenced_table_name IS NOT NULL "
    "ORDER BY constraint_name, ordinal_position"
)

TABLE_COMMENT_SQL = (
    "SELECT table_comment AS table_comment FROM information_schema.tables "
    "WHERE table_schema = DATABASE() AND table_name = ?"
)

COLUMN_COMMENTS_SQL = (
    "SELECT column_name AS column_name, column_comment AS column_comment, "
    "column_type AS column_type, is_nullable AS is_nullable, "
    "column_key AS column_key, column_default AS column_default "
    "FROM information_schema.columns "
    "WHERE table_schema = DATABASE() AND table_name = ? "
    "ORDER BY ordinal_position"
)


class MySQLRepository(BaseRepository):
    """Repository for MySQL (and MariaDB) over ``aiomysql``.

    Catalog lookups default to the connection's current database
    (``DATABASE()``); a caller supplied schema is bound as a parameter.
    """

    def _to_named_binds(self, query: str, params: List[Any]) -> Tuple[str, Dict[str, Any]]:
        position = 0

        def _rename(_match: "re.Match[str]") -> str:
            nonlocal position
            position += 1
            return f":p{position}"

        statement = _QMARK.sub(_rename, query)
        if position != len(params):
            raise validation_error(
                f"query has {position} placeholder(s) but {len(params)} parameter(s) were supplied",
                field="params",
            )
        return statement, {f"p{i}": value for i, value in enumerate(params, start=1)}

    async def list_tables(self, schema: Optional[str] = None) -> List[str]:
        schema_name = strip_identifier_quotes(schema) if schema else ""
        if schema_name and is_valid_identifier(schema_name):
            sql, params = LIST_TABLES_SQL.format(schema="?"), [schema_name]
        else:
            if schema:
                logger.warning("Ignoring invalid schema name, using current database", extra={"schema": schema})
            sql, params = LIST_TABLES_SQL.format(schema="DATABASE()"), []

        result = await self.execute(sql, params)
        return [row["table_name"] for row in result.rows]

    async def describe_table(self, table: str, schema: Optional[str] = None) -> TableInfo:
        table_name = self._require_identifier(table, "table")
        schema_name = self._require_identifier(schema, "schema") if schema else None

        if schema_name:
            sql, params = DESCRIBE_TABLE_SQL.format(schema="?"), [schema_name, table_name]
        else:
            sql, params = DESCRIBE_TABLE_SQL.format(schema="DATABASE()"), [table_name]

        result = await self.execute(sql, params)
        if not result.rows:
            raise resource_not_found_error(
                f"table '{table_name}' not found in database '{self.name}'",
                resource_type="table",
                resource_name=table_name,
            )

        columns = [
            ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=str(row["is_nullable"]).upper() == "YES",
                is_primary_key=bool(row["is_primary_key"]),
                default_value=None if row["column_default"] is None else str(row["column_default"]),
            )
            for row in result.rows
        ]

        return TableInfo(
            table_name=table_name,
            schema_name=schema_name or self.settings.database,
            columns=columns,
            row_count=await self._row_count(table_name, schema_name),
        )

    async def _row_count(self, table: str, schema: Optional[str]) -> Optional[int]:
        # Exact COUNT(*); may be slow on very large InnoDB tables
        plan = self.query_builder.build_count(f"{schema}.{table}" if schema else table)
        try:
            row = await self.execute_one(plan.text, plan.params)
        except LocalBridgeError as exc:
            logger.warning("Row count unavailable", extra={"database": self.name, "table": table, "error": str(exc)})
            return None
        if not row:
            return None
        return int(next(iter(row.values())))

    async def list_foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        table_name = self._require_identifier(table, "table")
        result = await self.execute(FOREIGN_KEYS_SQL, [table_name])
        return [ForeignKeyInfo(**row) for row in result.rows]

    async def get_table_metadata(self, table: str) -> TableMetadata:
        table_name = self._require_identifier(table, "table")

        comment_row = await self.execute_one(TABLE_COMMENT_SQL, [table_name])
        if comment_row is None:
            raise resource_not_found_error(
                f"table '{table_name}' not found in database '{self.name}'",
                resource_type="table",
                resource_name=table_name,
            )

        result = await self.execute(COLUMN_COMMENTS_SQL, [table_name])
        columns = [
            ColumnMetadata(
                name=row["column_name"],
                type=row["column_type"],
                nullable=str(row["is_nullable"]).upper() == "YES",
                key=row["column_key"] or "",
                default=None if row["column_default"] is None else str(row["column_default"]),
                comment=row["column_comment"] or "",
            )
            for row in result.rows
        ]

        return TableMetadata(
            database=self.name,
            table=table_name,
            table_comment=comment_row["table_comment"] or "",
            columns=columns,
        )
