"""Database tools: parameterized queries, counts, table listing and previews.

Every handler builds its SQL through the repository's ``QueryBuilder`` so
caller values are always bound, never formatted into the statement.
"""

from typing import Any, Dict, Mapping, Optional, Union

from localbridge.common.exceptions import feature_not_enabled_error
from localbridge.logging import get_logger
from localbridge.repositories import BaseRepository
from localbridge.settings.tools import DBToolsSettings
from localbridge.types import QueryPlan

from .common import get_repository, parse_conditions, require, to_json

logger = get_logger(__name__)

_DRY_RUN_DESCRIPTION = "Preview of the SQL query. Set dry_run=false to execute."


class DBToolsHandler:
    """Handlers for the ``db_*`` tools.

    Each handler returns the JSON text of its result and raises
    ``LocalBridgeError`` for anything the caller should see as a tool error.
    """

    def __init__(self, repositories: Mapping[str, BaseRepository], settings: DBToolsSettings):
        self.repositories = repositories
        self.settings = settings

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None or limit <= 0 or limit > self.settings.max_rows:
            return self.settings.max_rows
        return limit

    def _dry_run_preview(self, plan: QueryPlan) -> str:
        return to_json({
            "dry_run": True,
            "query": plan.text,
            "params": plan.params,
            "description": _DRY_RUN_DESCRIPTION,
        })

    async def db_query(
        self,
        database: str,
        table: str,
        conditions: Optional[Union[str, Dict[str, Any]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "",
        dry_run: Optional[bool] = None,
    ) -> str:
        """Execute a parameterized SELECT against a table.

        Conditions are a JSON object of column to value; string values
        containing % or _ are matched with LIKE, everything else with =.
        order_by accepts "column [ASC|DESC], ..." only; anything else is
        ignored. limit defaults to and is capped at the configured maximum.
        With dry_run=true the SQL and its parameters are returned without
        executing. Values are always bound as parameters.
        """
        repository = get_repository(self.repositories, database)
        require(table, "table")
        plan = repository.query_builder.build_select(
            table,
            parse_conditions(conditions),
            limit=self._clamp_limit(limit),
            offset=max(int(offset or 0), 0),
            order_by=order_by or "",
        )

        if self.settings.default_dry_run if dry_run is None else dry_run:
            return self._dry_run_preview(plan)

        result = await repository.execute(plan.text, plan.params, timeout=self.settings.query_timeout)
        return to_json(result.to_dict())

    async def db_count(
        self,
        database: str,
        table: str,
        conditions: Optional[Union[str, Dict[str, Any]]] = None,
        dry_run: Optional[bool] = None,
    ) -> str:
        """Count the rows of a table matching optional conditions.

        Conditions follow the same rules as db_query.
        """
        repository = get_repository(self.repositories, database)
        require(table, "table")
        plan = repository.query_builder.build_count(table, parse_conditions(conditions))

        if self.settings.default_dry_run if dry_run is None else dry_run:
            return self._dry_run_preview(plan)

        row = await repository.execute_one(plan.text, plan.params, timeout=self.settings.query_timeout)
        count = int(next(iter(row.values()))) if row else 0
        return to_json({"database": database, "table": table, "count": count})

    async def db_table_list(self, database: str, schema: Optional[str] = None) -> str:
        """List the base tables of a database instance, optionally within a schema."""
        repository = get_repository(self.repositories, database)
        tables = await repository.list_tables(schema or None)
        return to_json({"database": database, "tables": tables, "count": len(tables)})

    async def db_table_preview(self, database: str, table: str) -> str:
        """Return the first rows of a table."""
        if not self.settings.enable_preview:
            raise feature_not_enabled_error("db_table_preview", "tools.db.enable_preview")

        repository = get_repository(self.repositories, database)
        require(table, "table")
        plan = repository.query_builder.build_select(table, limit=self.settings.preview_limit)
        result = await repository.execute(plan.text, plan.params, timeout=self.settings.query_timeout)
        return to_json({
            "database": database,
            "table": table,
            "preview_limit": self.settings.preview_limit,
            "data": result.to_dict(),
        })

    async def db_table_schema(self, database: str, table: str, schema: Optional[str] = None) -> str:
        """Describe a table: columns, types, nullability, defaults, primary key and approximate row count."""
        repository = get_repository(self.repositories, database)
        require(table, "table")
        info = await repository.describe_table(table, schema or None)
        return to_json({"database": database, **info.to_dict()})

    async def db_list_databases(self) -> str:
        """List the configured database instances and their drivers."""
        databases = [
            {"name": name, "driver": self.repositories[name].driver}
            for name in sorted(self.repositories)
        ]
        logger.debug("Listing databases", extra={"count": len(databases)})
        return to_json({"databases": databases, "count": len(databases)})
