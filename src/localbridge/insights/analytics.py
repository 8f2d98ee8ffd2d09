from typing import Any, Dict, Mapping, Optional, Union

from localbridge.logging import get_logger
from localbridge.repositories import BaseRepository
from localbridge.settings.tools import AnalyticsSettings
from localbridge.tools.common import get_repository, parse_conditions, require, to_json

logger = get_logger(__name__)


class AnalyticsHandler:
    def __init__(self, repositories: Mapping[str, BaseRepository], settings: AnalyticsSettings):
        self.repositories = repositories
        self.settings = settings

    async def analytics(
        self,
        database: str,
        table: str,
        column: str,
        function: str,
        conditions: Optional[Union[str, Dict[str, Any]]] = None,
        group_by: str = "",
    ) -> str:
        """Run an aggregation (COUNT, SUM, AVG, MIN or MAX) over a column,
        with optional equality conditions and a single grouping column.
        Use column="*" with COUNT to count rows. Values are always bound as
        parameters.
        """
        repository = get_repository(self.repositories, database)
        require(table, "table")
        require(column, "column")
        require(function, "function")
        max_rows = self.settings.max_result_rows

        plan = repository.query_builder.build_aggregation(
            table,
            column,
            function,
            parse_conditions(conditions),
            group_by=group_by or "",
            limit=max_rows + 1,
        )
        result = await repository.execute(plan.text, plan.params, timeout=self.settings.execution_timeout)

        # One row past the cap marks the result as truncated
        rows = result.rows[:max_rows]
        truncated = len(result.rows) > max_rows
        if truncated:
            logger.info(
                "Analytics result truncated",
                extra={"database": database, "table": table, "kept": len(rows)},
            )

        return to_json({
            "database": database,
            "table": table,
            "column": column,
            "function": function.strip().upper(),
            "group_by": group_by or "",
            "result_count": len(rows),
            "results": rows,
            "truncated": truncated,
            "query": plan.text,
        })
