from typing import Mapping

from localbridge.common.exceptions import ErrorCode, LocalBridgeError
from localbridge.logging import get_logger
from localbridge.repositories import BaseRepository
from localbridge.tools.common import get_repository, require, to_json

logger = get_logger(__name__)

_SOFT_FAILURES = frozenset({
    ErrorCode.QUERY_EXECUTION_ERROR,
    ErrorCode.RESOURCE_NOT_FOUND,
    ErrorCode.TIMEOUT_ERROR,
})


class MetadataHandler:
    def __init__(self, repositories: Mapping[str, BaseRepository]):
        self.repositories = repositories

    async def metadata(self, database: str, table: str) -> str:
        """Retrieve table and column comments (descriptions) from the database catalog."""
        repository = get_repository(self.repositories, database)
        require(table, "table")

        try:
            metadata = await repository.get_table_metadata(table)
        except LocalBridgeError as exc:
            if exc.error_code not in _SOFT_FAILURES:
                raise
            logger.warning(
                "Metadata retrieval failed",
                extra={"database": database, "table": table, "error": str(exc)},
            )
            return to_json({
                "database": database,
                "table": table,
                "warning": "Metadata retrieval failed or not supported",
                "error": str(exc),
                "columns": [],
                "table_comment": "",
            })

        return to_json({**metadata.to_dict(), "column_count": metadata.column_count})
