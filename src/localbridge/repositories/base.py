import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from localbridge.common.exceptions import (
    LocalBridgeError,
    backend_error,
    connection_error,
    invalid_identifier_error,
    timeout_error,
)
from localbridge.logging import get_logger
from localbridge.query_builder import QueryBuilder, get_dialect
from localbridge.query_builder.identifiers import is_valid_identifier, strip_identifier_quotes
from localbridge.settings.databases import BaseDatabaseSettings
from localbridge.types import ForeignKeyInfo, QueryResult, TableInfo, TableMetadata
from localbridge.utils.decorators import retry_with_backoff, traced

logger = get_logger(__name__)

_MAX_SPAN_STATEMENT = 4096


class BaseRepository(ABC):
    """SQLAlchemy async repository for one named database instance.

    Executes parameterized queries produced by the ``QueryBuilder`` and
    answers catalog questions (tables, columns, foreign keys, comments).
    Concrete subclasses supply the engine-specific catalog SQL and the
    translation of builder placeholders into SQLAlchemy bind names; nothing
    else depends on the engine.

    Features:
        - Lazily created async engine with connection pooling
        - Per-call deadline via ``asyncio.wait_for``; expiry cancels the
          in-flight driver call
        - Driver errors surfaced verbatim as ``QUERY_EXECUTION_ERROR``
        - Connection pings retried with backoff at startup; queries are
          never retried

    Example:
        >>> repo = MySQLRepository(settings.databases.mysql[0])
        >>> await repo.connect()
        >>> plan = repo.query_builder.build_select("users", {"status": "active"}, limit=10)
        >>> result = await repo.execute(plan.text, plan.params)
    """

    default_schema: Optional[str] = None

    def __init__(
        self,
        settings: BaseDatabaseSettings,
        engine: Optional[AsyncEngine] = None,
        default_timeout: Optional[float] = None,
    ):
        """Initialize the repository.

        Args:
            settings: Connection and pool settings for this instance
            engine: Pre-built async engine; created lazily from ``settings`` when omitted
            default_timeout: Deadline in seconds for calls that pass none
        """
        self.settings = settings
        self.default_timeout = default_timeout
        self.dialect = get_dialect(settings.driver)
        self.query_builder = QueryBuilder(self.dialect)
        self._engine = engine

    @property
    def name(self) -> str:
        return self.settings.name

    @property
    def driver(self) -> str:
        return self.dialect.name

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the SQLAlchemy async engine with lazy initialization."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> AsyncEngine:
        try:
            engine = create_async_engine(self.settings.url(), **self.settings.engine_options())
        except (SQLAlchemyError, ImportError) as e:
            raise connection_error(
                f"Failed to create {self.driver} engine for '{self.name}': {e}",
                service=self.name,
                host=self.settings.host,
                cause=e
            ) from e

        logger.info(
            "Created database engine",
            extra={"database": self.name, "db.system": self.driver, "pool_size": self.settings.pool_size},
        )
        return engine

    async def connect(self) -> None:
        """Verify the instance is reachable.

        Raises:
            LocalBridgeError: CONNECTION_ERROR after the retries are exhausted
        """
        try:
            await self._ping_with_retry()
        except LocalBridgeError as e:
            raise connection_error(
                f"failed to connect to {self.driver} database '{self.name}': {e.message}",
                service=self.name,
                host=self.settings.host,
                cause=e
            ) from e
        logger.info("Database connected", extra={"database": self.name, "db.system": self.driver})

    @retry_with_backoff(max_retries=2, initial_delay=0.5, retry_on=(LocalBridgeError,))
    async def _ping_with_retry(self) -> None:
        await self.ping()

    async def ping(self) -> None:
        await self.execute("SELECT 1", timeout=self.settings.connect_timeout)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database engine disposed", extra={"database": self.name})

    async def execute(
        self,
        query: str,
        params: Sequence[Any] = (),
        *,
        timeout: Optional[float] = None,
    ) -> QueryResult:
        """Execute a query with driver-bound parameters.

        Args:
            query: SQL text using this dialect's placeholders
            params: Values for the placeholders, in order
            timeout: Deadline in seconds; falls back to ``default_timeout``

        Returns:
            QueryResult with column names, row dictionaries and row count

        Raises:
            LocalBridgeError: TIMEOUT_ERROR when the deadline expires,
                QUERY_EXECUTION_ERROR when the engine fails the query
        """
        deadline = timeout if timeout is not None else self.default_timeout
        start_time = time.time()

        try:
            if deadline:
                result = await asyncio.wait_for(self._fetch(query, params), timeout=deadline)
            else:
                result = await self._fetch(query, params)
        except asyncio.TimeoutError as exc:
            raise timeout_error("query", deadline, database=self.name) from exc
        except (SQLAlchemyError, OSError) as exc:
            duration = time.time() - start_time
            logger.error(
                "SQL query failed",
                extra={"database": self.name, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise backend_error(query, exc, database=self.name) from exc

        duration = time.time() - start_time
        logger.debug(
            "SQL query executed",
            extra={"database": self.name, "rows": result.row_count, "duration.seconds": f"{duration:.6f}"},
        )
        return result

    async def execute_one(
        self,
        query: str,
        params: Sequence[Any] = (),
        *,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """Execute a query expected to return at most one row."""
        result = await self.execute(query, params, timeout=timeout)
        return result.rows[0] if result.rows else None

    def _span_attributes(self, query: str, params: Sequence[Any] = ()) -> Dict[str, Any]:
        statement = (query or "").strip()
        if len(statement) > _MAX_SPAN_STATEMENT:
            statement = f"{statement[:_MAX_SPAN_STATEMENT - 3]}..."
        return {
            "db.system": self.driver,
            "db.name": self.name,
            "db.statement": statement,
            "db.params.count": len(params),
        }

    @traced(
        span_name="localbridge.db.query",
        attribute_getter=lambda self, query, params=(): self._span_attributes(query, params),
    )
    async def _fetch(self, query: str, params: Sequence[Any]) -> QueryResult:
        statement, bound = self._to_named_binds(query, list(params))
        async with self.engine.connect() as conn:
            result = await conn.execute(text(statement), bound)
            if not result.returns_rows:
                return QueryResult()
            columns = list(result.keys())
            rows = [
                {column: _normalize_value(value) for column, value in zip(columns, row)}
                for row in result.fetchall()
            ]
        return QueryResult(columns=columns, rows=rows, row_count=len(rows))

    @abstractmethod
    def _to_named_binds(self, query: str, params: List[Any]) -> Tuple[str, Dict[str, Any]]:
        """Rewrite dialect placeholders into SQLAlchemy ``:pN`` bind names.

        Values are never written into the text; they are returned as the
        bind dictionary passed to the driver.
        """

    def _require_identifier(self, value: Any, role: str) -> str:
        """Return the bare validated name, for use as a bind value."""
        name = strip_identifier_quotes(value) if isinstance(value, str) else value
        if not is_valid_identifier(name):
            raise invalid_identifier_error(value, role)
        return name

    @abstractmethod
    async def list_tables(self, schema: Optional[str] = None) -> List[str]:
        """List base tables in ``schema`` (or the engine default schema)."""

    @abstractmethod
    async def describe_table(self, table: str, schema: Optional[str] = None) -> TableInfo:
        """Describe columns, primary key membership and approximate row count."""

    @abstractmethod
    async def list_foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        """List foreign keys declared on ``table``."""

    @abstractmethod
    async def get_table_metadata(self, table: str) -> TableMetadata:
        """Return table and column comments from the catalog."""


def _normalize_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return value
