from typing import Any, List, Mapping, Optional, Union

from localbridge.common.exceptions import (
    invalid_aggregate_function_error,
    invalid_identifier_error,
    validation_error,
)
from localbridge.constants.sql import AggregateFunction, Dialect
from localbridge.logging import get_logger
from localbridge.query_builder.dialects import DialectAdapter, get_dialect
from localbridge.query_builder.identifiers import (
    identifier_parts,
    is_valid_identifier,
    is_valid_order_by,
    strip_identifier_quotes,
)
from localbridge.types import QueryPlan

logger = get_logger(__name__)

ConditionValue = Union[str, int, float, bool]
Conditions = Mapping[str, ConditionValue]

_LIKE_WILDCARDS = ("%", "_")


class QueryBuilder:
    """Builds parameterized SELECT, COUNT and aggregate queries.

    The builder turns untrusted structured input into SQL for one dialect.
    It does NOT execute queries - that belongs to the repositories.

    Security Principles:
        1. **Values are bound**: condition values only ever travel in
           ``QueryPlan.params``; the text holds placeholders.
        2. **Identifiers are allow-listed**: table/column names must match
           ``[A-Za-z0-9_.]+`` and are then quoted for the dialect.
        3. **ORDER BY is allow-listed**: a clause that is not purely
           ``column [ASC|DESC], ...`` is dropped rather than sent.
        4. **Aggregates are allow-listed**: only COUNT, SUM, AVG, MIN, MAX.

    Conditions are emitted in sorted column order so the text and the
    parameter list are deterministic for a given input.

    Example:
        >>> builder = QueryBuilder("mysql")
        >>> builder.build_select("users", {"status": "active"}, limit=10, order_by="created_at DESC")
        QueryPlan(text='SELECT * FROM `users` WHERE `status` = ? ORDER BY created_at DESC LIMIT 10', params=['active'])
    """

    def __init__(self, dialect: Union[str, Dialect, DialectAdapter] = Dialect.MYSQL):
        self.dialect = get_dialect(dialect)

    def quote_identifier(self, identifier: Any, identifier_type: str = "identifier") -> str:
        """Validate and quote an identifier for safe SQL usage.

        Surrounding backticks/double quotes are stripped first, then the
        name is validated and each dotted segment quoted for the dialect.

        Args:
            identifier: Table, column or schema name supplied by the caller
            identifier_type: Role used in the error message

        Returns:
            Quoted identifier

        Raises:
            LocalBridgeError: INVALID_IDENTIFIER if the name is rejected
        """
        if not isinstance(identifier, str):
            raise invalid_identifier_error(identifier, identifier_type)

        name = strip_identifier_quotes(identifier)
        if not is_valid_identifier(name) or not identifier_parts(name):
            raise invalid_identifier_error(identifier, identifier_type)
        return self.dialect.quote(name)

    def build_select(
        self,
        table: str,
        conditions: Optional[Conditions] = None,
        limit: int = 0,
        offset: int = 0,
        order_by: str = "",
    ) -> QueryPlan:
        """Build ``SELECT * FROM <table> [WHERE ...] [ORDER BY ...] [LIMIT n] [OFFSET m]``.

        A string condition value containing ``%`` or ``_`` is matched with
        LIKE, every other value with ``=``. An ORDER BY clause that fails
        validation is omitted and the query proceeds unordered.
        """
        params: List[Any] = []
        sql = f"SELECT * FROM {self.quote_identifier(table, 'table')}"
        sql += self._build_where(conditions, params, allow_like=True)
        sql += self._build_order_by(order_by)
        sql += self._build_pagination(limit, offset)
        return QueryPlan(sql, params)

    def build_count(self, table: str, conditions: Optional[Conditions] = None) -> QueryPlan:
        """Build ``SELECT COUNT(*) FROM <table> [WHERE ...]``."""
        params: List[Any] = []
        sql = f"SELECT COUNT(*) FROM {self.quote_identifier(table, 'table')}"
        sql += self._build_where(conditions, params, allow_like=True)
        return QueryPlan(sql, params)

    def build_aggregation(
        self,
        table: str,
        column: str,
        agg_func: str,
        conditions: Optional[Conditions] = None,
        group_by: str = "",
        limit: int = 0,
    ) -> QueryPlan:
        """Build ``SELECT [<group>, ]<AGG>(<column>) AS result FROM <table> ...``.

        Args:
            table: Table to aggregate over
            column: Column to aggregate; ``*`` is accepted for COUNT only
            agg_func: Aggregate name, case-insensitive
            conditions: Equality filters (no LIKE heuristic)
            group_by: Optional grouping column; ignored when not a valid name
            limit: Maximum number of result rows; 0 means no LIMIT clause

        Raises:
            LocalBridgeError: INVALID_AGGREGATE_FUNCTION or INVALID_IDENTIFIER
        """
        function = str(agg_func).strip().upper()
        if function not in AggregateFunction.names():
            raise invalid_aggregate_function_error(function, AggregateFunction.names())

        quoted_table = self.quote_identifier(table, "table")
        if function == AggregateFunction.COUNT.value and column == "*":
            target = "*"
        else:
            target = self.quote_identifier(column, "column")

        group = self._optional_identifier(group_by, "group_by")

        params: List[Any] = []
        select = f"{function}({target}) AS result"
        if group:
            select = f"{group}, {select}"

        sql = f"SELECT {select} FROM {quoted_table}"
        sql += self._build_where(conditions, params, allow_like=False)
        if group:
            sql += f" GROUP BY {group}"
        sql += self._build_pagination(limit, 0)
        return QueryPlan(sql, params)

    def _optional_identifier(self, value: Optional[str], identifier_type: str) -> Optional[str]:
        if not value:
            return None
        name = strip_identifier_quotes(value) if isinstance(value, str) else value
        if not is_valid_identifier(name) or not identifier_parts(name):
            logger.warning(
                "Ignoring invalid %s", identifier_type, extra={"value": str(value)}
            )
            return None
        return self.dialect.quote(name)

    def _build_where(
        self,
        conditions: Optional[Conditions],
        params: List[Any],
        *,
        allow_like: bool,
    ) -> str:
        if not conditions:
            return ""

        clauses = []
        for column in sorted(conditions):
            value = conditions[column]
            if value is None or not isinstance(value, (str, int, float, bool)):
                raise validation_error(
                    f"unsupported value for condition {column!r}: expected a string, "
                    f"number or boolean, got {type(value).__name__}",
                    field=f"conditions.{column}",
                )
            quoted = self.quote_identifier(column, "column")
            params.append(value)
            placeholder = self.dialect.placeholder(len(params))
            operator = "LIKE" if allow_like and _is_pattern(value) else "="
            clauses.append(f"{quoted} {operator} {placeholder}")

        return " WHERE " + " AND ".join(clauses)

    def _build_order_by(self, order_by: Optional[str]) -> str:
        if not order_by:
            return ""
        if not is_valid_order_by(order_by):
            logger.warning("Dropping invalid ORDER BY clause", extra={"order_by": order_by})
            return ""
        return f" ORDER BY {order_by.strip()}"

    @staticmethod
    def _build_pagination(limit: int, offset: int) -> str:
        sql = ""
        limit = int(limit or 0)
        offset = int(offset or 0)
        if limit > 0:
            sql += f" LIMIT {limit}"
        if offset > 0:
            sql += f" OFFSET {offset}"
        return sql


def _is_pattern(value: ConditionValue) -> bool:
    return isinstance(value, str) and any(ch in value for ch in _LIKE_WILDCARDS)
