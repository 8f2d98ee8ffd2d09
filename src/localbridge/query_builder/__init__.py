"""Query Builder Module.

Turns untrusted, structured tool input (table names, filter maps, aggregate
names, ordering clauses) into parameterized SQL for MySQL or PostgreSQL.

Components:
    - **identifiers**: allow-list validation of table/column/schema names and
      of raw ORDER BY clauses
    - **dialects**: immutable quoting/placeholder strategies
      (backticks + ``?`` for MySQL, double quotes + ``$n`` for PostgreSQL)
    - **builder**: ``QueryBuilder`` producing ``QueryPlan(text, params)`` for
      SELECT, COUNT and aggregate queries

Usage Example:
    ```python
    from localbridge.query_builder import QueryBuilder

    builder = QueryBuilder("postgres")
    text, params = builder.build_select("orders", {"status": "paid", "region": "eu%"}, limit=50)
    # SELECT * FROM "orders" WHERE "region" LIKE $1 AND "status" = $2 LIMIT 50
    # params == ["eu%", "paid"]
    ```

Security:
    Caller values never reach the SQL text. Identifiers reach it only after
    validation and quoting, and an ORDER BY clause only after passing the
    column/direction allow-list.
"""

from localbridge.query_builder.builder import ConditionValue, Conditions, QueryBuilder
from localbridge.query_builder.dialects import MYSQL, POSTGRES, DialectAdapter, get_dialect
from localbridge.query_builder.identifiers import (
    is_valid_identifier,
    is_valid_order_by,
    strip_identifier_quotes,
)

__all__ = [
    "QueryBuilder",
    "ConditionValue",
    "Conditions",
    "DialectAdapter",
    "MYSQL",
    "POSTGRES",
    "get_dialect",
    "is_valid_identifier",
    "is_valid_order_by",
    "strip_identifier_quotes",
]
