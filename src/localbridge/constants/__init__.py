from localbridge.constants.sql import (
    AggregateFunction,
    DEFAULT_POSTGRES_SCHEMA,
    Dialect,
    MYSQL_PLACEHOLDER,
    SortDirection,
)

__all__ = [
    "AggregateFunction",
    "DEFAULT_POSTGRES_SCHEMA",
    "Dialect",
    "MYSQL_PLACEHOLDER",
    "SortDirection",
]
