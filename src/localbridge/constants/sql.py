"""SQL dialect and aggregate constants.

These enums are shared by the query builder, the repositories and the tool
layer without creating circular imports.
"""

from enum import Enum


class Dialect(str, Enum):
    """Supported SQL dialects.

    The value doubles as the driver name reported to clients
    (``db_list_databases``) and used by ``get_dialect``.
    """

    MYSQL = "mysql"
    POSTGRES = "postgres"


class AggregateFunction(str, Enum):
    """Aggregate functions accepted by ``build_aggregation``.

    Input is upper-cased before lookup; anything outside this set is
    rejected before the query text is assembled.
    """

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"

    @classmethod
    def names(cls) -> tuple:
        return tuple(member.value for member in cls)


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# Placeholder emitted for MySQL; PostgreSQL uses "$<position>"
MYSQL_PLACEHOLDER = "?"

DEFAULT_POSTGRES_SCHEMA = "public"
