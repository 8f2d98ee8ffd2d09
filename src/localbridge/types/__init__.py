from .base import LocalBridgeModel
from .catalog import (
    ColumnInfo,
    ColumnMetadata,
    ForeignKeyInfo,
    QueryPlan,
    QueryResult,
    TableInfo,
    TableMetadata,
)

__all__ = [
    "LocalBridgeModel",
    "ColumnInfo",
    "ColumnMetadata",
    "ForeignKeyInfo",
    "QueryPlan",
    "QueryResult",
    "TableInfo",
    "TableMetadata",
]
