"""Catalog and result models returned by the repositories."""

from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import Field

from .base import LocalBridgeModel


class QueryPlan(NamedTuple):
    """SQL text plus its ordered bind parameters.

    ``params[i]`` binds to the i-th placeholder in ``text``. Caller supplied
    values only ever appear in ``params``.
    """

    text: str
    params: List[Any]


class QueryResult(LocalBridgeModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0


class ColumnInfo(LocalBridgeModel):
    name: str
    data_type: str
    is_nullable: bool
    is_primary_key: bool = False
    default_value: Optional[str] = None


class TableInfo(LocalBridgeModel):
    """Description of one base table.

    ``row_count`` is approximate on PostgreSQL (planner statistics) and
    ``None`` when the count could not be read.
    """

    table_name: str
    schema_name: Optional[str] = Field(default=None, serialization_alias="schema")
    columns: List[ColumnInfo] = Field(default_factory=list)
    row_count: Optional[int] = None
    description: str = ""


class ForeignKeyInfo(LocalBridgeModel):
    name: str
    source_table: str
    source_column: str
    referenced_table: str
    referenced_column: str


class ColumnMetadata(LocalBridgeModel):
    name: str
    type: str
    nullable: bool
    key: str = ""
    default: Optional[str] = None
    comment: str = ""


class TableMetadata(LocalBridgeModel):
    """Human-written documentation attached to a table and its columns."""

    database: str
    table: str
    table_comment: str = ""
    columns: List[ColumnMetadata] = Field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.columns)
