"""Prompt templates handed back to MCP clients for their own LLM calls."""

import json
from typing import Any, Dict, List, Sequence

from localbridge.types import ColumnInfo, TableInfo

SEMANTIC_SUMMARY_PROMPT = """# Task: Generate a Semantic Summary of Database Table

You are analyzing a database table named "{table}" to provide business-meaningful insights.

## Table Schema:
- Table Name: {table}
- Column Count: {column_count}
- Columns:
{columns}
## Sample Data ({sample_count} rows):
{sample}

## Your Task:
Please analyze the table schema and sample data, then provide:

1. **Business Purpose**: What is this table likely used for in the business context?
2. **Data Patterns**: What patterns or trends do you observe in the sample data?
3. **Key Insights**: What are the most important characteristics of this data?
4. **Data Quality**: Are there any potential data quality issues visible in the sample?
5. **Recommendations**: Any suggestions for data usage or further analysis?

Please provide your response in a clear, structured format."""

RELATIONSHIP_PROMPT = """# Task: Analyze Database Relationships

You are analyzing the relationships (foreign keys) in the "{database}" database to understand the data model.

## Relationship Graph:
{graph}

## Your Task:
Please analyze the foreign key relationships and provide:

1. **Entity Relationship Overview**: Describe the main entities and how they relate to each other
2. **Central Tables**: Identify which tables are most connected (hub tables)
3. **Data Flow**: Describe typical data flow patterns based on relationships
4. **Potential Issues**: Identify any missing relationships or potential design issues
5. **Query Recommendations**: Suggest useful JOIN queries based on these relationships

Please provide your response in a clear, structured format."""


def format_columns(columns: Sequence[ColumnInfo], max_columns: int) -> str:
    lines = []
    for column in columns[:max_columns]:
        nullable = "NULL" if column.is_nullable else "NOT NULL"
        primary_key = " [PRIMARY KEY]" if column.is_primary_key else ""
        lines.append(f"  - {column.name} ({column.data_type}, {nullable}){primary_key}\n")
    if len(columns) > max_columns:
        lines.append(f"  - ... {len(columns) - max_columns} more column(s) omitted\n")
    return "".join(lines)


def build_semantic_summary_prompt(info: TableInfo, sample: List[Dict[str, Any]], max_columns: int) -> str:
    return SEMANTIC_SUMMARY_PROMPT.format(
        table=info.table_name,
        column_count=len(info.columns),
        columns=format_columns(info.columns, max_columns),
        sample_count=len(sample),
        sample=json.dumps(sample, indent=2, default=str, ensure_ascii=False),
    )


def build_relationship_prompt(database: str, graph: Dict[str, List[Dict[str, Any]]]) -> str:
    return RELATIONSHIP_PROMPT.format(
        database=database,
        graph=json.dumps(graph, indent=2, default=str, ensure_ascii=False),
    )
