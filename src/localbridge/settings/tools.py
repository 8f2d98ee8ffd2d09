"""Tool limits and insight tool settings."""

from pydantic import BaseModel, Field


class DBToolsSettings(BaseModel):
    default_dry_run: bool = Field(
        default=False,
        description="When true, db_query returns the SQL preview instead of executing unless told otherwise"
    )
    max_rows: int = Field(default=1000, ge=1, description="Upper bound (and default) for db_query limit")
    query_timeout: float = Field(default=30.0, gt=0, description="Seconds allowed per db_query execution")
    enable_preview: bool = Field(default=True, description="Whether db_table_preview is available")
    preview_limit: int = Field(default=10, ge=1, description="Rows returned by db_table_preview")


class RedisToolsSettings(BaseModel):
    max_scan_keys: int = Field(default=100, ge=1, description="Keys returned by redis_scan at most")
    scan_count: int = Field(default=10, ge=1, description="COUNT hint sent with each SCAN call")


class IntrospectionSettings(BaseModel):
    cache_ttl: int = Field(default=300, ge=1, description="Seconds an introspection result stays cached")
    use_redis_cache: bool = Field(default=False)


class SemanticSummarySettings(BaseModel):
    sample_size: int = Field(default=10, ge=1, description="Rows sampled for the summary prompt")
    max_columns: int = Field(default=50, ge=1, description="Columns listed in the summary prompt")


class AnalyticsSettings(BaseModel):
    max_result_rows: int = Field(default=1000, ge=1)
    execution_timeout: float = Field(default=30.0, gt=0)


class RelationshipSettings(BaseModel):
    max_depth: int = Field(
        default=3,
        ge=1,
        description="Foreign-key hops followed from a single requested table"
    )
    cache_enabled: bool = Field(default=False)
    cache_ttl: int = Field(default=300, ge=1)


class InsightsSettings(BaseModel):
    introspection: IntrospectionSettings = Field(default_factory=IntrospectionSettings)
    semantic_summary: SemanticSummarySettings = Field(default_factory=SemanticSummarySettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    relationship: RelationshipSettings = Field(default_factory=RelationshipSettings)


class ToolsSettings(BaseModel):
    db: DBToolsSettings = Field(default_factory=DBToolsSettings)
    redis: RedisToolsSettings = Field(default_factory=RedisToolsSettings)
    insights: InsightsSettings = Field(default_factory=InsightsSettings)
