"""Configuration for localbridge.

Settings are pydantic models assembled into ``LocalBridgeSettings``, a
pydantic-settings ``BaseSettings`` that reads a YAML file (with ``${VAR}``
expansion) and lets ``LOCALBRIDGE_*`` environment variables override it.

Sections:
    - **server**: name, version, request timeout
    - **logging**: level, format (json/text), output (stdout/stderr/file)
    - **transports**: stdio, streamable HTTP, SSE
    - **databases**: MySQL and PostgreSQL instances
    - **redis**: Redis instances
    - **tools**: db/redis tool limits and insight tool settings

Example:
    ```python
    from localbridge.settings import load_settings

    settings = load_settings("config/config.yaml")
    for db in settings.databases.enabled():
        print(db.name, db.driver.value)
    ```
"""

from .databases import BaseDatabaseSettings, DatabasesSettings, MySQLSettings, PostgresSettings
from .main import LocalBridgeSettings, _reload_settings, expand_env, get_settings, load_settings
from .redis import RedisInstanceSettings, RedisSettings
from .server import (
    HttpTransportSettings,
    LoggingSettings,
    ServerSettings,
    SseTransportSettings,
    StdioTransportSettings,
    TransportsSettings,
)
from .tools import (
    AnalyticsSettings,
    DBToolsSettings,
    InsightsSettings,
    IntrospectionSettings,
    RedisToolsSettings,
    RelationshipSettings,
    SemanticSummarySettings,
    ToolsSettings,
)

__all__ = [
    "LocalBridgeSettings",
    "get_settings",
    "load_settings",
    "expand_env",
    "_reload_settings",
    "BaseDatabaseSettings",
    "DatabasesSettings",
    "MySQLSettings",
    "PostgresSettings",
    "RedisInstanceSettings",
    "RedisSettings",
    "ServerSettings",
    "LoggingSettings",
    "TransportsSettings",
    "StdioTransportSettings",
    "HttpTransportSettings",
    "SseTransportSettings",
    "ToolsSettings",
    "DBToolsSettings",
    "RedisToolsSettings",
    "InsightsSettings",
    "IntrospectionSettings",
    "SemanticSummarySettings",
    "AnalyticsSettings",
    "RelationshipSettings",
]
