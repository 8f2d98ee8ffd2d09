"""MCP tool handlers for databases and Redis."""

from .common import get_redis, get_repository, parse_conditions, to_json
from .db_tools import DBToolsHandler
from .redis_tools import RedisToolsHandler

__all__ = [
    "DBToolsHandler",
    "RedisToolsHandler",
    "get_repository",
    "get_redis",
    "parse_conditions",
    "to_json",
]
