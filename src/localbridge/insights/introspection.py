from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from localbridge.cache import RedisClient
from localbridge.common.exceptions import LocalBridgeError
from localbridge.logging import get_logger
from localbridge.repositories import BaseRepository
from localbridge.settings.tools import IntrospectionSettings
from localbridge.tools.common import get_repository, to_json

from .cache import ResultCache

logger = get_logger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class IntrospectionHandler:
    """Whole-database schema introspection, optionally cached in Redis."""

    def __init__(
        self,
        repositories: Mapping[str, BaseRepository],
        redis_clients: Mapping[str, RedisClient],
        settings: IntrospectionSettings,
    ):
        self.repositories = repositories
        self.settings = settings
        self.cache = ResultCache(redis_clients, settings.use_redis_cache, settings.cache_ttl)

    async def introspection(self, database: str, refresh: bool = False) -> str:
        """Describe every table of a database: columns, types, primary keys,
        approximate row counts and foreign key counts. Results may be cached;
        pass refresh=true to rebuild them.
        """
        repository = get_repository(self.repositories, database)
        cache_key = f"introspection:{database}"

        if not refresh:
            cached = await self.cache.get(cache_key)
            if cached:
                return cached

        tables: List[Dict[str, Any]] = []
        for table in await repository.list_tables():
            try:
                info = await repository.describe_table(table)
                foreign_keys = await repository.list_foreign_keys(table)
            except LocalBridgeError as exc:
                logger.warning(
                    "Skipping table during introspection",
                    extra={"database": database, "table": table, "error": str(exc)},
                )
                continue

            if foreign_keys:
                info.description = f"Has {len(foreign_keys)} foreign key(s)"
            tables.append(info.to_dict())

        payload = to_json({
            "database": database,
            "table_count": len(tables),
            "tables": tables,
            "cached_at": utc_timestamp(),
            "cache_ttl": self.settings.cache_ttl,
        })
        await self.cache.set(cache_key, payload)
        return payload
