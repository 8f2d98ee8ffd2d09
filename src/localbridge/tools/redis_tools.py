from typing import List, Mapping, Optional

from localbridge.cache import RedisClient
from localbridge.logging import get_logger
from localbridge.settings.tools import RedisToolsSettings

from .common import get_redis, require, to_json

logger = get_logger(__name__)


class RedisToolsHandler:
    """Handlers for the ``redis_*`` tools."""

    def __init__(self, clients: Mapping[str, RedisClient], settings: RedisToolsSettings):
        self.clients = clients
        self.settings = settings

    async def redis_get(self, redis: str, key: str) -> str:
        """Get a value from Redis by key."""
        client = get_redis(self.clients, redis)
        require(key, "key")
        value = await client.get(key)
        return to_json({"redis": redis, "key": key, "value": value, "found": value is not None})

    async def redis_set(self, redis: str, key: str, value: str, ttl: Optional[int] = None) -> str:
        """Set a key to a string value, with an optional time-to-live in seconds."""
        client = get_redis(self.clients, redis)
        require(key, "key")
        require(value, "value")
        expiry = ttl if ttl and ttl > 0 else None
        await client.set(key, value, ttl=expiry)
        return to_json({"redis": redis, "key": key, "success": True, "ttl": expiry or 0})

    async def redis_scan(self, redis: str, pattern: str = "*") -> str:
        """List keys matching a glob pattern such as "user:*", up to the configured maximum."""
        client = get_redis(self.clients, redis)
        pattern = pattern or "*"
        max_keys = self.settings.max_scan_keys

        keys: List[str] = []
        cursor = 0
        while len(keys) < max_keys:
            cursor, batch = await client.scan(cursor, match=pattern, count=self.settings.scan_count)
            keys.extend(batch)
            if cursor == 0:
                break

        keys = keys[:max_keys]
        logger.debug("Redis scan finished", extra={"redis": redis, "pattern": pattern, "keys": len(keys)})
        return to_json({
            "redis": redis,
            "pattern": pattern,
            "keys": keys,
            "count": len(keys),
            "limited": len(keys) >= max_keys,
        })
