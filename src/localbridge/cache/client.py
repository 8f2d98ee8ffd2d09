"""Async Redis client for one named instance."""

from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from localbridge.common.exceptions import LocalBridgeError, backend_error, connection_error
from localbridge.logging import get_logger
from localbridge.settings.redis import RedisInstanceSettings, RedisSettings
from localbridge.utils.decorators import retry_with_backoff, traced

logger = get_logger(__name__)


class RedisClient:
    """Thin wrapper over ``redis.asyncio.Redis`` with localbridge errors.

    Values are decoded to ``str``. Every Redis failure surfaces as a
    ``QUERY_EXECUTION_ERROR`` carrying the native Redis message.
    """

    def __init__(self, settings: RedisInstanceSettings, client: Optional[aioredis.Redis] = None):
        self.settings = settings
        self._client = client if client is not None else self._create_client()

    @property
    def name(self) -> str:
        return self.settings.name

    def _create_client(self) -> aioredis.Redis:
        return aioredis.Redis(
            host=self.settings.host,
            port=self.settings.port,
            db=self.settings.db,
            password=self.settings.password.get_secret_value() or None,
            max_connections=self.settings.pool_size,
            socket_connect_timeout=self.settings.dial_timeout,
            socket_timeout=self.settings.read_timeout,
            decode_responses=True,
        )

    def _span_attributes(self, *args: Any, **kwargs: Any) -> Dict[str, Any]:
        return {
            "db.system": "redis",
            "db.name": self.name,
            "net.peer.name": self.settings.host,
            "net.peer.port": self.settings.port,
        }

    async def connect(self) -> None:
        """Verify the instance is reachable, retrying transient failures."""
        try:
            await self._ping_with_retry()
        except LocalBridgeError as exc:
            raise connection_error(
                f"failed to connect to Redis '{self.name}': {exc.message}",
                service=self.name,
                host=self.settings.host,
                cause=exc,
            ) from exc
        logger.info("Redis connected", extra={"redis": self.name})

    @retry_with_backoff(max_retries=2, initial_delay=0.5, retry_on=(LocalBridgeError,))
    async def _ping_with_retry(self) -> None:
        await self.ping()

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except (RedisError, OSError) as exc:
            raise backend_error("PING", exc, database=self.name) from exc

    @traced(span_name="localbridge.redis.get", attribute_getter=lambda self, key: self._span_attributes())
    async def get(self, key: str) -> Optional[str]:
        """Return the value at ``key``, or ``None`` when the key does not exist."""
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as exc:
            raise backend_error(f"GET {key}", exc, database=self.name) from exc

    @traced(
        span_name="localbridge.redis.set",
        attribute_getter=lambda self, key, value, ttl=None: self._span_attributes(),
    )
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store ``value`` at ``key``; a positive ``ttl`` sets expiry in seconds."""
        try:
            await self._client.set(key, value, ex=ttl if ttl and ttl > 0 else None)
        except (RedisError, OSError) as exc:
            raise backend_error(f"SET {key}", exc, database=self.name) from exc

    @traced(span_name="localbridge.redis.scan", attribute_getter=lambda self, *a, **kw: self._span_attributes())
    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10) -> Tuple[int, List[str]]:
        """Run one SCAN step; returns the next cursor (0 when done) and the keys."""
        try:
            next_cursor, keys = await self._client.scan(cursor=cursor, match=match, count=count)
        except (RedisError, OSError) as exc:
            raise backend_error(f"SCAN {cursor} MATCH {match}", exc, database=self.name) from exc
        return int(next_cursor), list(keys)

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed", extra={"redis": self.name})


async def connect_redis_clients(settings: RedisSettings) -> Dict[str, RedisClient]:
    """Connect every enabled Redis instance.

    Redis is optional: an instance that cannot be reached is logged and
    left out instead of failing startup.
    """
    clients: Dict[str, RedisClient] = {}
    for instance in settings.enabled():
        logger.info("Initializing Redis client", extra={"redis": instance.name})
        client = RedisClient(instance)
        try:
            await client.connect()
        except LocalBridgeError as exc:
            logger.warning("Skipping unreachable Redis instance", extra={"redis": instance.name, "error": str(exc)})
            await client.close()
            continue
        clients[instance.name] = client
    return clients


async def close_redis_clients(clients: Dict[str, RedisClient]) -> None:
    for name, client in clients.items():
        try:
            await client.close()
        except Exception as exc:
            logger.error("Failed to close Redis client", extra={"redis": name, "error": str(exc)})
