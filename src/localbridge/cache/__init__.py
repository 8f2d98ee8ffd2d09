"""Redis access for the redis_* tools and insight result caching."""

from .client import RedisClient, close_redis_clients, connect_redis_clients

__all__ = ["RedisClient", "connect_redis_clients", "close_redis_clients"]
