from typing import Mapping, Optional

from localbridge.cache import RedisClient
from localbridge.common.exceptions import LocalBridgeError
from localbridge.logging import get_logger

logger = get_logger(__name__)


class ResultCache:
    """Best-effort cache of insight results in the first connected Redis instance.

    A cache failure never fails the tool call; it is logged and the result
    is computed (or returned) as if no cache existed.
    """

    def __init__(self, clients: Mapping[str, RedisClient], enabled: bool, ttl: int):
        self.client: Optional[RedisClient] = next(iter(clients.values()), None) if enabled else None
        self.ttl = ttl

    @property
    def active(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Optional[str]:
        if self.client is None:
            return None
        try:
            cached = await self.client.get(key)
        except LocalBridgeError as exc:
            logger.warning("Cache read failed", extra={"cache_key": key, "error": str(exc)})
            return None
        if cached:
            logger.info("Returning cached result", extra={"cache_key": key})
        return cached or None

    async def set(self, key: str, value: str) -> None:
        if self.client is None:
            return
        try:
            await self.client.set(key, value, ttl=self.ttl)
        except LocalBridgeError as exc:
            logger.warning("Cache write failed", extra={"cache_key": key, "error": str(exc)})
