import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

KEY_PREFIX = "courseflow:"


class CacheBackend(ABC):
    """Expiring string store. A ttl of 0 keeps the key until it is deleted."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


class MemoryCacheBackend(CacheBackend):
    def __init__(self, clock: Callable[[], float] = time.time):
        # key -> (value, expires_at); expires_at 0 never expires
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _is_expired(self, expires_at: float) -> bool:
        return expires_at > 0 and self._clock() >= expires_at

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._is_expired(expires_at):
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        async with self._lock:
            expires_at = self._clock() + ttl if ttl else 0
            self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            entry = self._entries.pop(key, None)
            return entry is not None and not self._is_expired(entry[1])


class RedisCacheBackend(CacheBackend):
    def __init__(self, redis_url: str):
        import redis.asyncio as redis
        self.redis = redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(KEY_PREFIX + key)
        except Exception as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            raise

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self.redis.set(KEY_PREFIX + key, value, ex=ttl or None)
        except Exception as e:
            logger.error(f"Redis SET failed for {key}: {e}")
            raise

    async def delete(self, key: str) -> bool:
        try:
            return await self.redis.delete(KEY_PREFIX + key) > 0
        except Exception as e:
            logger.error(f"Redis DELETE failed for {key}: {e}")
            raise


def create_cache_backend(redis_url: Optional[str] = None) -> CacheBackend:
    if redis_url:
        logger.info("Using Redis for one-time codes")
        return RedisCacheBackend(redis_url)

    logger.info("Using in-process store for one-time codes")
    return MemoryCacheBackend()
