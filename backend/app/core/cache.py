"""
Cache adapters: in-memory and Redis.

Both adapters share one async interface (get / set / delete / close) and
never raise: backend failures are logged and degrade to a miss or a no-op.
`create_cache` picks Redis when REDIS_URL is configured and reachable and
falls back to the in-memory adapter otherwise.

Values are JSON-serialized for Redis; the in-memory adapter stores them as-is.
"""
import asyncio
import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import Settings
from app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


class CacheAdapter(ABC):
    """Async key/value cache with per-entry TTL."""

    backend: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss, expiry or error."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store a value. Returns False if the write did not happen."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present."""

    async def close(self) -> None:
        """Release background tasks and connections."""


class MemoryCache(CacheAdapter):
    """
    Process-local cache storing key -> (value, expires_at).

    Expired entries are dropped lazily on read and proactively by a sweep
    task started with `start_sweeper`. Each operation is a single dict
    access, so concurrent coroutines need no locking; a read racing an
    expiry only costs one extra miss.
    """

    backend = "memory"

    def __init__(
        self,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() > expires_at:
            self._entries.pop(key, None)
            return None

        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        self._entries[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in list(self._entries.items()) if now > expires_at]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("cache_sweep_completed", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def start_sweeper(self, interval_seconds: float = 60.0) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_loop(interval_seconds)
        )

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep_expired()

    async def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        self._entries.clear()


class RedisCache(CacheAdapter):
    """Redis-backed cache. All errors are logged and swallowed."""

    backend = "redis"

    def __init__(self, client: aioredis.Redis, default_ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._client = client
        self.default_ttl_seconds = default_ttl_seconds

    @classmethod
    async def connect(cls, redis_url: str, default_ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "RedisCache":
        """
        Create a client and verify the connection.

        Raises:
            RedisError / ValueError if the URL is invalid or the server is unreachable.
        """
        client = aioredis.from_url(
            redis_url,
            max_connections=20,
            socket_connect_timeout=5,
            socket_timeout=5,
            decode_responses=True,
        )
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise
        logger.info("redis_connected")
        return cls(client, default_ttl_seconds)

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            logger.error("cache_get_error", key=key, error=str(e), error_type=type(e).__name__)
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        try:
            serialized = value if isinstance(value, str) else json.dumps(value)
            await self._client.setex(key, ttl, serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.error("cache_set_error", key=key, error=str(e), error_type=type(e).__name__)
            return False

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            logger.error("cache_delete_error", key=key, error=str(e), error_type=type(e).__name__)

    async def close(self) -> None:
        try:
            await self._client.aclose()
            logger.info("redis_closed")
        except Exception as e:
            logger.error("redis_close_failed", error=str(e), exc_info=True)


async def create_cache(settings: Settings) -> CacheAdapter:
    """
    Build the cache adapter for this process.

    Uses Redis when REDIS_URL is set and the server answers a ping,
    otherwise an in-memory cache with its sweep task running.
    """
    if settings.redis_url:
        try:
            return await RedisCache.connect(settings.redis_url, settings.cache_ttl_seconds)
        except Exception as e:
            logger.warning(
                "redis_unavailable_using_memory_cache",
                error=str(e),
                error_type=type(e).__name__,
            )

    cache = MemoryCache(default_ttl_seconds=settings.cache_ttl_seconds)
    cache.start_sweeper(settings.cache_sweep_interval_seconds)
    logger.info("memory_cache_initialized", ttl_seconds=settings.cache_ttl_seconds)
    return cache


def hash_key(*parts: str) -> str:
    """Stable hash of one or more strings, for cache keys."""
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()
