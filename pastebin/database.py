"""
Key-value backends for paste records and analytics counters.

Two variants share one capability interface: ``RedisBackend`` (persistent)
and ``InMemoryBackend`` (in-process double for development and tests). The
variant is picked once from configuration by ``create_backend``.
"""
import fnmatch
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from redis.asyncio import Redis

from pastebin.utils import utcnow

logger = logging.getLogger(__name__)


class KVBackend(ABC):
    """Minimal async key-value contract: per-key atomic reads and writes, approximate TTL."""

    name: str = "kv"
    persistent: bool = False

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def incr(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        ...

    @abstractmethod
    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10) -> Tuple[int, List[str]]:
        """Return ``(next_cursor, keys)``; a next cursor of 0 means iteration is complete."""

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None


class InMemoryBackend(KVBackend):
    """
    Simple in-memory store for development/testing.

    TTLs are recorded but only enforced by ``sweep()``, mirroring a real KV
    whose expiry sweep runs on its own schedule. Reads between the deadline
    and the next sweep still see the stale value.
    """

    name = "memory"
    persistent = False

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.store: Dict[str, str] = {}
        self.ttl_deadlines: Dict[str, datetime] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        self.store[key] = value
        if ttl_seconds:
            self.ttl_deadlines[key] = self._clock() + timedelta(seconds=ttl_seconds)
        else:
            self.ttl_deadlines.pop(key, None)

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)
        self.ttl_deadlines.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self.store

    async def incr(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        current = int(self.store.get(key, 0))
        self.store[key] = str(current + amount)
        if ttl_seconds and key not in self.ttl_deadlines:
            self.ttl_deadlines[key] = self._clock() + timedelta(seconds=ttl_seconds)
        return current + amount

    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10) -> Tuple[int, List[str]]:
        keys = sorted(k for k in self.store if fnmatch.fnmatchcase(k, match))
        page = keys[cursor:cursor + count]
        next_cursor = cursor + count
        return (next_cursor if next_cursor < len(keys) else 0), page

    async def ping(self) -> bool:
        return True

    def ttl_deadline(self, key: str) -> Optional[datetime]:
        return self.ttl_deadlines.get(key)

    def sweep(self) -> int:
        """Drop every key whose TTL deadline has passed."""
        now = self._clock()
        expired = [k for k, deadline in self.ttl_deadlines.items() if deadline <= now]
        for key in expired:
            self.store.pop(key, None)
            self.ttl_deadlines.pop(key, None)
        return len(expired)


class RedisBackend(KVBackend):
    """Redis (or any Redis-protocol service such as Upstash) via redis.asyncio."""

    name = "redis"
    persistent = True

    def __init__(self, url: str, socket_timeout: Optional[float] = None, client: Optional[Redis] = None):
        if client is None:
            # For Upstash Redis, use rediss:// scheme for SSL/TLS
            logger.info(f"Configuring Redis backend: {url[:30]}...")
            client = Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout,
            )
        self.redis = client

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds:
            await self.redis.set(key, value, ex=ttl_seconds)
        else:
            await self.redis.set(key, value)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def exists(self, key: str) -> bool:
        return bool(await self.redis.exists(key))

    async def incr(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        # INCRBY is atomic, concurrent counters never lose updates
        value = int(await self.redis.incrby(key, amount))
        if ttl_seconds and value == amount:
            # First write of this counter
            await self.redis.expire(key, ttl_seconds)
        return value

    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10) -> Tuple[int, List[str]]:
        next_cursor, keys = await self.redis.scan(cursor=cursor, match=match, count=count)
        return int(next_cursor), list(keys)

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


def create_backend(backend: str, redis_url: str = "", socket_timeout: Optional[float] = None,
                   clock: Callable[[], datetime] = utcnow) -> KVBackend:
    """Build the configured backend variant. Unknown names are a configuration error."""
    if backend == "redis":
        return RedisBackend(redis_url, socket_timeout=socket_timeout)
    if backend == "memory":
        return InMemoryBackend(clock=clock)
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r} (expected 'redis' or 'memory')")
