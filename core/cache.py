import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from aiocache import SimpleMemoryCache

from core.clock import Clock, monotonic
from core.config import settings

logger = logging.getLogger(__name__)

V = TypeVar("V")

@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Cached value with the absolute instant it stops being served."""
    value: V
    expires_at: float

class TimedCache(Generic[V]):
    """Key -> value store where every entry carries its own expiry.

    Expiry is checked against the injected clock on every read, so an entry
    past its deadline is removed and reported as a miss even if the backend
    has not evicted it yet. Backed by an aiocache in-memory cache; each
    instance gets its own namespace so isolated instances never share keys.
    """

    def __init__(self, clock: Clock = monotonic, namespace: Optional[str] = None):
        self._clock = clock
        prefix = settings.cache["prefix"]
        self.namespace = namespace or f"{prefix}:{uuid.uuid4().hex[:8]}"
        self._backend = SimpleMemoryCache(namespace=self.namespace)
        self._write_lock = asyncio.Lock()
        self.enabled = settings.cache["enabled"]

    async def get(self, key: str) -> Optional[V]:
        """Return the live value for key, or None on a miss."""
        entry: Optional[CacheEntry[V]] = await self._backend.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            await self._evict(key, entry)
            return None
        return entry.value

    async def _evict(self, key: str, expired: CacheEntry[V]) -> None:
        # Only remove the entry we saw expire, never one written since
        async with self._write_lock:
            if await self._backend.get(key) is expired:
                logger.debug(f"Cache entry expired: {self.namespace}:{key}")
                await self._backend.delete(key)

    async def set(self, key: str, value: V, ttl: float) -> None:
        """Store value under key until now + ttl. Last writer wins."""
        if not self.enabled:
            return
        entry = CacheEntry(value=value, expires_at=self._clock() + ttl)
        async with self._write_lock:
            await self._backend.set(key, entry, ttl=ttl)

    async def clear(self) -> None:
        """Drop every entry in this cache."""
        async with self._write_lock:
            await self._backend.clear(namespace=self.namespace)
        logger.info(f"Cleared cache namespace {self.namespace}")

    async def close(self) -> None:
        await self._backend.close()
