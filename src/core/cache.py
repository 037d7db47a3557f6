"""Key-based cache for resource listings.

Reads go through `get_or_load`: a hit returns the cached JSON, a miss runs the
loader and stores its result. Concurrent misses for the same key in this
process share one in-flight load. Mutations call `invalidate` with the
listing key, which also detaches any load of that key still running so
its older snapshot is never stored. Nothing is locked.

Without Redis the cache is a pass-through and every read hits the database.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import orjson
import redis.asyncio as redis
import structlog


logger = structlog.get_logger(__name__)


class ResourceCache:
    """Read-through JSON cache keyed by resource path."""

    def __init__(self, client: redis.Redis | None, ttl_seconds: int = 300) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._generations: dict[str, int] = {}

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Any | None:
        """Return the cached value or None (also on Redis errors)."""
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        return orjson.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        if self.client is None:
            return
        try:
            await self.client.set(key, orjson.dumps(value), ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    async def invalidate(self, *keys: str) -> None:
        """Drop cached entries after a mutation.

        Loads already running for these keys are detached: their result still
        reaches the callers that joined them, but is never written back.
        """
        for key in keys:
            self._generations[key] = self._generations.get(key, 0) + 1
            self._inflight.pop(key, None)

        if self.client is None or not keys:
            return
        try:
            await self.client.delete(*keys)
            logger.debug("cache_invalidated", keys=list(keys))
        except redis.RedisError as e:
            logger.warning("cache_invalidate_failed", keys=list(keys), error=str(e))

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for `key`, loading and storing it on a miss.

        The loader must return JSON-serialisable data (orjson handles UUID and
        datetime). A caller waiting on another caller's load retries on its own
        when that load is cancelled.
        """
        while True:
            cached = await self.get(key)
            if cached is not None:
                return cached

            pending = self._inflight.get(key)
            if pending is None:
                break
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise

        generation = self._generations.get(key, 0)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Retrieve so the loop does not warn when nobody else awaited it
            future.exception()
            raise
        else:
            future.set_result(value)
            if self._generations.get(key, 0) == generation:
                await self.set(key, value)
                if self._generations.get(key, 0) != generation:
                    # Invalidated while storing
                    await self._delete(key)
            return value
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    async def _delete(self, key: str) -> None:
        if self.client is None:
            return
        try:
            await self.client.delete(key)
        except redis.RedisError as e:
            logger.warning("cache_invalidate_failed", keys=[key], error=str(e))
