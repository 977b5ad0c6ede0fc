"""Redis-based cache for effective permission sets.

Values are JSON-encoded with a TTL. Every operation degrades to a miss or
a no-op when Redis is unreachable, so a cache outage never turns into an
authorization failure; the engine simply recomputes from the stores.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from fleet_rbac.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNLINK_CHUNK = 500


class CacheService:
    """Async Redis cache with TTL. Call connect() at startup and disconnect() at shutdown."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional pre-built client (tests or DI). Treated as connected.
            settings: Optional settings; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Failure leaves the cache disabled."""
        if self.redis is not None and self._connected:
            return
        password = self.settings.redis_password
        client = redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=password.get_secret_value() if password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis connection failed: %s. Cache disabled.", e)
            await client.aclose()
            self.redis = None
            self._connected = False
            return
        self.redis = client
        self._connected = True
        logger.info(
            "Redis cache connected: %s:%s", self.settings.redis_host, self.settings.redis_port
        )

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Redis cache disconnected")
        self.redis = None
        self._connected = False

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _run(
        self, op_name: str, key: str, op: Callable[[redis.Redis], Awaitable[T]], default: T
    ) -> T:
        """Run op against Redis, reconnecting once on a dropped connection."""
        if not self.is_available():
            return default
        for attempt in (1, 2):
            try:
                return await op(self.redis)
            except (redis.ConnectionError, redis.TimeoutError):
                if attempt == 2 or not await self._reconnect():
                    logger.warning("Cache %s unavailable for %s (Redis disconnected)", op_name, key)
                    return default
            except redis.RedisError:
                logger.exception("Cache %s error for %s", op_name, key)
                return default
        return default

    async def _reconnect(self) -> bool:
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except redis.RedisError:
                logger.debug("Error closing stale Redis connection", exc_info=True)
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-decoded) or None if missing/unavailable."""

        async def op(client: redis.Redis) -> Any | None:
            value = await client.get(key)
            if value is None:
                logger.debug("Cache MISS: %s", key)
                return None
            logger.debug("Cache HIT: %s", key)
            return json.loads(value)

        return await self._run("get", key, op, None)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL (seconds). Returns True on success."""
        serialized = json.dumps(value)

        async def op(client: redis.Redis) -> bool:
            await client.setex(key, ttl, serialized)
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
            return True

        return await self._run("set", key, op, False)

    async def delete(self, key: str) -> bool:
        """Remove key. Returns True if the command ran."""

        async def op(client: redis.Redis) -> bool:
            await client.delete(key)
            logger.debug("Cache DELETE: %s", key)
            return True

        return await self._run("delete", key, op, False)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern with SCAN + batched UNLINK. Returns count."""

        async def unlink(client: redis.Redis, keys: list[str]) -> int:
            async with client.pipeline(transaction=False) as pipe:
                pipe.unlink(*keys)
                results = await pipe.execute()
            return sum(int(r or 0) for r in results)

        async def op(client: redis.Redis) -> int:
            deleted = 0
            chunk: list[str] = []
            async for key in client.scan_iter(match=pattern):
                chunk.append(key)
                if len(chunk) >= _UNLINK_CHUNK:
                    deleted += await unlink(client, chunk)
                    chunk = []
            if chunk:
                deleted += await unlink(client, chunk)
            if deleted:
                logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
            return deleted

        return await self._run("delete_pattern", pattern, op, 0)
