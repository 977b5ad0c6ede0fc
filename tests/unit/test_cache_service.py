"""Tests for CacheService with a mocked Redis client."""

import json
from unittest.mock import AsyncMock, MagicMock

import redis.asyncio as redis

from fleet_rbac.core.config import Settings
from fleet_rbac.infrastructure.cache import CacheService


class _Pipeline:
    def __init__(self) -> None:
        self.keys: list[str] = []

    async def __aenter__(self) -> "_Pipeline":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    def unlink(self, *keys: str) -> None:
        self.keys.extend(keys)

    async def execute(self) -> list[int]:
        return [len(self.keys)]


def _service(client: AsyncMock | None = None) -> CacheService:
    return CacheService(
        redis_client=client,
        settings=Settings(secret_key="test-secret", redis_enabled=True),
    )


def test_unavailable_without_client() -> None:
    assert not _service().is_available()


async def test_operations_degrade_when_unavailable() -> None:
    cache = _service()
    assert await cache.get("k") is None
    assert await cache.set("k", ["v"]) is False
    assert await cache.delete("k") is False
    assert await cache.delete_pattern("permission:t1:*") == 0


async def test_get_decodes_json() -> None:
    client = AsyncMock()
    client.get.return_value = json.dumps(["rental_read", "vehicle_read"])
    cache = _service(client)
    assert await cache.get("permission:t1:u1") == ["rental_read", "vehicle_read"]
    client.get.assert_awaited_once_with("permission:t1:u1")


async def test_get_miss() -> None:
    client = AsyncMock()
    client.get.return_value = None
    assert await _service(client).get("permission:t1:u1") is None


async def test_set_uses_ttl() -> None:
    client = AsyncMock()
    cache = _service(client)
    assert await cache.set("permission:t1:u1", ["vehicle_read"], ttl=60) is True
    client.setex.assert_awaited_once_with("permission:t1:u1", 60, '["vehicle_read"]')


async def test_redis_error_is_a_miss() -> None:
    client = AsyncMock()
    client.get.side_effect = redis.RedisError("boom")
    assert await _service(client).get("k") is None


async def test_connection_loss_tries_one_reconnect() -> None:
    client = AsyncMock()
    client.get.side_effect = redis.ConnectionError("gone")
    cache = _service(client)
    cache._reconnect = AsyncMock(return_value=False)
    assert await cache.get("k") is None
    cache._reconnect.assert_awaited_once()


async def test_delete_pattern_unlinks_matching_keys() -> None:
    async def scan(match: str):
        for key in ("permission:t1:u1", "permission:t1:u2"):
            yield key

    pipeline = _Pipeline()
    client = MagicMock()
    client.scan_iter = MagicMock(side_effect=scan)
    client.pipeline = MagicMock(return_value=pipeline)
    cache = _service(client)
    assert await cache.delete_pattern("permission:t1:*") == 2
    assert pipeline.keys == ["permission:t1:u1", "permission:t1:u2"]
    client.scan_iter.assert_called_once_with(match="permission:t1:*")


async def test_disconnect_closes_client() -> None:
    client = AsyncMock()
    cache = _service(client)
    await cache.disconnect()
    client.aclose.assert_awaited_once()
    assert not cache.is_available()
