"""Unit tests for the settled-transaction registries."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tron_facilitator.infrastructure import settlement_registry
from tron_facilitator.infrastructure.settlement_registry import (
    InMemorySettlementRegistry,
    RedisSettlementRegistry,
    SettlementRegistry,
)


class TestInMemoryRegistry:
    @pytest.mark.asyncio
    async def test_second_claim_refused(self) -> None:
        registry = InMemorySettlementRegistry()

        assert await registry.claim("AB" * 32) is True
        assert await registry.claim("ab" * 32) is False

    @pytest.mark.asyncio
    async def test_release_allows_reclaim(self) -> None:
        registry = InMemorySettlementRegistry()
        await registry.claim("ab" * 32)
        await registry.release("ab" * 32)

        assert await registry.claim("ab" * 32) is True

    @pytest.mark.asyncio
    async def test_expired_claim_can_be_reclaimed(self) -> None:
        registry = InMemorySettlementRegistry(ttl_seconds=0)
        await registry.claim("ab" * 32)

        assert await registry.claim("ab" * 32) is True

    @pytest.mark.asyncio
    async def test_expired_claims_are_pruned(self) -> None:
        registry = InMemorySettlementRegistry(ttl_seconds=0)

        for i in range(1000):
            assert await registry.claim(f"{i:064x}") is True

        assert len(registry._claims) <= 1

    @pytest.mark.asyncio
    async def test_live_claims_survive_pruning(self) -> None:
        registry = InMemorySettlementRegistry(ttl_seconds=3600)

        for i in range(3):
            await registry.claim(f"{i:064x}")

        assert len(registry._claims) == 3
        assert await registry.claim(f"{0:064x}") is False

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemorySettlementRegistry(), SettlementRegistry)


class TestRedisRegistry:
    @pytest.mark.asyncio
    async def test_claim_uses_set_nx_with_ttl(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock(return_value=True)
        registry = RedisSettlementRegistry(redis, ttl_seconds=600)

        assert await registry.claim("AB" * 32) is True
        redis.set.assert_awaited_once_with("settled:" + "ab" * 32, "1", nx=True, ex=600)

    @pytest.mark.asyncio
    async def test_existing_key_refused(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock(return_value=None)
        registry = RedisSettlementRegistry(redis, ttl_seconds=600)

        assert await registry.claim("ab" * 32) is False

    @pytest.mark.asyncio
    async def test_release_deletes_key(self) -> None:
        redis = MagicMock()
        redis.delete = AsyncMock(return_value=1)
        registry = RedisSettlementRegistry(redis, ttl_seconds=600)

        await registry.release("ab" * 32)
        redis.delete.assert_awaited_once_with("settled:" + "ab" * 32)


class TestRegistrySingleton:
    @pytest.mark.asyncio
    async def test_memory_backend_from_settings(self) -> None:
        settings = MagicMock(
            settlement_registry_backend="memory", redis_settlement_ttl_seconds=60
        )
        with patch.object(settlement_registry, "get_settings", return_value=settings):
            registry = await settlement_registry.init_registry()

        try:
            assert registry.name == "memory"
            assert settlement_registry.get_registry() is registry
        finally:
            await settlement_registry.close_registry()

        with pytest.raises(RuntimeError):
            settlement_registry.get_registry()

    @pytest.mark.asyncio
    async def test_redis_backend_pings_on_startup(self) -> None:
        settings = MagicMock(
            settlement_registry_backend="redis",
            redis_settlement_ttl_seconds=60,
            redis_url="redis://localhost:6379/0",
        )
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()

        with (
            patch.object(settlement_registry, "get_settings", return_value=settings),
            patch.object(settlement_registry.aioredis, "from_url", return_value=client),
        ):
            registry = await settlement_registry.init_registry()

        try:
            assert registry.name == "redis"
            client.ping.assert_awaited_once()
        finally:
            await settlement_registry.close_registry()
        client.aclose.assert_awaited_once()
