"""Settled-transaction registry: rejects a second settle of the same tx id.

The core keeps no cross-call state, so replay de-duplication lives here at
the HTTP layer. ``claim`` is atomic: Redis ``SET NX`` with a TTL, or a
process-local dict for single-process deployments and tests.

Usage:
    from tron_facilitator.infrastructure.settlement_registry import get_registry

    registry = get_registry()
    if not await registry.claim(tx_id):
        ...  # already settled or in flight
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

import redis.asyncio as aioredis

from tron_facilitator.config import get_settings
from tron_facilitator.logging_config import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "settled:"


@runtime_checkable
class SettlementRegistry(Protocol):
    name: str

    async def claim(self, tx_id: str) -> bool:
        """Reserve ``tx_id``. Returns False if it is already claimed."""
        ...

    async def release(self, tx_id: str) -> None:
        """Drop a claim so the transaction may be settled again."""
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


class RedisSettlementRegistry:
    """Registry shared by every worker through Redis."""

    name = "redis"

    def __init__(self, client: aioredis.Redis, ttl_seconds: int) -> None:
        self._redis = client
        self._ttl = ttl_seconds

    async def claim(self, tx_id: str) -> bool:
        claimed = await self._redis.set(
            f"{KEY_PREFIX}{tx_id.lower()}", "1", nx=True, ex=self._ttl
        )
        return bool(claimed)

    async def release(self, tx_id: str) -> None:
        await self._redis.delete(f"{KEY_PREFIX}{tx_id.lower()}")

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()


class InMemorySettlementRegistry:
    """Process-local registry. Claims expire after ``ttl_seconds``.

    The TTL is fixed, so insertion order is expiry order: expired claims are
    dropped from the front of the map on every ``claim``.
    """

    name = "memory"

    def __init__(self, ttl_seconds: int = 86400) -> None:
        self._ttl = ttl_seconds
        self._claims: dict[str, float] = {}

    async def claim(self, tx_id: str) -> bool:
        now = time.monotonic()
        self._prune(now)
        key = tx_id.lower()
        if key in self._claims:
            return False
        self._claims[key] = now + self._ttl
        return True

    def _prune(self, now: float) -> None:
        while self._claims:
            oldest = next(iter(self._claims))
            if self._claims[oldest] > now:
                break
            del self._claims[oldest]

    async def release(self, tx_id: str) -> None:
        self._claims.pop(tx_id.lower(), None)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._claims.clear()


# ---------------------------------------------------------------------------
# Application singleton
# ---------------------------------------------------------------------------

_registry: SettlementRegistry | None = None


async def init_registry() -> SettlementRegistry:
    """Initialize the configured registry. Called during app startup."""
    global _registry
    settings = get_settings()
    ttl = settings.redis_settlement_ttl_seconds

    if settings.settlement_registry_backend == "redis":
        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        # Verify connectivity
        await client.ping()
        logger.info("redis.connected", url=settings.redis_url)
        _registry = RedisSettlementRegistry(client, ttl)
    else:
        _registry = InMemorySettlementRegistry(ttl)

    logger.info("registry.initialized", backend=_registry.name, ttl_seconds=ttl)
    return _registry


def use_registry(registry: SettlementRegistry) -> None:
    """Install an already-built registry (fallbacks and tests)."""
    global _registry
    _registry = registry


def get_registry() -> SettlementRegistry:
    """Return the registry singleton. Must call init_registry() first."""
    if _registry is None:
        raise RuntimeError("Settlement registry not initialized. Call init_registry() first.")
    return _registry


async def close_registry() -> None:
    """Close the registry. Called during app shutdown."""
    global _registry
    if _registry is not None:
        await _registry.close()
        logger.info("registry.closed", backend=_registry.name)
        _registry = None
