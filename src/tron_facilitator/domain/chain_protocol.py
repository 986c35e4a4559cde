"""Chain Client Protocol.

Defines the capability interface the core needs from a ledger. This is a
Protocol (structural subtyping) so concrete adapters don't need to inherit
from a base class — they just need to match the shape.

The domain layer has ZERO imports from httpx, eth-keys or any node SDK.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tron_facilitator.domain.models import BroadcastResult, ExecutionStatus


@runtime_checkable
class ChainClient(Protocol):
    """Protocol that all chain adapters must satisfy.

    Concrete implementations:
        - chain/tron_client.py (TronGrid HTTP API)

    Pure helpers are synchronous; everything that talks to a node is a
    coroutine and may raise ``ChainClientError``.
    """

    def get_operating_addresses(self) -> list[str]:
        """Addresses this facilitator signs or broadcasts with."""
        ...

    def hash(self, raw_bytes_hex: str) -> str:
        """Return the lowercase hex sha256 of the given hex-encoded bytes."""
        ...

    def recover_signer(
        self, content_hash: str, r: str, s: str, recovery_id: int
    ) -> str:
        """Recover the display address that produced the signature."""
        ...

    def to_display_address(self, raw_address: str) -> str:
        """Convert a 41-prefixed hex address into its base58check form."""
        ...

    async def broadcast(
        self, transaction: dict[str, Any], network: str
    ) -> BroadcastResult:
        """Submit a signed transaction. Never retried by the adapter."""
        ...

    async def get_execution_status(
        self, tx_id: str, network: str
    ) -> ExecutionStatus:
        """Poll the execution receipt of a broadcast transaction."""
        ...

    async def get_balance(self, asset: str, address: str, network: str) -> str:
        """Token balance of ``address`` in base units, as a decimal string."""
        ...

    async def estimate_cost(
        self, asset: str, from_: str, to: str, amount: str, network: str
    ) -> int:
        """Estimated energy needed to execute the transfer."""
        ...
