"""Exact-scheme Tron facilitator — the facade the HTTP layer talks to.

Wires one TransactionDecoder, PaymentVerifier and SettlementCoordinator
around a single ChainClient and FacilitatorConfig, and exposes the x402
scheme surface: ``scheme``, ``caip_family``, ``get_signers``, ``get_extra``,
``verify``, ``settle`` and ``supported``.

Usage:
    from tron_facilitator.services.facilitator_service import get_facilitator

    facilitator = get_facilitator()
    result = await facilitator.verify(payload, requirements)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tron_facilitator.chain.tron_client import TronChainClient
from tron_facilitator.config import get_settings
from tron_facilitator.domain.exceptions import DecodeError
from tron_facilitator.domain.models import CAIP_FAMILY, SCHEME_EXACT, X402_VERSION
from tron_facilitator.logging_config import get_logger
from tron_facilitator.schemas.payment import (
    ExactTronPayload,
    SupportedKind,
    SupportedResponse,
)
from tron_facilitator.services.decoder import TransactionDecoder
from tron_facilitator.services.settlement_service import SettlementCoordinator
from tron_facilitator.services.verification_service import PaymentVerifier

if TYPE_CHECKING:
    from tron_facilitator.domain.chain_protocol import ChainClient
    from tron_facilitator.domain.models import (
        FacilitatorConfig,
        SettlementResult,
        VerificationResult,
    )
    from tron_facilitator.schemas.payment import PaymentPayload, PaymentRequirements

logger = get_logger(__name__)


class ExactTronFacilitator:
    """x402 ``exact`` scheme for TRC-20 transfers on Tron networks."""

    scheme = SCHEME_EXACT
    caip_family = CAIP_FAMILY

    def __init__(self, chain_client: ChainClient, config: FacilitatorConfig) -> None:
        self._chain = chain_client
        self._config = config
        self._decoder = TransactionDecoder(chain_client)
        self._verifier = PaymentVerifier(chain_client, config, decoder=self._decoder)
        self._coordinator = SettlementCoordinator(
            chain_client, config, self._verifier, self._decoder
        )

    @property
    def config(self) -> FacilitatorConfig:
        return self._config

    @property
    def chain_client(self) -> ChainClient:
        return self._chain

    def get_signers(self, network: str) -> list[str]:
        """Addresses the facilitator operates with; the same on every network."""
        return self._chain.get_operating_addresses()

    def get_extra(self, network: str) -> dict[str, Any] | None:
        """Scheme-specific extras advertised to clients. None for plain transfers."""
        return None

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
        *,
        check_oracles: bool = True,
    ) -> VerificationResult:
        return await self._verifier.verify(
            payload, requirements, check_oracles=check_oracles
        )

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettlementResult:
        return await self._coordinator.settle(payload, requirements)

    def transaction_id(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> str | None:
        """Recomputed tx id of a decodable payload, or None.

        Used by callers that de-duplicate settlements across requests.
        """
        envelope = ExactTronPayload.from_payload(payload.payload)
        if envelope is None:
            return None
        try:
            return self._decoder.decode(
                envelope.signed_transaction, requirements.network
            ).tx_id
        except DecodeError:
            return None

    def supported(self) -> SupportedResponse:
        kinds = [
            SupportedKind(
                x402_version=X402_VERSION,
                scheme=self.scheme,
                network=network,
                extra=self.get_extra(network),
            )
            for network in self._config.networks
        ]
        return SupportedResponse(
            kinds=kinds,
            signers={self.caip_family: self._chain.get_operating_addresses()},
        )


# ---------------------------------------------------------------------------
# Application singleton
# ---------------------------------------------------------------------------

_facilitator: ExactTronFacilitator | None = None
_chain_client: TronChainClient | None = None


def init_facilitator() -> ExactTronFacilitator:
    """Build the facilitator from settings. Called during app startup."""
    global _facilitator, _chain_client
    settings = get_settings()
    _chain_client = TronChainClient(
        rpc_urls=settings.rpc_urls,
        operating_addresses=settings.facilitator_address_list,
        api_key=settings.trongrid_api_key,
        timeout_seconds=settings.rpc_timeout_seconds,
    )
    _facilitator = ExactTronFacilitator(_chain_client, settings.facilitator_config())
    logger.info(
        "facilitator.initialized",
        networks=list(_facilitator.config.networks),
        signers=len(settings.facilitator_address_list),
    )
    return _facilitator


def get_facilitator() -> ExactTronFacilitator:
    """Return the facilitator singleton. Must call init_facilitator() first."""
    if _facilitator is None:
        raise RuntimeError("Facilitator not initialized. Call init_facilitator() first.")
    return _facilitator


async def close_facilitator() -> None:
    """Close node connections. Called during app shutdown."""
    global _facilitator, _chain_client
    if _chain_client is not None:
        await _chain_client.close()
        logger.info("facilitator.closed")
    _facilitator = None
    _chain_client = None
