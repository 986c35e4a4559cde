"""Payment Verifier — decides whether a signed transfer pays for a resource.

Runs an ordered list of business rules and stops at the first failure,
which becomes the reported ``InvalidReason``. Nothing here has side effects
on the ledger; the only I/O is the two read-only oracle queries (balance and
energy estimate), which can be skipped with ``check_oracles=False``.

Rule order:
    1. scheme + network          7. recipient == payTo
    2. signed-transaction payload 8. amount >= required
    3. decode                    9. owner == claimed sender
    4. TriggerSmartContract      10. owner is not the facilitator
    5. transfer selector         11. not expired
    6. contract == asset         12. balance   13. energy fee
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from tron_facilitator.domain.enums import ContractType, FunctionSelector, InvalidReason
from tron_facilitator.domain.exceptions import DecodeError
from tron_facilitator.domain.models import SCHEME_EXACT, VerificationResult
from tron_facilitator.logging_config import get_logger
from tron_facilitator.schemas.payment import ExactTronPayload
from tron_facilitator.services.decoder import TransactionDecoder

if TYPE_CHECKING:
    from collections.abc import Callable

    from tron_facilitator.domain.chain_protocol import ChainClient
    from tron_facilitator.domain.models import DecodedTransfer, FacilitatorConfig
    from tron_facilitator.schemas.payment import PaymentPayload, PaymentRequirements

logger = get_logger(__name__)


class PaymentVerifier:
    """Checks a payment payload against payment requirements."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: FacilitatorConfig,
        decoder: TransactionDecoder | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the verifier.

        Args:
            chain_client: Ledger capability used for decoding and oracle reads.
            config: Read-only facilitator configuration.
            decoder: Optional shared decoder; one is built when omitted.
            clock: Returns the current time in seconds since epoch.
        """
        self._chain = chain_client
        self._config = config
        self._decoder = decoder or TransactionDecoder(chain_client)
        self._clock = clock

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
        *,
        check_oracles: bool = True,
    ) -> VerificationResult:
        """Run every rule in order and return the first rejection, if any."""
        network = requirements.network
        payer = payload.claimed_payer

        if payload.accepted.scheme != SCHEME_EXACT or requirements.scheme != SCHEME_EXACT:
            return self._reject(
                InvalidReason.UNSUPPORTED_SCHEME,
                f"Unsupported scheme: {requirements.scheme}",
                payer,
                expected=SCHEME_EXACT,
                actual=requirements.scheme,
            )

        if payload.accepted.network != network or not self._config.serves(network):
            return self._reject(
                InvalidReason.NETWORK_MISMATCH,
                f"Network mismatch: payload {payload.accepted.network}, "
                f"requirements {network}",
                payer,
                expected=network,
                actual=payload.accepted.network,
            )

        envelope = ExactTronPayload.from_payload(payload.payload)
        if envelope is None:
            return self._reject(
                InvalidReason.INVALID_PAYLOAD_TYPE,
                "Payload is not a signed Tron transaction",
                payer,
            )

        try:
            decoded = self._decoder.decode(envelope.signed_transaction, network)
        except DecodeError as exc:
            return self._reject(
                InvalidReason.DECODE_FAILED,
                f"{exc.code}: {exc.message}",
                payer,
                decode_error=exc.code,
                **exc.context,
            )

        # From here on the payer is the key that actually signed.
        payer = decoded.owner_address
        rejection = self._check_transfer(decoded, envelope, requirements)
        if rejection is None and check_oracles:
            rejection = await self._check_oracles(decoded, requirements)
        if rejection is not None:
            return rejection

        logger.info(
            "verify.accepted",
            network=network,
            tx_id=decoded.tx_id,
            payer=payer,
            amount=str(decoded.amount),
            oracles_checked=check_oracles,
        )
        return VerificationResult(
            is_valid=True,
            payer=payer,
            context={"tx_id": decoded.tx_id, "amount": str(decoded.amount)},
        )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _check_transfer(
        self,
        decoded: DecodedTransfer,
        envelope: ExactTronPayload,
        requirements: PaymentRequirements,
    ) -> VerificationResult | None:
        payer = decoded.owner_address

        if decoded.contract_type != ContractType.TRIGGER_SMART_CONTRACT:
            return self._reject(
                InvalidReason.NOT_SMART_CONTRACT,
                f"Expected TriggerSmartContract, got {decoded.contract_type}",
                payer,
            )

        if decoded.function_selector != FunctionSelector.TRANSFER:
            return self._reject(
                InvalidReason.NOT_TRANSFER,
                f"Expected transfer selector {FunctionSelector.TRANSFER}, "
                f"got {decoded.function_selector}",
                payer,
                expected=str(FunctionSelector.TRANSFER),
                actual=decoded.function_selector,
            )

        if decoded.contract_address != requirements.asset:
            return self._reject(
                InvalidReason.ASSET_MISMATCH,
                f"Token mismatch: expected {requirements.asset}, "
                f"got {decoded.contract_address}",
                payer,
                expected=requirements.asset,
                actual=decoded.contract_address,
            )

        if decoded.recipient != requirements.pay_to:
            return self._reject(
                InvalidReason.RECIPIENT_MISMATCH,
                f"Recipient mismatch: expected {requirements.pay_to}, "
                f"got {decoded.recipient}",
                payer,
                expected=requirements.pay_to,
                actual=decoded.recipient,
            )

        required = requirements.required_amount
        if decoded.amount is None or decoded.amount < required:
            return self._reject(
                InvalidReason.AMOUNT_INSUFFICIENT,
                f"Insufficient amount: required {required}, got {decoded.amount}",
                payer,
                expected=str(required),
                actual=str(decoded.amount),
            )

        if decoded.owner_address != envelope.from_:
            return self._reject(
                InvalidReason.SENDER_MISMATCH,
                f"Sender mismatch: transaction owner {decoded.owner_address}, "
                f"claimed {envelope.from_}",
                payer,
                expected=envelope.from_,
                actual=decoded.owner_address,
            )

        if decoded.owner_address in self._chain.get_operating_addresses():
            return self._reject(
                InvalidReason.FACILITATOR_IS_SENDER,
                "Facilitator address cannot be the payment sender",
                payer,
            )

        now_ms = int(self._clock() * 1000)
        if decoded.expiration is not None and decoded.expiration < now_ms:
            return self._reject(
                InvalidReason.EXPIRED,
                f"Transaction expired at {decoded.expiration}",
                payer,
                expiration=decoded.expiration,
                now=now_ms,
            )

        return None

    async def _check_oracles(
        self, decoded: DecodedTransfer, requirements: PaymentRequirements
    ) -> VerificationResult | None:
        payer = decoded.owner_address
        network = requirements.network
        required = requirements.required_amount

        # Balance fails closed: an unreadable balance is a rejection.
        try:
            balance = int(
                await self._chain.get_balance(requirements.asset, payer, network)
            )
        except Exception as exc:
            logger.warning(
                "verify.balance_check_failed",
                network=network,
                payer=payer,
                error=str(exc),
            )
            return self._reject(
                InvalidReason.BALANCE_CHECK_FAILED,
                f"Could not read token balance: {exc}",
                payer,
            )

        if balance < required:
            return self._reject(
                InvalidReason.INSUFFICIENT_BALANCE,
                f"Insufficient balance: has {balance}, needs {required}",
                payer,
                expected=str(required),
                actual=str(balance),
            )

        # Fee estimate fails open: an unavailable estimate is not a rejection.
        try:
            energy = await self._chain.estimate_cost(
                requirements.asset,
                payer,
                requirements.pay_to,
                requirements.amount,
                network,
            )
        except Exception as exc:
            logger.warning(
                "verify.energy_estimate_unavailable",
                network=network,
                payer=payer,
                error=str(exc),
            )
            return None

        fee_sun = energy * self._config.energy_price_sun
        if fee_sun > self._config.max_energy_fee_sun:
            return self._reject(
                InvalidReason.TOO_EXPENSIVE,
                f"Estimated energy cost {fee_sun} SUN exceeds maximum "
                f"{self._config.max_energy_fee_sun} SUN",
                payer,
                expected=str(self._config.max_energy_fee_sun),
                actual=str(fee_sun),
                energy=energy,
            )

        return None

    @staticmethod
    def _reject(
        reason: InvalidReason, message: str, payer: str, **context: Any
    ) -> VerificationResult:
        logger.info("verify.rejected", reason=str(reason), payer=payer, error=message)
        return VerificationResult(
            is_valid=False,
            payer=payer,
            reason=str(reason),
            message=message,
            context=context,
        )
