"""Settlement Coordinator — the only component with ledger side effects.

Flow:
    1. Re-verify the payment (state may have changed since /verify).
    2. Re-decode the envelope immediately before broadcast.
    3. Broadcast once. Broadcasts are never retried.
    4. Poll the execution receipt under the ConfirmationPolicy:

        SUCCESS receipt               -> confirmed
        any other receipt result      -> ExecutionFailedError (fatal)
        found, no receipt, too long   -> MissingReceiptError (fatal)
        not found / no receipt yet    -> pending, keep polling
        ChainClientError              -> transient, keep polling; surfaced
                                         as-is on the final attempt
        budget exhausted while pending -> ConfirmationTimeoutError

Every failure becomes a SettlementResult; only cancellation propagates.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from tron_facilitator.domain.enums import ExecutionState, InvalidReason, SettleErrorReason
from tron_facilitator.domain.exceptions import (
    BroadcastFailedError,
    ChainClientError,
    ConfirmationTimeoutError,
    DecodeError,
    ExecutionFailedError,
    MissingReceiptError,
    SettlementError,
)
from tron_facilitator.domain.models import SettlementResult
from tron_facilitator.logging_config import get_logger, payment_context
from tron_facilitator.schemas.payment import ExactTronPayload

if TYPE_CHECKING:
    from tron_facilitator.domain.chain_protocol import ChainClient
    from tron_facilitator.domain.models import DecodedTransfer, FacilitatorConfig
    from tron_facilitator.schemas.payment import PaymentPayload, PaymentRequirements
    from tron_facilitator.services.decoder import TransactionDecoder
    from tron_facilitator.services.verification_service import PaymentVerifier

logger = get_logger(__name__)

_REASON_BY_ERROR: dict[type[SettlementError], SettleErrorReason] = {
    BroadcastFailedError: SettleErrorReason.BROADCAST_FAILED,
    ExecutionFailedError: SettleErrorReason.EXECUTION_FAILED,
    MissingReceiptError: SettleErrorReason.MISSING_RECEIPT,
    ConfirmationTimeoutError: SettleErrorReason.CONFIRMATION_TIMEOUT,
}


class _ConfirmationPending(Exception):
    """Signals tenacity that the transaction has no final outcome yet."""


class SettlementCoordinator:
    """Broadcasts verified payments and waits for their on-chain outcome."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: FacilitatorConfig,
        verifier: PaymentVerifier,
        decoder: TransactionDecoder,
    ) -> None:
        self._chain = chain_client
        self._config = config
        self._verifier = verifier
        self._decoder = decoder

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettlementResult:
        network = requirements.network

        verification = await self._verifier.verify(
            payload,
            requirements,
            check_oracles=self._config.reverify_oracles_on_settle,
        )
        if not verification.is_valid:
            return SettlementResult(
                success=False,
                network=network,
                payer=verification.payer,
                error_reason=verification.reason,
                error_message=verification.message,
            )
        payer = verification.payer

        envelope = ExactTronPayload.from_payload(payload.payload)
        try:
            if envelope is None:
                raise DecodeError("payload is no longer a signed transaction")
            decoded = self._decoder.decode(envelope.signed_transaction, network)
        except DecodeError as exc:
            return SettlementResult(
                success=False,
                network=network,
                payer=payer,
                error_reason=str(InvalidReason.DECODE_FAILED),
                error_message=f"{exc.code}: {exc.message}",
            )

        with payment_context(network=network, tx_id=decoded.tx_id):
            return await self._submit(decoded, network, payer)

    async def _submit(
        self, decoded: DecodedTransfer, network: str, payer: str
    ) -> SettlementResult:
        tx_id = ""
        try:
            tx_id = await self._broadcast(decoded, network)
            await self._await_confirmation(tx_id, network)
        except SettlementError as exc:
            reason = _REASON_BY_ERROR[type(exc)]
            logger.warning("settle.failed", reason=str(reason), error=exc.message)
            return SettlementResult(
                success=False,
                network=network,
                transaction=tx_id,
                payer=payer,
                error_reason=str(reason),
                error_message=exc.message,
            )
        except ChainClientError as exc:
            logger.warning("settle.confirmation_failed", error=exc.message)
            return SettlementResult(
                success=False,
                network=network,
                transaction=tx_id,
                payer=payer,
                error_reason=str(SettleErrorReason.CONFIRMATION_FAILED),
                error_message=exc.message,
            )
        except asyncio.CancelledError:
            logger.warning("settle.cancelled", broadcast=bool(tx_id), outcome="unknown")
            raise

        logger.info("settle.confirmed", payer=payer)
        return SettlementResult(
            success=True,
            network=network,
            transaction=tx_id,
            payer=payer,
        )

    # ------------------------------------------------------------------

    async def _broadcast(self, decoded: DecodedTransfer, network: str) -> str:
        try:
            result = await self._chain.broadcast(decoded.raw_transaction, network)
        except ChainClientError as exc:
            raise BroadcastFailedError(exc.message) from exc

        if not result.ok:
            raise BroadcastFailedError(result.error_text or "Unknown broadcast error")

        tx_id = result.tx_id or decoded.tx_id
        logger.info("settle.broadcast", tx_id=tx_id)
        return tx_id

    async def _await_confirmation(self, tx_id: str, network: str) -> None:
        policy = self._config.confirmation
        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_fixed(policy.interval_seconds),
            retry=retry_if_exception_type((_ConfirmationPending, ChainClientError)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._poll_once(
                        tx_id, network, attempt.retry_state.attempt_number
                    )
        except _ConfirmationPending:
            raise ConfirmationTimeoutError(
                tx_id, policy.max_attempts, policy.interval_seconds
            ) from None

    async def _poll_once(self, tx_id: str, network: str, attempt_number: int) -> None:
        status = await self._chain.get_execution_status(tx_id, network)
        state = status.classify()

        if state is ExecutionState.CONFIRMED:
            return
        if state is ExecutionState.FAILED:
            raise ExecutionFailedError(tx_id, status.status or "UNKNOWN", status.detail)
        if (
            status.found
            and attempt_number > self._config.confirmation.missing_receipt_threshold
        ):
            raise MissingReceiptError(tx_id, attempt_number)

        logger.debug("settle.pending", attempt=attempt_number, found=status.found)
        raise _ConfirmationPending(tx_id)
