"""x402 facilitator REST API routes.

Routes:
    POST /verify     — Check a payment payload without touching the ledger
    POST /settle     — Verify, broadcast and confirm a payment
    GET  /supported  — Advertise (scheme, network) kinds and signer addresses

Rejections are 200 responses with ``isValid``/``success`` false and a
reason code, as x402 clients expect.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tron_facilitator.api.deps import get_exact_facilitator, get_settlement_registry
from tron_facilitator.domain.enums import SettleErrorReason
from tron_facilitator.infrastructure.settlement_registry import SettlementRegistry
from tron_facilitator.logging_config import get_logger
from tron_facilitator.schemas.payment import (
    SettleRequest,
    SettleResponse,
    SupportedResponse,
    VerifyRequest,
    VerifyResponse,
)
from tron_facilitator.services.facilitator_service import ExactTronFacilitator

router = APIRouter(tags=["Facilitator"])
logger = get_logger(__name__)


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify a payment",
)
async def verify_payment(
    request: VerifyRequest,
    facilitator: ExactTronFacilitator = Depends(get_exact_facilitator),
) -> VerifyResponse:
    """Run every verification rule, including balance and fee oracles."""
    result = await facilitator.verify(
        request.payment_payload, request.payment_requirements
    )
    return VerifyResponse.from_result(result)


@router.post(
    "/settle",
    response_model=SettleResponse,
    summary="Settle a payment on-chain",
)
async def settle_payment(
    request: SettleRequest,
    facilitator: ExactTronFacilitator = Depends(get_exact_facilitator),
    registry: SettlementRegistry = Depends(get_settlement_registry),
) -> SettleResponse:
    """Settle once per transaction.

    The recomputed tx id is claimed before settling. The claim is released
    only when nothing reached the network (rejected before broadcast, or the
    broadcast itself failed). Once a broadcast was accepted the outcome may
    still change on chain, so timeouts, missing receipts and cancellations
    keep the claim.
    """
    payload = request.payment_payload
    requirements = request.payment_requirements

    tx_id = facilitator.transaction_id(payload, requirements)
    if tx_id is not None and not await registry.claim(tx_id):
        logger.warning("settle.duplicate", tx_id=tx_id, network=requirements.network)
        return SettleResponse(
            success=False,
            error_reason=str(SettleErrorReason.DUPLICATE_SETTLEMENT),
            error_message=f"Transaction {tx_id} has already been submitted for settlement",
            payer=payload.claimed_payer,
            network=requirements.network,
        )

    try:
        result = await facilitator.settle(payload, requirements)
    except Exception:
        if tx_id is not None:
            await registry.release(tx_id)
        raise

    if not result.success and tx_id is not None:
        if result.transaction:
            logger.warning(
                "settle.claim_kept",
                tx_id=tx_id,
                network=result.network,
                reason=result.error_reason,
            )
        else:
            await registry.release(tx_id)
    return SettleResponse.from_result(result)


@router.get(
    "/supported",
    response_model=SupportedResponse,
    summary="Supported payment kinds",
)
async def supported(
    facilitator: ExactTronFacilitator = Depends(get_exact_facilitator),
) -> SupportedResponse:
    return facilitator.supported()
