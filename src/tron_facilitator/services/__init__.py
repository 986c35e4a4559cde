"""Application services — decode, verify, settle."""

from tron_facilitator.services.decoder import TransactionDecoder
from tron_facilitator.services.facilitator_service import ExactTronFacilitator
from tron_facilitator.services.settlement_service import SettlementCoordinator
from tron_facilitator.services.verification_service import PaymentVerifier

__all__ = [
    "ExactTronFacilitator",
    "PaymentVerifier",
    "SettlementCoordinator",
    "TransactionDecoder",
]
