"""Domain layer — pure business logic with zero framework dependencies."""

from tron_facilitator.domain.chain_protocol import ChainClient
from tron_facilitator.domain.enums import (
    ContractType,
    ExecutionState,
    FunctionSelector,
    InvalidReason,
    SettleErrorReason,
)
from tron_facilitator.domain.exceptions import (
    ChainClientError,
    DecodeError,
    FacilitatorError,
    SettlementError,
)
from tron_facilitator.domain.models import (
    BroadcastResult,
    ConfirmationPolicy,
    DecodedTransfer,
    ExecutionStatus,
    FacilitatorConfig,
    SettlementResult,
    VerificationResult,
)

__all__ = [
    "ChainClient",
    "ContractType",
    "ExecutionState",
    "FunctionSelector",
    "InvalidReason",
    "SettleErrorReason",
    "ChainClientError",
    "DecodeError",
    "FacilitatorError",
    "SettlementError",
    "BroadcastResult",
    "ConfirmationPolicy",
    "DecodedTransfer",
    "ExecutionStatus",
    "FacilitatorConfig",
    "SettlementResult",
    "VerificationResult",
]
