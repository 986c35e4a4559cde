"""Domain enumerations for the Tron facilitator.

These enums define the canonical codes used throughout the system.
They are framework-agnostic (no FastAPI, no httpx imports).
"""

import enum


class ContractType(enum.StrEnum):
    """Tron contract (invocation) kinds found in ``raw_data.contract[].type``."""

    TRIGGER_SMART_CONTRACT = "TriggerSmartContract"


class FunctionSelector(enum.StrEnum):
    """First 4 bytes of keccak256 of the TRC-20 function signature, as hex."""

    TRANSFER = "a9059cbb"  # transfer(address,uint256)
    APPROVE = "095ea7b3"  # approve(address,uint256)


class InvalidReason(enum.StrEnum):
    """Reason codes reported in ``VerifyResponse.invalidReason``.

    Every rejection is terminal: reported to the caller, never retried.
    """

    UNSUPPORTED_SCHEME = "unsupported_scheme"
    NETWORK_MISMATCH = "network_mismatch"
    INVALID_PAYLOAD_TYPE = "invalid_tron_payload_type"
    DECODE_FAILED = "invalid_tron_payload_decode_failed"
    NOT_SMART_CONTRACT = "invalid_tron_payload_not_smart_contract"
    NOT_TRANSFER = "invalid_tron_payload_not_transfer"
    ASSET_MISMATCH = "invalid_tron_payload_asset_mismatch"
    RECIPIENT_MISMATCH = "invalid_tron_payload_recipient_mismatch"
    AMOUNT_INSUFFICIENT = "invalid_tron_payload_amount_insufficient"
    SENDER_MISMATCH = "invalid_tron_payload_sender_mismatch"
    FACILITATOR_IS_SENDER = "invalid_tron_payload_facilitator_is_sender"
    EXPIRED = "invalid_tron_payload_expired"
    INSUFFICIENT_BALANCE = "invalid_tron_payload_insufficient_balance"
    BALANCE_CHECK_FAILED = "invalid_tron_payload_balance_check_failed"
    TOO_EXPENSIVE = "invalid_tron_payload_energy_too_expensive"


class SettleErrorReason(enum.StrEnum):
    """Reason codes reported in ``SettleResponse.errorReason``.

    Verification rejections are propagated as their ``InvalidReason`` value;
    these codes cover what can go wrong after verification passed.
    """

    BROADCAST_FAILED = "transaction_broadcast_failed"
    EXECUTION_FAILED = "transaction_execution_failed"
    MISSING_RECEIPT = "transaction_missing_receipt"
    CONFIRMATION_TIMEOUT = "transaction_confirmation_timeout"
    CONFIRMATION_FAILED = "transaction_confirmation_failed"
    DUPLICATE_SETTLEMENT = "duplicate_settlement"


class ExecutionState(enum.StrEnum):
    """Three-way classification of a polled execution status."""

    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    PENDING = "PENDING"


# Tron receipt result for a contract call that executed successfully.
# Anything else (REVERT, OUT_OF_ENERGY, OUT_OF_TIME, OTHER_ERROR, ...) means
# the transaction is on-chain but the tokens did not move.
RECEIPT_SUCCESS = "SUCCESS"
