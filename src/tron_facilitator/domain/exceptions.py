"""Domain exceptions for the Tron facilitator.

These exceptions are framework-agnostic and carry a stable machine-readable
``code`` plus a free-text ``message``. Structured context (expected vs. actual
values) lives in ``context`` so callers never have to parse messages.

Decode errors indicate malice or malformed input and are never retried.
Settlement errors are raised inside the coordinator and translated into a
``SettlementResult``; the HTTP middleware translates anything that escapes.
"""

from __future__ import annotations

from typing import Any


class FacilitatorError(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        code: str = "FACILITATOR_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.context = context or {}
        super().__init__(self.message)


# --- Decode Errors ---


class DecodeError(FacilitatorError):
    """Base exception for signed-transaction decode failures."""

    def __init__(
        self,
        message: str,
        code: str = "DECODE_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=code, context=context)


class ParseError(DecodeError):
    """Raised when the envelope is not a JSON object or a field is unusable."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            message=f"Invalid transaction format: {message}",
            code="PARSE_ERROR",
            context={"field": field} if field else None,
        )


class MissingSignatureError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            message="Invalid transaction: missing or empty signature array",
            code="MISSING_SIGNATURE",
        )


class MalformedSignatureError(DecodeError):
    """Raised when a signature is not exactly 130 hex characters."""

    def __init__(self, index: int) -> None:
        super().__init__(
            message=f"Invalid transaction: malformed signature at index {index}",
            code="MALFORMED_SIGNATURE",
            context={"index": index},
        )


class MissingRawDataError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            message="Invalid transaction: missing raw_data_hex",
            code="MISSING_RAW_DATA",
        )


class NonHexRawDataError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            message="Invalid transaction: raw_data_hex contains non-hex characters",
            code="NON_HEX_RAW_DATA",
        )


class HashMismatchError(DecodeError):
    """Raised when the claimed txID is not the hash of raw_data_hex."""

    def __init__(self, expected: str, claimed: str | None) -> None:
        super().__init__(
            message=(
                "Invalid transaction: txID does not match raw_data hash "
                "(possible tampering)"
            ),
            code="HASH_MISMATCH",
            context={"expected": expected, "claimed": claimed},
        )


class SignatureRecoveryError(DecodeError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Signature recovery failed: {reason}",
            code="SIGNATURE_RECOVERY_ERROR",
        )


class UnsupportedContractTypeError(DecodeError):
    def __init__(self, contract_type: str | None) -> None:
        super().__init__(
            message=f"Unsupported contract type: {contract_type}",
            code="UNSUPPORTED_CONTRACT_TYPE",
            context={"contract_type": contract_type},
        )


class EmptyContractArrayError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            message="Invalid transaction: missing or empty raw_data.contract",
            code="EMPTY_CONTRACT_ARRAY",
        )


class SignatureOwnerMismatchError(DecodeError):
    """Raised when the recovered signer is not the transaction owner.

    Blocks identity swaps where a valid signature from one key is attached
    to a transaction claiming another owner.
    """

    def __init__(self, recovered: str, owner: str) -> None:
        super().__init__(
            message=(
                f"Signature verification failed: recovered {recovered} "
                f"but owner_address is {owner}"
            ),
            code="SIGNATURE_OWNER_MISMATCH",
            context={"recovered": recovered, "owner": owner},
        )


class MalformedCallDataError(DecodeError):
    def __init__(self, message: str, length: int | None = None) -> None:
        super().__init__(
            message=f"Invalid call data: {message}",
            code="MALFORMED_CALL_DATA",
            context={"length": length} if length is not None else None,
        )


class IntegrityMismatchError(DecodeError):
    """Raised when a raw_data field does not occur inside raw_data_hex.

    raw_data is a JSON mirror that the signature does not cover; only
    raw_data_hex is signed.
    """

    def __init__(self, field: str) -> None:
        super().__init__(
            message=(
                f"Transaction integrity check failed: {field} in raw_data "
                "does not match raw_data_hex (possible raw_data tampering)"
            ),
            code="INTEGRITY_MISMATCH",
            context={"field": field},
        )
        self.field = field


class PaddingViolationError(DecodeError):
    def __init__(self, selector: str, padding: str) -> None:
        super().__init__(
            message="Invalid call data: non-zero padding in address parameter",
            code="PADDING_VIOLATION",
            context={"selector": selector, "padding": padding},
        )


# --- Chain Client Errors ---


class ChainClientError(FacilitatorError):
    """Raised by a chain client adapter when a node call fails."""

    def __init__(self, message: str, network: str | None = None) -> None:
        super().__init__(
            message=message,
            code="CHAIN_CLIENT_ERROR",
            context={"network": network} if network else None,
        )


# --- Settlement Errors ---


class SettlementError(FacilitatorError):
    """Base exception for failures after verification passed."""


class BroadcastFailedError(SettlementError):
    def __init__(self, error_text: str) -> None:
        super().__init__(
            message=f"Broadcast failed: {error_text}",
            code="BROADCAST_FAILED",
            context={"error_text": error_text},
        )


class ExecutionFailedError(SettlementError):
    """Raised when the transaction is on-chain but execution did not succeed.

    The tokens did not move. Never retried: the payer must sign a new
    transaction.
    """

    def __init__(self, tx_id: str, status: str, detail: str | None = None) -> None:
        message = f"Transaction on-chain but execution failed: {status}"
        if detail:
            message += f" ({detail})"
        super().__init__(
            message=message,
            code="EXECUTION_FAILED",
            context={"tx_id": tx_id, "status": status, "detail": detail},
        )
        self.status = status


class MissingReceiptError(SettlementError):
    def __init__(self, tx_id: str, attempts: int) -> None:
        super().__init__(
            message=(
                "Transaction found on-chain but missing execution receipt "
                f"after {attempts} checks"
            ),
            code="MISSING_RECEIPT",
            context={"tx_id": tx_id, "attempts": attempts},
        )


class ConfirmationTimeoutError(SettlementError):
    def __init__(self, tx_id: str, attempts: int, interval_seconds: float) -> None:
        super().__init__(
            message=(
                "Transaction confirmation timeout after "
                f"{attempts * interval_seconds:g}s"
            ),
            code="CONFIRMATION_TIMEOUT",
            context={
                "tx_id": tx_id,
                "attempts": attempts,
                "interval_seconds": interval_seconds,
            },
        )
