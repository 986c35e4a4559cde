"""Value objects shared by the decoder, verifier and settlement coordinator.

All of these are frozen dataclasses: produced fresh per call, never cached
or mutated. The domain layer has ZERO imports from httpx, FastAPI or Redis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tron_facilitator.domain.enums import ExecutionState, RECEIPT_SUCCESS

SCHEME_EXACT = "exact"
CAIP_FAMILY = "tron:*"
X402_VERSION = 2


@dataclass(frozen=True)
class DecodedTransfer:
    """A signed Tron transaction that passed every structural check.

    Attributes:
        tx_id: sha256 of raw_data_hex, recomputed locally (never caller input).
        contract_type: Invocation kind, e.g. ``TriggerSmartContract``.
        contract_address: Base58 address of the invoked token contract.
        function_selector: First 4 bytes of the call data as lowercase hex.
        recipient: Base58 recipient for ``transfer`` calls.
        spender: Base58 spender for ``approve`` calls.
        amount: Token amount in base units for ``transfer``/``approve``.
        owner_address: Base58 address of the signer/owner.
        expiration: Expiration in ms since epoch, if the transaction carries one.
        raw_transaction: The parsed envelope, kept for broadcasting.
    """

    tx_id: str
    contract_type: str
    contract_address: str
    function_selector: str
    owner_address: str
    raw_transaction: dict[str, Any]
    recipient: str | None = None
    spender: str | None = None
    amount: int | None = None
    expiration: int | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of ``PaymentVerifier.verify``.

    ``reason`` is an ``InvalidReason`` value when ``is_valid`` is False.
    ``context`` carries structured expected/actual values for the rejection.
    """

    is_valid: bool
    payer: str = ""
    reason: str | None = None
    message: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of ``SettlementCoordinator.settle``.

    ``transaction`` is empty whenever nothing was broadcast.
    """

    success: bool
    network: str
    transaction: str = ""
    payer: str = ""
    error_reason: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class BroadcastResult:
    """What the node answered to a broadcast request."""

    ok: bool
    tx_id: str | None = None
    error_text: str | None = None


@dataclass(frozen=True)
class ExecutionStatus:
    """A single poll of a transaction's on-chain execution.

    Attributes:
        found: The node knows the transaction.
        status: Receipt result (``SUCCESS``, ``REVERT``, ...) or None when the
            transaction has no receipt yet.
        detail: Optional decoded revert message or node diagnostic.
    """

    found: bool
    status: str | None = None
    detail: str | None = None

    def classify(self) -> ExecutionState:
        """Map this poll onto confirmed / failed / pending."""
        if not self.found or self.status is None:
            return ExecutionState.PENDING
        if self.status == RECEIPT_SUCCESS:
            return ExecutionState.CONFIRMED
        return ExecutionState.FAILED


@dataclass(frozen=True)
class ConfirmationPolicy:
    """Bounded polling budget for settlement confirmation.

    A transaction that is found but still has no receipt after
    ``missing_receipt_threshold`` attempts is treated as a fatal anomaly.
    """

    max_attempts: int = 30
    interval_seconds: float = 3.0
    missing_receipt_threshold: int = 5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")


@dataclass(frozen=True)
class FacilitatorConfig:
    """Read-only configuration injected into the core components.

    Attributes:
        networks: CAIP-2 identifiers this facilitator serves.
        max_energy_fee_sun: Ceiling for the estimated fee of a transfer.
        energy_price_sun: SUN charged per unit of energy.
        confirmation: Polling policy used during settlement.
        reverify_oracles_on_settle: Run balance and fee checks again when
            settle re-verifies the payment.
    """

    networks: tuple[str, ...] = ("tron:27Lqcw",)
    max_energy_fee_sun: int = 100_000_000
    energy_price_sun: int = 420
    confirmation: ConfirmationPolicy = field(default_factory=ConfirmationPolicy)
    reverify_oracles_on_settle: bool = True

    def serves(self, network: str) -> bool:
        return network in self.networks
