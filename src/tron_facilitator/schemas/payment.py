"""Pydantic schemas for the x402 facilitator API.

Wire names are camelCase (x402 v2); Python attributes are snake_case with
aliases, and ``populate_by_name`` lets tests and services build models with
either spelling. Responses are serialized by alias.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tron_facilitator.domain.models import SettlementResult, VerificationResult

# ---------------------------------------------------------------------------
# Payment Schemas
# ---------------------------------------------------------------------------


class PaymentRequirements(BaseModel):
    """What a resource server demands for one resource."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    scheme: str = Field(..., examples=["exact"])
    network: str = Field(..., description="CAIP-2 identifier", examples=["tron:27Lqcw"])
    asset: str = Field(
        ...,
        description="Base58 address of the TRC-20 token contract",
        examples=["TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"],
    )
    amount: str = Field(
        ...,
        description="Required amount in token base units, as a decimal string",
        examples=["1000000"],
    )
    pay_to: str = Field(..., alias="payTo", description="Base58 recipient address")
    max_timeout_seconds: int = Field(default=60, alias="maxTimeoutSeconds", ge=0)
    extra: dict[str, Any] | None = None

    @field_validator("amount")
    @classmethod
    def _amount_is_decimal_integer(cls, value: str) -> str:
        if not value.isascii() or not value.isdigit():
            raise ValueError("amount must be a non-negative integer string")
        return value

    @property
    def required_amount(self) -> int:
        return int(self.amount)


class PaymentPayload(BaseModel):
    """x402 v2 payment proof: the accepted requirements plus a scheme payload."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    x402_version: int = Field(default=2, alias="x402Version")
    resource: dict[str, Any] | None = None
    accepted: PaymentRequirements
    payload: dict[str, Any]

    @property
    def claimed_payer(self) -> str:
        claimed = self.payload.get("from")
        return claimed if isinstance(claimed, str) else ""


class ExactTronPayload(BaseModel):
    """The ``payload`` of an exact-scheme Tron payment: a signed transaction."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    signed_transaction: str = Field(..., alias="signedTransaction", min_length=1)
    from_: str = Field(..., alias="from", min_length=1)
    tx_id: str | None = Field(default=None, alias="txID")

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ExactTronPayload | None:
        """Return the signed-transaction payload, or None if ``data`` is another kind.

        Payloads carrying a ``method`` key belong to the approve-based variant.
        """
        if "method" in data:
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class VerifyRequest(BaseModel):
    """Request body for POST /verify."""

    model_config = ConfigDict(populate_by_name=True)

    x402_version: int = Field(default=2, alias="x402Version")
    payment_payload: PaymentPayload = Field(..., alias="paymentPayload")
    payment_requirements: PaymentRequirements = Field(..., alias="paymentRequirements")


class SettleRequest(VerifyRequest):
    """Request body for POST /settle."""


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class VerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    invalid_reason: str | None = Field(default=None, alias="invalidReason")
    invalid_message: str | None = Field(default=None, alias="invalidMessage")
    payer: str = ""

    @classmethod
    def from_result(cls, result: VerificationResult) -> VerifyResponse:
        return cls(
            is_valid=result.is_valid,
            invalid_reason=result.reason,
            invalid_message=result.message,
            payer=result.payer,
        )


class SettleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error_reason: str | None = Field(default=None, alias="errorReason")
    error_message: str | None = Field(default=None, alias="errorMessage")
    payer: str = ""
    transaction: str = ""
    network: str

    @classmethod
    def from_result(cls, result: SettlementResult) -> SettleResponse:
        return cls(
            success=result.success,
            error_reason=result.error_reason,
            error_message=result.error_message,
            payer=result.payer,
            transaction=result.transaction,
            network=result.network,
        )


class SupportedKind(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    x402_version: int = Field(default=2, alias="x402Version")
    scheme: str
    network: str
    extra: dict[str, Any] | None = None


class SupportedResponse(BaseModel):
    """Response body for GET /supported."""

    kinds: list[SupportedKind]
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    version: str
    networks: list[str]
    registry: str
