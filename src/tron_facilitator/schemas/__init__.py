"""Pydantic request/response schemas for the REST API."""

from tron_facilitator.schemas.payment import (
    ExactTronPayload,
    HealthResponse,
    PaymentPayload,
    PaymentRequirements,
    SettleRequest,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyRequest,
    VerifyResponse,
)

__all__ = [
    "ExactTronPayload",
    "HealthResponse",
    "PaymentPayload",
    "PaymentRequirements",
    "SettleRequest",
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    "VerifyRequest",
    "VerifyResponse",
]
