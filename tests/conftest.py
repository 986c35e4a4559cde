"""Shared test fixtures for the Tron facilitator test suite.

Provides:
    - Deterministic secp256k1 accounts (real eth-keys signatures)
    - A builder for signed TriggerSmartContract envelopes
    - Factories for x402 payment payloads and requirements
    - A chain client stub with scripted node answers

The envelopes embed owner, contract, call data and the varint-encoded
expiration verbatim in a compact byte string standing in for the protobuf
body, which is all the decoder's integrity checks look at.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

import pytest
from eth_keys import keys

from tron_facilitator.chain.address import (
    base58_to_hex,
    hex_to_base58,
    public_key_to_hex_address,
)
from tron_facilitator.chain.constants import TRON_MAINNET, USDT_ADDRESSES
from tron_facilitator.chain.tron_client import TronChainClient
from tron_facilitator.domain.enums import FunctionSelector
from tron_facilitator.domain.models import (
    BroadcastResult,
    ConfirmationPolicy,
    ExecutionStatus,
    FacilitatorConfig,
)
from tron_facilitator.schemas.payment import PaymentPayload, PaymentRequirements

NOW_SECONDS = 1_760_000_000.0
FAR_FUTURE_MS = 4_102_444_800_000  # 2100-01-01


def address_of(private_key: keys.PrivateKey) -> str:
    return hex_to_base58(public_key_to_hex_address(private_key.public_key.to_bytes()))


@dataclass(frozen=True)
class Accounts:
    payer_key: keys.PrivateKey
    payer: str
    other_key: keys.PrivateKey
    other: str
    pay_to: str
    facilitator_key: keys.PrivateKey
    facilitator: str
    asset: str


_PAYER_KEY = keys.PrivateKey(b"\x01" * 32)
_OTHER_KEY = keys.PrivateKey(b"\x02" * 32)
_PAY_TO_KEY = keys.PrivateKey(b"\x03" * 32)
_FACILITATOR_KEY = keys.PrivateKey(b"\x04" * 32)

ACCOUNTS = Accounts(
    payer_key=_PAYER_KEY,
    payer=address_of(_PAYER_KEY),
    other_key=_OTHER_KEY,
    other=address_of(_OTHER_KEY),
    pay_to=address_of(_PAY_TO_KEY),
    facilitator_key=_FACILITATOR_KEY,
    facilitator=address_of(_FACILITATOR_KEY),
    asset=USDT_ADDRESSES[TRON_MAINNET],
)


def sign_raw(private_key: keys.PrivateKey, raw_data_hex: str) -> tuple[str, str]:
    """Return (txID, 130-char signature) for ``raw_data_hex``."""
    tx_id = hashlib.sha256(bytes.fromhex(raw_data_hex)).hexdigest()
    signature = private_key.sign_msg_hash(bytes.fromhex(tx_id))
    return tx_id, signature.to_bytes().hex()


def _varint(value: int) -> str:
    out = bytearray()
    while True:
        byte, value = value & 0x7F, value >> 7
        out.append(byte | 0x80 if value else byte)
        if not value:
            return out.hex()


def build_signed_tx(
    signer: keys.PrivateKey = _PAYER_KEY,
    *,
    owner: str | None = None,
    contract: str = ACCOUNTS.asset,
    to: str = ACCOUNTS.pay_to,
    amount: int = 1_000_000,
    selector: str = str(FunctionSelector.TRANSFER),
    padding: str = "0" * 24,
    data: str | None = None,
    expiration: int | None = FAR_FUTURE_MS,
    contract_type: str = "TriggerSmartContract",
) -> dict[str, Any]:
    """Build and sign a TRC-20 call the way a wallet would serialize it."""
    owner_hex = base58_to_hex(owner or address_of(signer))
    contract_hex = base58_to_hex(contract)
    if data is None:
        data = selector + padding + base58_to_hex(to)[2:] + format(amount, "064x")

    expiration_field = "" if expiration is None else "40" + _varint(expiration)
    raw_data_hex = "0a0210" + owner_hex + contract_hex + data + expiration_field + "ff"
    tx_id, signature = sign_raw(signer, raw_data_hex)

    raw_data: dict[str, Any] = {
        "contract": [
            {
                "parameter": {
                    "value": {
                        "data": data,
                        "owner_address": owner_hex,
                        "contract_address": contract_hex,
                    },
                    "type_url": f"type.googleapis.com/protocol.{contract_type}",
                },
                "type": contract_type,
            }
        ],
        "ref_block_bytes": "a1b2",
        "ref_block_hash": "0011223344556677",
        "fee_limit": 100_000_000,
        "timestamp": int(NOW_SECONDS * 1000),
    }
    if expiration is not None:
        raw_data["expiration"] = expiration

    return {
        "visible": False,
        "txID": tx_id,
        "raw_data": raw_data,
        "raw_data_hex": raw_data_hex,
        "signature": [signature],
    }


class StubChainClient(TronChainClient):
    """TronChainClient with real crypto helpers and scripted node answers."""

    def __init__(self, operating_addresses: tuple[str, ...] = (ACCOUNTS.facilitator,)) -> None:
        super().__init__(operating_addresses=operating_addresses)
        self.balance = "5000000"
        self.balance_error: Exception | None = None
        self.energy = 65_000
        self.energy_error: Exception | None = None
        self.broadcast_result: BroadcastResult | None = None
        self.broadcast_error: Exception | None = None
        self.statuses: list[ExecutionStatus | BaseException] = [
            ExecutionStatus(found=True, status="SUCCESS")
        ]
        self.broadcasts: list[dict[str, Any]] = []
        self.polls = 0
        self.balance_queries = 0

    async def broadcast(self, transaction: dict[str, Any], network: str) -> BroadcastResult:
        self.broadcasts.append(transaction)
        if self.broadcast_error is not None:
            raise self.broadcast_error
        if self.broadcast_result is not None:
            return self.broadcast_result
        return BroadcastResult(ok=True, tx_id=transaction["txID"])

    async def get_execution_status(self, tx_id: str, network: str) -> ExecutionStatus:
        self.polls += 1
        answer = self.statuses[min(self.polls, len(self.statuses)) - 1]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def get_balance(self, asset: str, address: str, network: str) -> str:
        self.balance_queries += 1
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    async def estimate_cost(
        self, asset: str, from_: str, to: str, amount: str, network: str
    ) -> int:
        if self.energy_error is not None:
            raise self.energy_error
        return self.energy


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def accounts() -> Accounts:
    return ACCOUNTS


@pytest.fixture
def build_tx():
    """Return the signed-envelope builder."""
    return build_signed_tx


@pytest.fixture
def chain_client() -> StubChainClient:
    return StubChainClient()


@pytest.fixture
def facilitator_config() -> FacilitatorConfig:
    """Fast confirmation policy: no sleeping between polls."""
    return FacilitatorConfig(
        networks=(TRON_MAINNET,),
        confirmation=ConfirmationPolicy(
            max_attempts=5,
            interval_seconds=0,
            missing_receipt_threshold=2,
        ),
    )


@pytest.fixture
def fixed_clock():
    return lambda: NOW_SECONDS


@pytest.fixture
def make_requirements():
    def _make(**overrides: Any) -> PaymentRequirements:
        fields: dict[str, Any] = {
            "scheme": "exact",
            "network": TRON_MAINNET,
            "asset": ACCOUNTS.asset,
            "amount": "1000000",
            "payTo": ACCOUNTS.pay_to,
            "maxTimeoutSeconds": 60,
        }
        fields.update(overrides)
        return PaymentRequirements.model_validate(fields)

    return _make


@pytest.fixture
def make_payload(make_requirements):
    def _make(
        tx: dict[str, Any] | str,
        *,
        claimed_from: str = ACCOUNTS.payer,
        accepted: PaymentRequirements | None = None,
        extra_fields: dict[str, Any] | None = None,
    ) -> PaymentPayload:
        signed = tx if isinstance(tx, str) else json.dumps(tx)
        inner: dict[str, Any] = {"signedTransaction": signed, "from": claimed_from}
        if isinstance(tx, dict):
            inner["txID"] = tx.get("txID")
        inner.update(extra_fields or {})
        return PaymentPayload(
            x402_version=2,
            accepted=accepted or make_requirements(),
            payload=inner,
        )

    return _make
