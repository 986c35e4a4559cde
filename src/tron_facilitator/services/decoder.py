"""Transaction Decoder — turns an opaque signed envelope into a DecodedTransfer.

The envelope is a JSON-serialized Tron transaction as produced by a wallet:

    {
        "txID": "<sha256 of raw_data_hex>",
        "raw_data": {... JSON mirror of the signed bytes ...},
        "raw_data_hex": "<protobuf bytes, hex>",
        "signature": ["<r || s || v, 130 hex chars>"]
    }

Only ``raw_data_hex`` is covered by the signature; ``raw_data`` is a
convenience mirror that anyone can edit. Every field read from the mirror is
therefore cross-checked against the signed bytes before it is trusted.

Checks run in a fixed order and each one is a hard failure: the first
violated rule raises its ``DecodeError`` subclass and nothing is returned.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from tron_facilitator.domain.enums import ContractType, FunctionSelector
from tron_facilitator.domain.exceptions import (
    DecodeError,
    EmptyContractArrayError,
    HashMismatchError,
    IntegrityMismatchError,
    MalformedCallDataError,
    MalformedSignatureError,
    MissingRawDataError,
    MissingSignatureError,
    NonHexRawDataError,
    PaddingViolationError,
    ParseError,
    SignatureOwnerMismatchError,
    SignatureRecoveryError,
    UnsupportedContractTypeError,
)
from tron_facilitator.domain.models import DecodedTransfer
from tron_facilitator.logging_config import get_logger

if TYPE_CHECKING:
    from tron_facilitator.domain.chain_protocol import ChainClient

logger = get_logger(__name__)

_HEX_RE = re.compile(r"[0-9a-fA-F]+")
_SIGNATURE_RE = re.compile(r"[0-9a-fA-F]{130}")

SUPPORTED_CONTRACT_TYPES = frozenset({ContractType.TRIGGER_SMART_CONTRACT})

# selector (8) + address word (64) + uint256 word (64)
_ADDRESS_AMOUNT_CALL_LENGTH = 136
_ADDRESS_PADDING = "0" * 24

# Transaction.raw field 8 (expiration), wire type 0
_EXPIRATION_TAG = "40"


def _varint_hex(value: int) -> str:
    """Protobuf varint encoding of an int64, as lowercase hex."""
    if value < 0:
        value += 1 << 64
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return out.hex()


class TransactionDecoder:
    """Validates and decodes externally signed TRC-20 transactions."""

    def __init__(self, chain_client: ChainClient) -> None:
        self._chain = chain_client

    def decode(self, envelope: str, network: str) -> DecodedTransfer:
        """Decode ``envelope`` or raise the first violated ``DecodeError``.

        The returned ``tx_id`` is always the locally recomputed hash, never
        the caller's claim. Expiration is reported but not evaluated here.
        """
        try:
            decoded = self._decode(envelope)
        except DecodeError as exc:
            logger.info(
                "decoder.rejected",
                network=network,
                code=exc.code,
                error=exc.message,
            )
            raise

        logger.debug(
            "decoder.decoded",
            network=network,
            tx_id=decoded.tx_id,
            selector=decoded.function_selector,
            owner=decoded.owner_address,
        )
        return decoded

    # ------------------------------------------------------------------

    def _decode(self, envelope: str) -> DecodedTransfer:
        tx = self._parse(envelope)
        signatures = self._check_signatures(tx)
        raw_data_hex = self._check_raw_data_hex(tx)

        tx_id = self._chain.hash(raw_data_hex)
        claimed = tx.get("txID")
        if not isinstance(claimed, str) or claimed.lower() != tx_id.lower():
            raise HashMismatchError(
                expected=tx_id, claimed=claimed if isinstance(claimed, str) else None
            )

        recovered = self._recover(tx_id, signatures[0])

        raw_data = tx.get("raw_data")
        contracts = raw_data.get("contract") if isinstance(raw_data, dict) else None
        if not isinstance(contracts, list) or not contracts:
            raise EmptyContractArrayError()

        contract = contracts[0]
        contract_type = contract.get("type") if isinstance(contract, dict) else None
        if not isinstance(contract_type, str):
            raise UnsupportedContractTypeError(None)
        if contract_type not in SUPPORTED_CONTRACT_TYPES:
            raise UnsupportedContractTypeError(contract_type)

        parameter = contract.get("parameter")
        value = parameter.get("value") if isinstance(parameter, dict) else None
        if not isinstance(value, dict):
            raise ParseError("missing contract parameter value", field="parameter.value")

        owner_hex = value.get("owner_address")
        contract_hex = value.get("contract_address")
        owner_address = self._display_address(owner_hex, "owner_address")
        contract_address = self._display_address(contract_hex, "contract_address")

        if recovered != owner_address:
            raise SignatureOwnerMismatchError(recovered=recovered, owner=owner_address)

        data = value.get("data")
        if not isinstance(data, str) or len(data) < 8 or not _HEX_RE.fullmatch(data):
            raise MalformedCallDataError(
                "missing or malformed data field",
                length=len(data) if isinstance(data, str) else None,
            )

        raw_lower = raw_data_hex.lower()
        for field, mirrored in (
            ("data", data),
            ("contract_address", contract_hex),
            ("owner_address", owner_hex),
        ):
            if mirrored.lower() not in raw_lower:
                raise IntegrityMismatchError(field)

        selector = data[:8].lower()
        params = self._decode_params(selector, data)

        expiration = raw_data.get("expiration")
        if isinstance(expiration, bool) or not isinstance(expiration, int):
            expiration = None
        elif _EXPIRATION_TAG + _varint_hex(expiration) not in raw_lower:
            raise IntegrityMismatchError("expiration")

        return DecodedTransfer(
            tx_id=tx_id,
            contract_type=contract_type,
            contract_address=contract_address,
            function_selector=selector,
            owner_address=owner_address,
            raw_transaction=tx,
            expiration=expiration,
            **params,
        )

    @staticmethod
    def _parse(envelope: str) -> dict[str, Any]:
        if not isinstance(envelope, str):
            raise ParseError("expected a JSON string")
        try:
            tx = json.loads(envelope)
        except ValueError as exc:
            raise ParseError("expected JSON-serialized Tron transaction") from exc
        if not isinstance(tx, dict):
            raise ParseError("expected a JSON object")
        return tx

    @staticmethod
    def _check_signatures(tx: dict[str, Any]) -> list[str]:
        signatures = tx.get("signature")
        if not isinstance(signatures, list) or not signatures:
            raise MissingSignatureError()
        for index, signature in enumerate(signatures):
            if not isinstance(signature, str) or not _SIGNATURE_RE.fullmatch(signature):
                raise MalformedSignatureError(index)
        return signatures

    @staticmethod
    def _check_raw_data_hex(tx: dict[str, Any]) -> str:
        raw_data_hex = tx.get("raw_data_hex")
        if not isinstance(raw_data_hex, str) or not raw_data_hex:
            raise MissingRawDataError()
        if len(raw_data_hex) % 2 or not _HEX_RE.fullmatch(raw_data_hex):
            raise NonHexRawDataError()
        return raw_data_hex

    def _recover(self, tx_id: str, signature: str) -> str:
        # Only the first signature is checked; multi-sig permissions are not supported.
        r, s, v = signature[:64], signature[64:128], int(signature[128:130], 16)
        try:
            return self._chain.recover_signer(tx_id, r, s, v)
        except Exception as exc:
            raise SignatureRecoveryError(str(exc) or type(exc).__name__) from exc

    def _display_address(self, raw_address: Any, field: str) -> str:
        if not isinstance(raw_address, str):
            raise ParseError(f"missing {field}", field=field)
        try:
            return self._chain.to_display_address(raw_address)
        except ValueError as exc:
            raise ParseError(f"invalid {field}: {exc}", field=field) from exc

    def _decode_params(self, selector: str, data: str) -> dict[str, Any]:
        """Extract (address, uint256) parameters for transfer and approve calls.

        Other selectors decode to an empty parameter set; the verifier decides
        whether they are acceptable.
        """
        if selector == FunctionSelector.TRANSFER:
            party = "recipient"
        elif selector == FunctionSelector.APPROVE:
            party = "spender"
        else:
            return {}

        if len(data) < _ADDRESS_AMOUNT_CALL_LENGTH:
            raise MalformedCallDataError(
                f"expected {_ADDRESS_AMOUNT_CALL_LENGTH}+ hex chars, got {len(data)}",
                length=len(data),
            )
        padding = data[8:32]
        if padding != _ADDRESS_PADDING:
            raise PaddingViolationError(selector=selector, padding=padding)

        return {
            party: self._chain.to_display_address("41" + data[32:72].lower()),
            "amount": int(data[72:136], 16),
        }
