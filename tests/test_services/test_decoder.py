"""Unit tests for the TransactionDecoder.

Envelopes are signed with real secp256k1 keys, so every rejection below is
the decoder's doing and not a side effect of a fake signature.
"""

from __future__ import annotations

import hashlib
import json

import pytest

from tron_facilitator.chain.address import base58_to_hex
from tron_facilitator.chain.constants import TRON_MAINNET
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
from tron_facilitator.services.decoder import TransactionDecoder


def _decode(decoder: TransactionDecoder, tx: dict | str):
    envelope = tx if isinstance(tx, str) else json.dumps(tx)
    return decoder.decode(envelope, TRON_MAINNET)


@pytest.fixture
def decoder(chain_client) -> TransactionDecoder:
    return TransactionDecoder(chain_client)


class TestDecodeHappyPath:
    def test_genuine_transfer_decodes(self, decoder, build_tx, accounts) -> None:
        tx = build_tx(amount=1_000_000)
        decoded = _decode(decoder, tx)

        assert decoded.tx_id == tx["txID"]
        assert decoded.contract_type == "TriggerSmartContract"
        assert decoded.contract_address == accounts.asset
        assert decoded.function_selector == "a9059cbb"
        assert decoded.recipient == accounts.pay_to
        assert decoded.amount == 1_000_000
        assert decoded.spender is None
        assert decoded.owner_address == accounts.payer
        assert decoded.raw_transaction == tx

    def test_tx_id_is_recomputed_not_copied(self, decoder, build_tx) -> None:
        tx = build_tx()
        tx["txID"] = tx["txID"].upper()

        decoded = _decode(decoder, tx)

        assert decoded.tx_id == tx["txID"].lower()

    def test_approve_extracts_spender(self, decoder, build_tx, accounts) -> None:
        tx = build_tx(selector="095ea7b3", to=accounts.other, amount=42)
        decoded = _decode(decoder, tx)

        assert decoded.function_selector == "095ea7b3"
        assert decoded.spender == accounts.other
        assert decoded.recipient is None
        assert decoded.amount == 42

    def test_unknown_selector_has_no_parameters(self, decoder, build_tx) -> None:
        tx = build_tx(data="70a08231" + "00" * 32)
        decoded = _decode(decoder, tx)

        assert decoded.function_selector == "70a08231"
        assert decoded.recipient is None
        assert decoded.amount is None

    def test_expiration_reported_not_enforced(self, decoder, build_tx) -> None:
        decoded = _decode(decoder, build_tx(expiration=1))
        assert decoded.expiration == 1

    def test_missing_expiration_is_none(self, decoder, build_tx) -> None:
        decoded = _decode(decoder, build_tx(expiration=None))
        assert decoded.expiration is None

    def test_recovery_id_27_accepted(self, decoder, build_tx, accounts) -> None:
        tx = build_tx()
        signature = tx["signature"][0]
        v = int(signature[128:], 16)
        tx["signature"] = [signature[:128] + format(v + 27, "02x")]

        assert _decode(decoder, tx).owner_address == accounts.payer

    def test_uppercase_hex_is_accepted(self, decoder, build_tx) -> None:
        tx = build_tx()
        tx["raw_data_hex"] = tx["raw_data_hex"].upper()
        tx["signature"] = [tx["signature"][0].upper()]

        assert _decode(decoder, tx).amount == 1_000_000


class TestDecodeEnvelopeStructure:
    @pytest.mark.parametrize("envelope", ["not json", "[1, 2]", '"string"', "null"])
    def test_non_object_is_parse_error(self, decoder, envelope) -> None:
        with pytest.raises(ParseError):
            _decode(decoder, envelope)

    @pytest.mark.parametrize("signature", [None, [], "deadbeef", {"0": "x"}])
    def test_missing_signature(self, decoder, build_tx, signature) -> None:
        tx = build_tx()
        tx["signature"] = signature
        with pytest.raises(MissingSignatureError):
            _decode(decoder, tx)

    @pytest.mark.parametrize(
        "bad",
        ["ab" * 64, "ab" * 66, "zz" * 65, 12345, None],
        ids=["short", "long", "non-hex", "int", "null"],
    )
    def test_malformed_signature_rejected_before_crypto(
        self, decoder, build_tx, chain_client, bad
    ) -> None:
        tx = build_tx()
        tx["signature"] = [tx["signature"][0], bad]
        chain_client.recover_signer = None  # would blow up if reached

        with pytest.raises(MalformedSignatureError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.context["index"] == 1

    def test_missing_raw_data_hex(self, decoder, build_tx) -> None:
        tx = build_tx()
        del tx["raw_data_hex"]
        with pytest.raises(MissingRawDataError):
            _decode(decoder, tx)

    @pytest.mark.parametrize("raw", ["0a02zz", "0a0", "0x0a02"])
    def test_non_hex_raw_data(self, decoder, build_tx, raw) -> None:
        tx = build_tx()
        tx["raw_data_hex"] = raw
        with pytest.raises(NonHexRawDataError):
            _decode(decoder, tx)

    def test_claimed_tx_id_must_match_hash(self, decoder, build_tx) -> None:
        tx = build_tx()
        tx["txID"] = "00" * 32
        with pytest.raises(HashMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.context["claimed"] == "00" * 32

    def test_missing_tx_id_is_hash_mismatch(self, decoder, build_tx) -> None:
        tx = build_tx()
        del tx["txID"]
        with pytest.raises(HashMismatchError):
            _decode(decoder, tx)

    def test_unrecoverable_signature(self, decoder, build_tx) -> None:
        tx = build_tx()
        tx["signature"] = ["00" * 64 + "05"]
        with pytest.raises(SignatureRecoveryError):
            _decode(decoder, tx)

    @pytest.mark.parametrize("raw_data", [{}, {"contract": []}, {"contract": "x"}, None])
    def test_empty_contract_array(self, decoder, build_tx, raw_data) -> None:
        tx = build_tx()
        tx["raw_data"] = raw_data
        with pytest.raises(EmptyContractArrayError):
            _decode(decoder, tx)

    def test_transfer_contract_unsupported(self, decoder, build_tx) -> None:
        tx = build_tx(contract_type="TransferContract")
        with pytest.raises(UnsupportedContractTypeError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.context["contract_type"] == "TransferContract"

    def test_missing_owner_address_is_parse_error(self, decoder, build_tx) -> None:
        tx = build_tx()
        del tx["raw_data"]["contract"][0]["parameter"]["value"]["owner_address"]
        with pytest.raises(ParseError):
            _decode(decoder, tx)

    def test_unconvertible_contract_address_is_parse_error(self, decoder, build_tx) -> None:
        tx = build_tx()
        tx["raw_data"]["contract"][0]["parameter"]["value"]["contract_address"] = "TR7N"
        with pytest.raises(ParseError):
            _decode(decoder, tx)


class TestDecodeIdentity:
    def test_signature_from_other_key_rejected(self, decoder, build_tx, accounts) -> None:
        # Signed by "other" while claiming the payer as owner
        tx = build_tx(signer=accounts.other_key, owner=accounts.payer)
        with pytest.raises(SignatureOwnerMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.context["recovered"] == accounts.other
        assert exc_info.value.context["owner"] == accounts.payer

    def test_mirror_owner_swapped(self, decoder, build_tx, accounts) -> None:
        tx = build_tx()
        value = tx["raw_data"]["contract"][0]["parameter"]["value"]
        value["owner_address"] = base58_to_hex(accounts.other)
        with pytest.raises(SignatureOwnerMismatchError):
            _decode(decoder, tx)


class TestDecodeIntegrity:
    def test_mirror_amount_edited(self, decoder, build_tx) -> None:
        tx = build_tx(amount=1)
        value = tx["raw_data"]["contract"][0]["parameter"]["value"]
        value["data"] = value["data"][:72] + format(1_000_000_000_000, "064x")

        with pytest.raises(IntegrityMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.field == "data"

    def test_mirror_contract_edited(self, decoder, build_tx, accounts) -> None:
        tx = build_tx()
        value = tx["raw_data"]["contract"][0]["parameter"]["value"]
        value["contract_address"] = base58_to_hex(accounts.other)

        with pytest.raises(IntegrityMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.field == "contract_address"

    def test_owner_absent_from_signed_bytes(self, decoder, build_tx, accounts) -> None:
        # Genuinely signed bytes that never mention the owner the mirror claims
        tx = build_tx()
        value = tx["raw_data"]["contract"][0]["parameter"]["value"]
        raw = "0a0210" + value["contract_address"] + value["data"] + "ff"
        tx_id = hashlib.sha256(bytes.fromhex(raw)).hexdigest()
        signature = accounts.payer_key.sign_msg_hash(bytes.fromhex(tx_id))
        tx.update(raw_data_hex=raw, txID=tx_id, signature=[signature.to_bytes().hex()])

        with pytest.raises(IntegrityMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.field == "owner_address"

    def test_mirror_expiration_extended(self, decoder, build_tx) -> None:
        tx = build_tx(expiration=1_700_000_000_000)
        tx["raw_data"]["expiration"] = 4_102_444_800_000

        with pytest.raises(IntegrityMismatchError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.field == "expiration"

    def test_signed_expiration_matches_mirror(self, decoder, build_tx) -> None:
        tx = build_tx(expiration=1_700_000_000_000)
        assert "40" + "80d095ffbc31" in tx["raw_data_hex"]
        assert _decode(decoder, tx).expiration == 1_700_000_000_000

    def test_uppercase_mirror_still_matches(self, decoder, build_tx) -> None:
        tx = build_tx()
        value = tx["raw_data"]["contract"][0]["parameter"]["value"]
        value["data"] = value["data"].upper()

        assert _decode(decoder, tx).amount == 1_000_000


class TestDecodeCallData:
    @pytest.mark.parametrize("data", ["a905", "zzzzzzzz", ""])
    def test_malformed_call_data(self, decoder, build_tx, data) -> None:
        tx = build_tx()
        tx["raw_data"]["contract"][0]["parameter"]["value"]["data"] = data
        with pytest.raises(MalformedCallDataError):
            _decode(decoder, tx)

    def test_short_transfer_call(self, decoder, build_tx) -> None:
        tx = build_tx(data="a9059cbb" + "00" * 40)
        with pytest.raises(MalformedCallDataError):
            _decode(decoder, tx)

    @pytest.mark.parametrize("selector", ["a9059cbb", "095ea7b3"])
    def test_dirty_address_padding(self, decoder, build_tx, selector) -> None:
        tx = build_tx(selector=selector, padding="0" * 23 + "1")
        with pytest.raises(PaddingViolationError):
            _decode(decoder, tx)

    def test_every_failure_is_a_decode_error(self, decoder, build_tx) -> None:
        tx = build_tx(padding="f" * 24)
        with pytest.raises(DecodeError) as exc_info:
            _decode(decoder, tx)
        assert exc_info.value.code == "PADDING_VIOLATION"
