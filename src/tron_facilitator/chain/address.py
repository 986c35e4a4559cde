"""Tron address helpers.

A Tron account is the last 20 bytes of keccak256(uncompressed public key),
prefixed with 0x41. Nodes exchange the 21-byte form as hex ("41..."), wallets
display it as base58check ("T...").
"""

from __future__ import annotations

import re

import base58
from eth_utils import keccak

ADDRESS_PREFIX = "41"
_HEX_ADDRESS_RE = re.compile(r"^41[0-9a-fA-F]{40}$")


class InvalidAddressError(ValueError):
    """Raised when a value is not a Tron address in the expected form."""


def is_hex_address(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_ADDRESS_RE.match(value))


def hex_to_base58(hex_address: str) -> str:
    """Convert a 41-prefixed hex address to base58check."""
    if not is_hex_address(hex_address):
        raise InvalidAddressError(f"not a 41-prefixed hex address: {hex_address!r}")
    return base58.b58encode_check(bytes.fromhex(hex_address)).decode("ascii")


def base58_to_hex(address: str) -> str:
    """Convert a base58check address to lowercase 41-prefixed hex."""
    try:
        raw = base58.b58decode_check(address)
    except ValueError as exc:
        raise InvalidAddressError(f"bad base58check address: {address!r}") from exc
    if len(raw) != 21 or raw[0] != 0x41:
        raise InvalidAddressError(f"not a Tron address: {address!r}")
    return raw.hex()


def public_key_to_hex_address(public_key: bytes) -> str:
    """Derive the 41-prefixed hex address from a 64-byte public key."""
    return ADDRESS_PREFIX + keccak(public_key)[-20:].hex()


def encode_address_param(address: str) -> str:
    """ABI-encode a base58 address as a 32-byte word (64 hex chars)."""
    return base58_to_hex(address)[2:].rjust(64, "0")


def encode_uint256_param(value: int | str) -> str:
    """ABI-encode an unsigned integer as a 32-byte word (64 hex chars)."""
    number = int(value)
    if number < 0 or number >= 2**256:
        raise ValueError(f"uint256 out of range: {value}")
    return format(number, "064x")
