"""Tron network constants: CAIP-2 identifiers, RPC endpoints, token addresses.

CAIP-2 identifiers follow the ``tron:<genesis block hash prefix>`` format.
"""

from __future__ import annotations

TRON_MAINNET = "tron:27Lqcw"
TRON_SHASTA = "tron:4oPwXB"
TRON_NILE = "tron:6FhfKq"

DEFAULT_RPC_URLS: dict[str, str] = {
    TRON_MAINNET: "https://api.trongrid.io",
    TRON_SHASTA: "https://api.shasta.trongrid.io",
    TRON_NILE: "https://nile.trongrid.io",
}

# USDT TRC-20 contracts (base58)
USDT_ADDRESSES: dict[str, str] = {
    TRON_MAINNET: "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t",
    TRON_SHASTA: "TG3XXyExBkPp9nzdajDZsozEu4BkaSJozs",
    TRON_NILE: "TXLAQ63Xg1NAzckPwKHvzw7CSEmLMEqcdj",
}

# Conservative energy for a USDT transfer when the node cannot estimate
DEFAULT_TRANSFER_ENERGY = 65_000

TRANSFER_SIGNATURE = "transfer(address,uint256)"
BALANCE_OF_SIGNATURE = "balanceOf(address)"

# Header TronGrid reads the project API key from
TRONGRID_API_KEY_HEADER = "TRON-PRO-API-KEY"
