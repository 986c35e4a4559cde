"""TronGrid HTTP adapter implementing the ChainClient protocol.

Talks to full/solidity nodes through the TronGrid HTTP API with one
``httpx.AsyncClient`` per network, created lazily. Read calls retry on
transport errors with exponential backoff (tenacity). Broadcast is never
retried here: whether a resend is safe is the settlement coordinator's call.

Crypto comes from libraries: sha256 from hashlib, secp256k1 recovery from
eth-keys, keccak from eth-utils and base58check from base58.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from eth_keys import keys
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tron_facilitator.chain.address import (
    base58_to_hex,
    encode_address_param,
    encode_uint256_param,
    hex_to_base58,
    public_key_to_hex_address,
)
from tron_facilitator.chain.constants import (
    BALANCE_OF_SIGNATURE,
    DEFAULT_RPC_URLS,
    DEFAULT_TRANSFER_ENERGY,
    TRANSFER_SIGNATURE,
    TRONGRID_API_KEY_HEADER,
)
from tron_facilitator.domain.exceptions import ChainClientError
from tron_facilitator.domain.models import BroadcastResult, ExecutionStatus
from tron_facilitator.logging_config import get_logger

logger = get_logger(__name__)


def decode_node_message(message: str | None) -> str | None:
    """Decode a hex-encoded node message to UTF-8, passing plain text through."""
    if not message:
        return None
    try:
        return bytes.fromhex(message).decode("utf-8", errors="replace")
    except ValueError:
        return message


class TronChainClient:
    """ChainClient backed by the TronGrid HTTP API."""

    def __init__(
        self,
        rpc_urls: Mapping[str, str] | None = None,
        operating_addresses: Sequence[str] = (),
        api_key: str = "",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            rpc_urls: CAIP-2 network -> node base URL. Defaults to TronGrid.
            operating_addresses: Base58 addresses this facilitator operates with.
            api_key: Optional TronGrid project key, sent on every request.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self._rpc_urls = dict(rpc_urls or DEFAULT_RPC_URLS)
        self._operating_addresses = list(operating_addresses)
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    def get_operating_addresses(self) -> list[str]:
        return list(self._operating_addresses)

    def hash(self, raw_bytes_hex: str) -> str:
        return hashlib.sha256(bytes.fromhex(raw_bytes_hex)).hexdigest()

    def recover_signer(
        self, content_hash: str, r: str, s: str, recovery_id: int
    ) -> str:
        """Recover the base58 address that signed ``content_hash``.

        Tron wallets emit the recovery id as 27/28 or 0/1; both are accepted.
        """
        v = recovery_id - 27 if recovery_id >= 27 else recovery_id
        signature = keys.Signature(vrs=(v, int(r, 16), int(s, 16)))
        public_key = signature.recover_public_key_from_msg_hash(
            bytes.fromhex(content_hash)
        )
        return hex_to_base58(public_key_to_hex_address(public_key.to_bytes()))

    def to_display_address(self, raw_address: str) -> str:
        return hex_to_base58(raw_address)

    # ------------------------------------------------------------------
    # Node calls
    # ------------------------------------------------------------------

    async def broadcast(
        self, transaction: dict[str, Any], network: str
    ) -> BroadcastResult:
        client = self._client_for(network)
        try:
            response = await client.post("/wallet/broadcasttransaction", json=transaction)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ChainClientError(f"Broadcast request failed: {exc}", network) from exc

        if data.get("result") is True or data.get("code") == "SUCCESS":
            return BroadcastResult(
                ok=True,
                tx_id=data.get("txid") or transaction.get("txID"),
            )

        error_text = (
            decode_node_message(data.get("message"))
            or data.get("code")
            or "Unknown broadcast error"
        )
        logger.warning(
            "tron.broadcast_rejected",
            network=network,
            code=data.get("code"),
            error=error_text,
        )
        return BroadcastResult(ok=False, error_text=error_text)

    async def get_execution_status(
        self, tx_id: str, network: str
    ) -> ExecutionStatus:
        data = await self._read(
            network, "/walletsolidity/gettransactioninfobyid", {"value": tx_id}
        )
        if not data or not data.get("id"):
            return ExecutionStatus(found=False)

        receipt = data.get("receipt") or {}
        return ExecutionStatus(
            found=True,
            status=receipt.get("result"),
            detail=decode_node_message(data.get("resMessage")),
        )

    async def get_balance(self, asset: str, address: str, network: str) -> str:
        try:
            body = {
                "owner_address": base58_to_hex(address),
                "contract_address": base58_to_hex(asset),
                "function_selector": BALANCE_OF_SIGNATURE,
                "parameter": encode_address_param(address),
                "visible": False,
            }
        except ValueError as exc:
            raise ChainClientError(f"Invalid balance query: {exc}", network) from exc

        data = await self._read(network, "/wallet/triggerconstantcontract", body)
        result = data.get("result") or {}
        constant_result = data.get("constant_result") or []
        if result.get("result") is not True or not constant_result:
            message = decode_node_message(result.get("message")) or "no constant_result"
            raise ChainClientError(f"balanceOf call failed: {message}", network)

        try:
            return str(int(constant_result[0] or "0", 16))
        except ValueError as exc:
            raise ChainClientError(
                f"balanceOf returned non-hex data: {constant_result[0]!r}", network
            ) from exc

    async def estimate_cost(
        self, asset: str, from_: str, to: str, amount: str, network: str
    ) -> int:
        """Estimate the energy of ``transfer(to, amount)`` sent by ``from_``.

        Nodes without the estimateenergy endpoint enabled, or any RPC error,
        yield the conservative default.
        """
        try:
            body = {
                "owner_address": base58_to_hex(from_),
                "contract_address": base58_to_hex(asset),
                "function_selector": TRANSFER_SIGNATURE,
                "parameter": encode_address_param(to) + encode_uint256_param(amount),
                "visible": False,
            }
            data = await self._read(network, "/wallet/estimateenergy", body)
        except (ChainClientError, ValueError) as exc:
            logger.warning(
                "tron.estimate_energy_fallback",
                network=network,
                error=str(exc),
                energy=DEFAULT_TRANSFER_ENERGY,
            )
            return DEFAULT_TRANSFER_ENERGY

        energy = data.get("energy_required")
        if not isinstance(energy, int) or energy <= 0:
            return DEFAULT_TRANSFER_ENERGY
        return energy

    async def close(self) -> None:
        """Close every open HTTP client. Called during app shutdown."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _client_for(self, network: str) -> httpx.AsyncClient:
        base_url = self._rpc_urls.get(network)
        if not base_url:
            raise ChainClientError(
                f"No RPC URL configured for network: {network}", network
            )

        client = self._clients.get(network)
        if client is None:
            headers = {"Content-Type": "application/json"}
            if self._api_key:
                headers[TRONGRID_API_KEY_HEADER] = self._api_key
            client = httpx.AsyncClient(
                base_url=base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
            self._clients[network] = client
        return client

    async def _read(
        self, network: str, path: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        client = self._client_for(network)
        try:
            data = await self._post_with_retry(client, path, body)
        except (httpx.HTTPError, ValueError) as exc:
            raise ChainClientError(f"{path} failed: {exc}", network) from exc
        if not isinstance(data, dict):
            raise ChainClientError(f"{path} returned a non-object body", network)
        return data

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post_with_retry(
        self, client: httpx.AsyncClient, path: str, body: dict[str, Any]
    ) -> Any:
        """POST a read-only call, retrying transient transport failures."""
        response = await client.post(path, json=body)
        response.raise_for_status()
        return response.json()
