"""JSON-RPC chain client over httpx."""

import asyncio
import itertools
import logging
import time
from typing import Any, Optional, Sequence

import httpx
from web3 import Web3

from swapflow.abi import ContractFunction
from swapflow.clients.base import (
    CallRequest,
    ChainReadClient,
    ContractRevertError,
    ReceiptTimeoutError,
    RpcError,
    TransactionReceipt,
)
from swapflow.config import get_settings

logger = logging.getLogger(__name__)

# Node error codes / messages that mean "execution reverted"
REVERT_CODES = {3, -32015}
REVERT_MARKERS = ("revert", "execution reverted", "out of gas", "insufficient")


def _to_hex(value: int) -> str:
    return hex(value)


def _from_hex(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


class JsonRpcClient(ChainReadClient):
    """Chain-read client talking to an EVM node via JSON-RPC.

    Also exposes the raw nonce / gas / broadcast calls used by local signers.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.rpc_url = rpc_url or settings.rpc_url
        self.timeout = timeout if timeout is not None else settings.rpc_timeout
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.receipt_poll_interval
        )
        self._http = http_client
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: list) -> Any:
        """Send one JSON-RPC request and return its result.

        Raises:
            RpcError: On transport failure or a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        try:
            if self._http is not None:
                response = await self._http.post(self.rpc_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise RpcError(f"{method} transport error: {e}") from e

        if response.status_code != 200:
            raise RpcError(f"{method} HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise RpcError(f"{method} returned invalid JSON: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise RpcError(f"{method} returned unexpected payload: {type(data).__name__}")

        if "error" in data:
            error = data["error"] or {}
            message = error.get("message", "unknown error")
            code = error.get("code")
            if code in REVERT_CODES or any(m in message.lower() for m in REVERT_MARKERS):
                raise ContractRevertError(message, code=code, data=error.get("data"))
            raise RpcError(f"{method} failed: {message}", code=code, data=error.get("data"))

        return data.get("result")

    # ----------------------
    # Reads
    # ----------------------

    async def chain_id(self) -> int:
        return _from_hex(await self._call("eth_chainId", []))

    async def read_contract(
        self,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
    ) -> Any:
        result = await self._call(
            "eth_call",
            [{"to": Web3.to_checksum_address(address), "data": function.encode_call(args)}, "latest"],
        )
        if not result or result == "0x":
            raise RpcError(f"{function.name} returned no data from {address}")
        return function.decode_output(result)

    async def get_native_balance(self, address: str) -> int:
        return _from_hex(
            await self._call("eth_getBalance", [Web3.to_checksum_address(address), "latest"])
        )

    async def get_transaction_count(self, address: str) -> int:
        return _from_hex(
            await self._call(
                "eth_getTransactionCount", [Web3.to_checksum_address(address), "pending"]
            )
        )

    async def gas_price(self) -> int:
        return _from_hex(await self._call("eth_gasPrice", []))

    # ----------------------
    # Simulation
    # ----------------------

    async def simulate_contract(
        self,
        account: str,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> CallRequest:
        tx = {
            "from": Web3.to_checksum_address(account),
            "to": Web3.to_checksum_address(address),
            "data": function.encode_call(args),
            "value": _to_hex(value),
        }

        logger.debug(f"Simulating {function.name} on {address} from {account}")
        await self._call("eth_call", [tx, "latest"])
        gas = _from_hex(await self._call("eth_estimateGas", [tx]))
        chain_id = await self.chain_id()

        return CallRequest(
            account=tx["from"],
            to=tx["to"],
            data=tx["data"],
            value=value,
            chain_id=chain_id,
            gas=gas,
        )

    # ----------------------
    # Broadcast / receipts
    # ----------------------

    async def send_raw_transaction(self, raw_tx_hex: str) -> str:
        if not raw_tx_hex.startswith("0x"):
            raw_tx_hex = f"0x{raw_tx_hex}"
        return await self._call("eth_sendRawTransaction", [raw_tx_hex])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        return TransactionReceipt(
            tx_hash=result.get("transactionHash", tx_hash),
            status=_from_hex(result.get("status", "0x0")),
            block_number=_from_hex(result.get("blockNumber")),
            gas_used=_from_hex(result.get("gasUsed")),
        )

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
    ) -> TransactionReceipt:
        timeout = timeout if timeout is not None else get_settings().receipt_timeout
        deadline = time.monotonic() + timeout

        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except RpcError as e:
                logger.warning(f"Receipt poll for {tx_hash} failed: {e}")
                receipt = None

            if receipt is not None:
                logger.debug(f"Receipt for {tx_hash}: status={receipt.status}")
                return receipt

            if time.monotonic() >= deadline:
                raise ReceiptTimeoutError(f"No receipt for {tx_hash} after {timeout}s")

            await asyncio.sleep(self.poll_interval)
