"""Local private-key wallet for scripts and development.

The key lives in memory. It acts as both wallet provider and signing client:
"connecting" just exposes the account, and "switching" retargets the chain id
used when signing.
"""

import logging
from typing import Optional

from eth_account import Account
from web3 import Web3

from swapflow.clients.base import (
    CallRequest,
    RpcError,
    SigningClient,
    WalletContext,
    WalletProvider,
)
from swapflow.clients.rpc import JsonRpcClient

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 500000
# Headroom on top of eth_estimateGas
GAS_BUFFER_PERCENT = 20


class LocalAccountWallet(WalletProvider, SigningClient):
    """eth-account backed wallet."""

    def __init__(self, private_key: str, rpc: JsonRpcClient, chain_id: int):
        self._account = Account.from_key(private_key)
        self.rpc = rpc
        self.chain_id = chain_id
        self._connected = False

    @property
    def address(self) -> str:
        return self._account.address

    async def connect(self) -> Optional[str]:
        self._connected = True
        logger.info(f"Local wallet connected: {self.address}")
        return self.address

    async def switch_chain(self, chain_id: int) -> None:
        logger.info(f"Local wallet switching chain {self.chain_id} -> {chain_id}")
        self.chain_id = chain_id

    def context(self) -> WalletContext:
        """Current wallet state as an explicit context."""
        return WalletContext(
            account=self.address if self._connected else None,
            chain_id=self.chain_id,
            provider=self,
            signer=self if self._connected else None,
        )

    async def write_contract(self, request: CallRequest) -> str:
        if Web3.to_checksum_address(request.account) != self.address:
            raise RpcError(f"Call simulated for {request.account}, wallet is {self.address}")

        nonce = await self.rpc.get_transaction_count(self.address)
        gas_price = await self.rpc.gas_price()
        gas = request.gas or DEFAULT_GAS_LIMIT
        gas = gas + gas * GAS_BUFFER_PERCENT // 100

        tx = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas,
            "to": Web3.to_checksum_address(request.to),
            "value": request.value,
            "data": request.data,
            "chainId": request.chain_id or self.chain_id,
        }

        logger.info(f"Signing transaction: nonce={nonce}, gas={gas}, to={tx['to']}")
        signed_tx = self._account.sign_transaction(tx)

        tx_hash = await self.rpc.send_raw_transaction(signed_tx.raw_transaction.hex())
        logger.info(f"Transaction broadcast: {tx_hash}")
        return tx_hash
