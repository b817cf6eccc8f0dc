"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Any, Optional, Sequence

import pytest
from eth_abi import decode
from web3 import Web3

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["EXPECTED_CHAIN_ID"] = "42161"
os.environ["RECEIPT_TIMEOUT"] = "5"

from swapflow.abi import ERC20_APPROVE, ContractFunction
from swapflow.chains import ChainId, get_token
from swapflow.clients.base import (
    CallRequest,
    ChainReadClient,
    ReceiptTimeoutError,
    SigningClient,
    TransactionReceipt,
    WalletContext,
    WalletProvider,
    WalletRejectedError,
)
from swapflow.config import get_settings
from swapflow.currency import TokenAmount
from swapflow.notifications import MemoryNotificationSink
from swapflow.swap.models import Trade
from swapflow.utils.locks import clear_session_locks

OWNER = "0x1111111111111111111111111111111111111111"
ARBITRUM = int(ChainId.ARBITRUM_ONE)


class FakeChainClient(ChainReadClient):
    """In-memory chain: allowances, balances, simulations and receipts."""

    def __init__(self):
        self.allowances: dict[tuple, int] = {}
        self.balances: dict[tuple, int] = {}
        self.submitted: dict[str, CallRequest] = {}
        self.simulations: list[tuple] = []
        self.allowance_reads = 0
        self.simulate_error: Optional[Exception] = None
        self.simulate_gate: Optional[asyncio.Event] = None
        self.receipt_gate: Optional[asyncio.Event] = None
        self.receipt_status = 1
        self.receipt_timeout = False

    def set_allowance(self, token: str, owner: str, spender: str, value: int) -> None:
        self.allowances[(token, owner, spender)] = value

    async def chain_id(self) -> int:
        return ARBITRUM

    async def read_contract(self, address: str, function: ContractFunction, args: Sequence[Any] = ()):
        if function.name == "allowance":
            self.allowance_reads += 1
            return self.allowances.get((address, args[0], args[1]), 0)
        if function.name == "balanceOf":
            return self.balances.get((address, args[0]), 0)
        raise AssertionError(f"Unexpected read {function.name}")

    async def get_native_balance(self, address: str) -> int:
        return self.balances.get((None, address), 0)

    async def simulate_contract(
        self,
        account: str,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> CallRequest:
        self.simulations.append((function.name, address, list(args), value))
        if self.simulate_gate is not None:
            await self.simulate_gate.wait()
        if self.simulate_error is not None:
            raise self.simulate_error
        return CallRequest(
            account=account,
            to=address,
            data=function.encode_call(args),
            value=value,
            chain_id=ARBITRUM,
            gas=100000,
        )

    async def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> TransactionReceipt:
        if self.receipt_gate is not None:
            await self.receipt_gate.wait()
        if self.receipt_timeout:
            raise ReceiptTimeoutError(f"No receipt for {tx_hash}")

        request = self.submitted[tx_hash]
        if self.receipt_status == 1 and request.data.startswith(ERC20_APPROVE.selector):
            spender, amount = decode(["address", "uint256"], bytes.fromhex(request.data[10:]))
            self.set_allowance(request.to, request.account, Web3.to_checksum_address(spender), amount)

        return TransactionReceipt(tx_hash=tx_hash, status=self.receipt_status, block_number=100)


class FakeWallet(WalletProvider, SigningClient):
    """Wallet that signs by handing calls to the fake chain."""

    def __init__(self, chain: FakeChainClient, account: Optional[str] = OWNER, chain_id: int = ARBITRUM):
        self.chain = chain
        self.account = account
        self.chain_id = chain_id
        self.signed: list[CallRequest] = []
        self.reject_signing = False
        self.reject_requests = False
        self.connect_calls = 0
        self.switch_calls: list[int] = []

    async def connect(self) -> Optional[str]:
        self.connect_calls += 1
        if self.reject_requests:
            raise WalletRejectedError("User closed the modal")
        self.account = OWNER
        return self.account

    async def switch_chain(self, chain_id: int) -> None:
        self.switch_calls.append(chain_id)
        if self.reject_requests:
            raise WalletRejectedError("User rejected the switch")
        self.chain_id = chain_id

    async def write_contract(self, request: CallRequest) -> str:
        if self.reject_signing:
            raise WalletRejectedError("User rejected the request")
        self.signed.append(request)
        tx_hash = "0x" + f"{len(self.chain.submitted) + 1:064x}"
        self.chain.submitted[tx_hash] = request
        return tx_hash

    def context(self) -> WalletContext:
        return WalletContext(
            account=self.account,
            chain_id=self.chain_id,
            provider=self,
            signer=self if self.account else None,
        )


@pytest.fixture(autouse=True)
def reset_locks():
    """Clear session locks before each test."""
    clear_session_locks()
    yield
    clear_session_locks()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def usdc():
    return get_token(ARBITRUM, "USDC")


@pytest.fixture
def weth():
    return get_token(ARBITRUM, "WETH")


@pytest.fixture
def eth():
    return get_token(ARBITRUM, "ETH")


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def wallet(chain) -> FakeWallet:
    return FakeWallet(chain)


@pytest.fixture
def sink() -> MemoryNotificationSink:
    return MemoryNotificationSink()


@pytest.fixture
def trade(usdc, weth) -> Trade:
    """5 USDC -> 0.0015 WETH, router args matching processRoute."""
    amount_in = TokenAmount(usdc, 5_000_000)
    amount_out = TokenAmount(weth, 1_500_000_000_000_000)
    return Trade(
        amount_in=amount_in,
        amount_out=amount_out,
        write_args=(usdc.address, 5_000_000, weth.address, 1_490_000_000_000_000, OWNER, b"\x01"),
        value=0,
    )
