"""Base interfaces for the chain, wallet and signing collaborators.

Swap flow:
1. Read allowance / balance through the chain-read client
2. Simulate the contract call against current chain state
3. Hand the simulated call request to the signing client
4. Signing client signs and broadcasts, returning the tx hash
5. Wait for the receipt through the chain-read client
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from swapflow.abi import ContractFunction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallRequest:
    """A simulated contract call, ready to be signed.

    Attributes:
        account: Sender address
        to: Contract address
        data: ABI-encoded calldata (0x hex)
        value: Native value in wei
        chain_id: Chain the call was simulated on
        gas: Gas limit from estimation
    """
    account: str
    to: str
    data: str
    value: int = 0
    chain_id: Optional[int] = None
    gas: Optional[int] = None


@dataclass(frozen=True)
class TransactionReceipt:
    """Receipt of an included transaction."""
    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ClientError(Exception):
    """Base exception for collaborator failures."""
    pass


class RpcError(ClientError):
    """JSON-RPC transport or node error."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)


class ContractRevertError(RpcError):
    """The node reports the call would revert."""
    pass


class WalletRejectedError(ClientError):
    """The user refused a wallet request (connect, switch, sign)."""
    pass


class ReceiptTimeoutError(ClientError):
    """No receipt was observed within the timeout."""
    pass


class ChainReadClient(ABC):
    """Read-only access to chain state plus call simulation."""

    @abstractmethod
    async def chain_id(self) -> int:
        """Chain id reported by the node."""
        pass

    @abstractmethod
    async def read_contract(
        self,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
    ) -> Any:
        """Execute a view call and return the decoded result."""
        pass

    @abstractmethod
    async def get_native_balance(self, address: str) -> int:
        """Native balance in wei."""
        pass

    @abstractmethod
    async def simulate_contract(
        self,
        account: str,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> CallRequest:
        """Dry-run a state-changing call.

        Raises:
            ContractRevertError: If the call would revert
        """
        pass

    @abstractmethod
    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
    ) -> TransactionReceipt:
        """Wait until the transaction is included.

        Raises:
            ReceiptTimeoutError: If no receipt shows up in time
        """
        pass


class SigningClient(ABC):
    """Signs and broadcasts simulated call requests."""

    @abstractmethod
    async def write_contract(self, request: CallRequest) -> str:
        """Sign and submit the call, returning the transaction hash.

        Raises:
            WalletRejectedError: If the user refuses to sign
        """
        pass


class WalletProvider(ABC):
    """Connection and network management for a user wallet."""

    @abstractmethod
    async def connect(self) -> Optional[str]:
        """Request a wallet connection. Returns the connected address."""
        pass

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """Request a network switch."""
        pass


@dataclass(frozen=True)
class WalletContext:
    """Snapshot of wallet state passed explicitly into core operations.

    Attributes:
        account: Connected address, or None when disconnected
        chain_id: Chain the wallet is on, or None when unknown
        provider: Wallet provider used for connect / switch requests
        signer: Signing client, or None when no signer is available
    """
    account: Optional[str]
    chain_id: Optional[int]
    provider: WalletProvider
    signer: Optional[SigningClient] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.account) and self.signer is not None
