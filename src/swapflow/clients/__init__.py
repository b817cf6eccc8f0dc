"""Chain, wallet and signing collaborators.

- ChainReadClient: allowance / balance reads, simulation, receipts
- SigningClient: sign and broadcast simulated calls
- WalletProvider: connection and network switching
- JsonRpcClient / LocalAccountWallet: concrete implementations
"""

from swapflow.clients.base import (
    CallRequest,
    ChainReadClient,
    ClientError,
    ContractRevertError,
    ReceiptTimeoutError,
    RpcError,
    SigningClient,
    TransactionReceipt,
    WalletContext,
    WalletProvider,
    WalletRejectedError,
)
from swapflow.clients.rpc import JsonRpcClient

__all__ = [
    "CallRequest",
    "ChainReadClient",
    "ClientError",
    "ContractRevertError",
    "ReceiptTimeoutError",
    "RpcError",
    "SigningClient",
    "TransactionReceipt",
    "WalletContext",
    "WalletProvider",
    "WalletRejectedError",
    "JsonRpcClient",
]
