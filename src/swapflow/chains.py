"""Chain metadata and well-known tokens."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from swapflow.currency import NativeCurrency, Token, TokenRef


class ChainId(IntEnum):
    """EVM chain ids understood by swapflow."""

    ETHEREUM = 1
    OPTIMISM = 10
    BSC = 56
    POLYGON = 137
    ARBITRUM_ONE = 42161


@dataclass(frozen=True)
class ChainInfo:
    """Public chain information."""

    chain_id: int
    name: str
    native_symbol: str
    explorer_url: str


SUPPORTED_CHAINS: dict[int, ChainInfo] = {
    ChainId.ETHEREUM: ChainInfo(ChainId.ETHEREUM, "Ethereum", "ETH", "https://etherscan.io"),
    ChainId.OPTIMISM: ChainInfo(
        ChainId.OPTIMISM, "Optimism", "ETH", "https://optimistic.etherscan.io"
    ),
    ChainId.BSC: ChainInfo(ChainId.BSC, "BNB Smart Chain", "BNB", "https://bscscan.com"),
    ChainId.POLYGON: ChainInfo(ChainId.POLYGON, "Polygon", "MATIC", "https://polygonscan.com"),
    ChainId.ARBITRUM_ONE: ChainInfo(
        ChainId.ARBITRUM_ONE, "Arbitrum One", "ETH", "https://arbiscan.io"
    ),
}


# Token registry (Arbitrum One)
KNOWN_TOKENS: dict[int, dict[str, TokenRef]] = {
    ChainId.ARBITRUM_ONE: {
        "ETH": NativeCurrency(ChainId.ARBITRUM_ONE),
        "WETH": Token(
            ChainId.ARBITRUM_ONE,
            "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
            18,
            "WETH",
            "Wrapped Ether",
        ),
        "USDC": Token(
            ChainId.ARBITRUM_ONE,
            "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            6,
            "USDC",
            "USD Coin",
        ),
        "USDT": Token(
            ChainId.ARBITRUM_ONE,
            "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
            6,
            "USDT",
            "Tether USD",
        ),
        "ARB": Token(
            ChainId.ARBITRUM_ONE,
            "0x912CE59144191C1204E64559FE8253a0e49E6548",
            18,
            "ARB",
            "Arbitrum",
        ),
    },
}


def get_chain(chain_id: int) -> Optional[ChainInfo]:
    """Look up chain metadata."""
    return SUPPORTED_CHAINS.get(chain_id)


def get_token(chain_id: int, symbol: str) -> Optional[TokenRef]:
    """Look up a well-known token by symbol (case-insensitive)."""
    return KNOWN_TOKENS.get(chain_id, {}).get(symbol.upper())


def explorer_tx_url(tx_hash: str, chain_id: Optional[int] = None, explorer_url: str = "") -> str:
    """Build a block-explorer link for a transaction.

    An explicit `explorer_url` wins over the chain registry.
    """
    base = explorer_url
    if not base and chain_id is not None:
        chain = get_chain(chain_id)
        base = chain.explorer_url if chain else ""
    if not base:
        return ""
    return f"{base.rstrip('/')}/tx/{tx_hash}"
