"""On-chain allowance and balance reads."""

import logging

from web3 import Web3

from swapflow.abi import ERC20_ALLOWANCE, ERC20_BALANCE_OF, MAX_UINT256
from swapflow.clients.base import ChainReadClient
from swapflow.currency import TokenAmount, TokenRef

logger = logging.getLogger(__name__)


class AllowanceReader:
    """Reads ERC-20 allowance for (owner, token, spender)."""

    def __init__(self, client: ChainReadClient):
        self.client = client

    async def read(self, owner: str, token: TokenRef, spender: str) -> int:
        """Current allowance in the token's smallest unit.

        The native currency needs no approval, so it reports unlimited
        allowance without touching the chain.
        """
        if token.is_native:
            return MAX_UINT256

        allowance = await self.client.read_contract(
            token.address,
            ERC20_ALLOWANCE,
            [Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)],
        )
        logger.debug(f"Allowance {token.symbol} owner={owner} spender={spender}: {allowance}")
        return int(allowance)


class BalanceReader:
    """Reads an owner's balance of a token."""

    def __init__(self, client: ChainReadClient):
        self.client = client

    async def read(self, owner: str, token: TokenRef) -> TokenAmount:
        if token.is_native:
            raw = await self.client.get_native_balance(owner)
        else:
            raw = await self.client.read_contract(
                token.address,
                ERC20_BALANCE_OF,
                [Web3.to_checksum_address(owner)],
            )
        return TokenAmount(token, int(raw))
