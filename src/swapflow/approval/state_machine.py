"""Token approval state machine.

State is always derived from the last observed on-chain allowance and the
*current* requested amount, never cached as a boolean:

  UNKNOWN       -> allowance not yet read for the active request
  APPROVED      -> allowance >= requested amount
  PENDING       -> approval tx in flight for this exact request
  NOT_APPROVED  -> otherwise

approve() flips to PENDING before its first suspension point and always
re-reads the allowance after the approval receipt to settle the state.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from web3 import Web3

from swapflow.abi import ERC20_APPROVE, MAX_UINT256
from swapflow.approval.reader import AllowanceReader
from swapflow.clients.base import ChainReadClient, ClientError, WalletContext, WalletRejectedError
from swapflow.currency import TokenAmount, TokenRef

logger = logging.getLogger(__name__)


class ApprovalState(str, Enum):
    """Allowance state for the active approval request."""
    UNKNOWN = "unknown"
    NOT_APPROVED = "not_approved"
    PENDING = "pending"
    APPROVED = "approved"


class ApprovalError(Exception):
    """Raised when an approval cannot be submitted or does not succeed."""
    pass


@dataclass(frozen=True)
class ApprovalRequest:
    """Owner / token / spender / amount tuple for one allowance check.

    Superseded, never mutated, when the amount or input token changes.
    """
    owner: str
    token: TokenRef
    spender: str
    amount: TokenAmount

    def __post_init__(self):
        if self.amount.token != self.token:
            raise ValueError(f"Amount is in {self.amount.token}, request is for {self.token}")
        object.__setattr__(self, "owner", Web3.to_checksum_address(self.owner))
        object.__setattr__(self, "spender", Web3.to_checksum_address(self.spender))

    @property
    def key(self) -> tuple:
        """Identity of the on-chain allowance slot this request reads."""
        return (self.owner, self.token, self.spender)


class ApprovalStateMachine:
    """Tracks and advances allowance for the active ApprovalRequest."""

    def __init__(
        self,
        reader: AllowanceReader,
        client: ChainReadClient,
        request: Optional[ApprovalRequest] = None,
        approve_max: bool = False,
    ):
        self.reader = reader
        self.client = client
        self.approve_max = approve_max
        self._request: Optional[ApprovalRequest] = None
        self._allowance: Optional[int] = None
        self._allowance_key: Optional[tuple] = None
        self._in_flight: Optional[ApprovalRequest] = None

        if request is not None:
            self.set_request(request)

    @property
    def request(self) -> Optional[ApprovalRequest]:
        return self._request

    @property
    def allowance(self) -> Optional[int]:
        """Last allowance observed for the active request's slot."""
        return self._allowance

    @property
    def is_pending(self) -> bool:
        return self._in_flight is not None

    def set_request(self, request: Optional[ApprovalRequest]) -> None:
        """Replace the active request.

        The observed allowance survives only if the new request reads the
        same (owner, token, spender) slot, so an amount change recomputes
        the state immediately with no on-chain action.
        """
        self._request = request
        if request is None or request.key != self._allowance_key:
            self._allowance = None
            self._allowance_key = None

    def current_state(self) -> ApprovalState:
        request = self._request
        if request is None:
            return ApprovalState.UNKNOWN
        if request.token.is_native:
            return ApprovalState.APPROVED
        if self._allowance is None:
            return ApprovalState.UNKNOWN
        if self._allowance >= request.amount.raw_amount:
            return ApprovalState.APPROVED
        if self._in_flight == request:
            return ApprovalState.PENDING
        return ApprovalState.NOT_APPROVED

    async def refresh(self) -> ApprovalState:
        """Read the allowance for the active request.

        A read that resolves after the request moved to another slot is
        discarded.
        """
        request = self._request
        if request is None:
            return ApprovalState.UNKNOWN

        allowance = await self.reader.read(request.owner, request.token, request.spender)

        current = self._request
        if current is None or current.key != request.key:
            logger.debug(f"Discarding stale allowance read for {request.token.symbol}")
            return self.current_state()

        self._allowance = allowance
        self._allowance_key = request.key
        return self.current_state()

    async def approve(self, wallet: WalletContext) -> None:
        """Submit an approval for the active request and settle the state.

        No-op while an approval is already in flight.

        Raises:
            ApprovalError: No request, wrong wallet, rejection, revert, or
                the post-confirmation allowance read failed
        """
        request = self._request
        if request is None:
            raise ApprovalError("No approval request")

        if self._in_flight is not None:
            logger.info(f"Approval already pending for {self._in_flight.token.symbol}, ignoring")
            return

        if request.token.is_native:
            return

        if not wallet.is_connected:
            raise ApprovalError("Wallet not connected")
        if Web3.to_checksum_address(wallet.account) != request.owner:
            raise ApprovalError(f"Wallet {wallet.account} is not the request owner {request.owner}")

        amount = MAX_UINT256 if self.approve_max else request.amount.raw_amount
        self._in_flight = request

        try:
            call = await self.client.simulate_contract(
                request.owner,
                request.token.address,
                ERC20_APPROVE,
                [request.spender, amount],
            )
            tx_hash = await wallet.signer.write_contract(call)
            logger.info(f"Approval tx submitted for {request.token.symbol}: {tx_hash}")

            receipt = await self.client.wait_for_receipt(tx_hash)
            if not receipt.succeeded:
                raise ApprovalError(f"Approval transaction {tx_hash} reverted")

            state = await self.refresh()
            logger.info(f"Approval confirmed for {request.token.symbol}: {state.value}")

        except WalletRejectedError as e:
            logger.info(f"Approval rejected in wallet: {e}")
            raise ApprovalError("Approval rejected in wallet") from e
        except ApprovalError as e:
            logger.warning(f"Approval failed: {e}")
            raise
        except ClientError as e:
            logger.error(f"Approval failed for {request.token.symbol}: {e}")
            raise ApprovalError(str(e)) from e
        finally:
            self._in_flight = None

    async def run_refresh(self, interval: float) -> None:
        """Re-read the allowance every `interval` seconds until cancelled."""
        while True:
            try:
                await self.refresh()
            except ClientError as e:
                logger.warning(f"Allowance refresh failed: {e}")
            except Exception as e:
                logger.error(f"Allowance refresh error: {e}")
            await asyncio.sleep(interval)


def build_approval_request(
    owner: Optional[str],
    spender: str,
    amount: Optional[TokenAmount],
) -> Optional[ApprovalRequest]:
    """Build a request when both an owner and a parsed amount exist."""
    if not owner or amount is None:
        return None
    return ApprovalRequest(owner=owner, token=amount.token, spender=spender, amount=amount)
