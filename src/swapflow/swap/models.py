"""Trade and swap transaction models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from swapflow.clients.base import TransactionReceipt
from swapflow.currency import TokenAmount


@dataclass(frozen=True)
class Trade:
    """A quote from the routing collaborator. Read-only here.

    Attributes:
        amount_in: Exact input amount
        amount_out: Expected output amount
        write_args: Router call arguments, opaque to swapflow
        value: Native value to send with the router call (wei)
        is_fetching: Quote refresh in progress
        is_pending: No quote resolved yet
    """
    amount_in: TokenAmount
    amount_out: TokenAmount
    write_args: tuple[Any, ...] = ()
    value: int = 0
    is_fetching: bool = False
    is_pending: bool = False

    @property
    def is_loading(self) -> bool:
        return self.is_fetching or self.is_pending

    @property
    def description(self) -> str:
        """Human-readable summary used in notifications."""
        return (
            f"Swap {self.amount_in.to_significant(6)} {self.amount_in.token.symbol} "
            f"for {self.amount_out.to_significant(6)} {self.amount_out.token.symbol}"
        )


class SwapStatus(str, Enum):
    """On-chain status of a broadcast swap."""
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class PipelineStage(str, Enum):
    """Swap execution pipeline stages."""
    IDLE = "idle"
    CONNECTING_WALLET = "connecting_wallet"
    SWITCHING_NETWORK = "switching_network"
    SIMULATING = "simulating"
    SIGNING = "signing"
    BROADCASTING = "broadcasting"
    CONFIRMING = "confirming"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass
class SwapTransaction:
    """A broadcast swap. Exists only once a hash is known."""
    hash: str
    trade: Trade
    chain_id: int
    status: SwapStatus = SwapStatus.SUBMITTED
    receipt: Optional[TransactionReceipt] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    settled_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != SwapStatus.SUBMITTED

    def settle(self, receipt: TransactionReceipt) -> None:
        """Record the receipt and move to CONFIRMED or FAILED."""
        if self.is_terminal:
            raise ValueError(f"Swap {self.hash} already settled as {self.status.value}")
        self.receipt = receipt
        self.status = SwapStatus.CONFIRMED if receipt.succeeded else SwapStatus.FAILED
        self.settled_at = datetime.now(timezone.utc)
