"""Swap session: the single "can I swap right now" surface.

Composes the trade validity evaluator, the approval state machine and the
execution pipeline for one user session. Validation gates whether approval
is offered; approval gates whether the pipeline may run.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from swapflow.abi import parse_signature
from swapflow.approval import (
    AllowanceReader,
    ApprovalError,
    ApprovalState,
    ApprovalStateMachine,
    BalanceReader,
    build_approval_request,
)
from swapflow.clients.base import ChainReadClient, ClientError, WalletContext
from swapflow.config import Settings, get_settings
from swapflow.currency import TokenAmount, TokenRef, try_parse_amount
from swapflow.notifications.base import NotificationSink
from swapflow.swap.errors import SwapNotReadyError
from swapflow.swap.models import SwapTransaction, Trade
from swapflow.swap.pipeline import SwapExecutionPipeline
from swapflow.validation import (
    CONFIRMING_LABEL,
    CONNECT_WALLET_LABEL,
    FETCHING_LABEL,
    ValidationError,
    error_label,
    evaluate,
    is_fetching,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapButtonState:
    """Everything a front end needs to render the swap controls."""

    label: str
    enabled: bool
    error: ValidationError
    approval_state: ApprovalState
    show_approve: bool = False
    approve_enabled: bool = False
    approve_label: str = ""


class BalanceWatcher:
    """Holds a periodically refreshed balance for (owner, token).

    Staleness up to one refresh interval is expected.
    """

    def __init__(self, reader: BalanceReader, interval: float):
        self.reader = reader
        self.interval = interval
        self._owner: Optional[str] = None
        self._token: Optional[TokenRef] = None
        self._balance: Optional[TokenAmount] = None

    @property
    def balance(self) -> Optional[TokenAmount]:
        return self._balance

    def watch(self, owner: Optional[str], token: Optional[TokenRef]) -> None:
        if (owner, token) != (self._owner, self._token):
            self._owner = owner
            self._token = token
            self._balance = None

    async def refresh(self) -> Optional[TokenAmount]:
        owner, token = self._owner, self._token
        if not owner or token is None:
            return None

        balance = await self.reader.read(owner, token)

        if (owner, token) != (self._owner, self._token):
            logger.debug(f"Discarding stale {token.symbol} balance read")
            return self._balance

        self._balance = balance
        return balance

    async def run(self) -> None:
        """Refresh every `interval` seconds until cancelled."""
        while True:
            try:
                await self.refresh()
            except ClientError as e:
                logger.warning(f"Balance refresh failed: {e}")
            except Exception as e:
                logger.error(f"Balance refresh error: {e}")
            await asyncio.sleep(self.interval)


class SwapSession:
    """Swap form state for one user session."""

    def __init__(
        self,
        client: ChainReadClient,
        notifier: NotificationSink,
        session_id: str = "default",
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.session_id = session_id
        self.expected_chain_id = settings.expected_chain_id
        self.spender = settings.router_address
        self.allowance_refresh_interval = settings.allowance_refresh_interval

        self.approvals = ApprovalStateMachine(
            AllowanceReader(client),
            client,
            approve_max=settings.approve_max,
        )
        self.balances = BalanceWatcher(BalanceReader(client), settings.balance_refresh_interval)
        self.pipeline = SwapExecutionPipeline(
            client,
            notifier,
            router_address=settings.router_address,
            router_function=parse_signature(settings.router_function_signature),
            expected_chain_id=settings.expected_chain_id,
            session_id=session_id,
            explorer_url=settings.explorer_url,
            receipt_timeout=settings.receipt_timeout,
        )

        self.token_in: Optional[TokenRef] = None
        self.token_out: Optional[TokenRef] = None
        self.amount_text: str = ""
        self.parsed_amount: Optional[TokenAmount] = None
        self.trade: Optional[Trade] = None
        self._owner: Optional[str] = None
        self._refresh_tasks: list[asyncio.Task] = []

    # ----------------------
    # Background refresh
    # ----------------------

    @property
    def is_refreshing(self) -> bool:
        return any(not task.done() for task in self._refresh_tasks)

    def start_refresh(self) -> None:
        """Start the periodic balance and allowance refresh loops.

        No-op while the loops are already running.
        """
        if self.is_refreshing:
            return

        logger.info(
            f"Session {self.session_id}: refreshing balance every {self.balances.interval}s, "
            f"allowance every {self.allowance_refresh_interval}s"
        )
        self._refresh_tasks = [
            asyncio.create_task(self.balances.run(), name=f"balance-refresh-{self.session_id}"),
            asyncio.create_task(
                self.approvals.run_refresh(self.allowance_refresh_interval),
                name=f"allowance-refresh-{self.session_id}",
            ),
        ]

    async def stop(self) -> None:
        """Cancel the refresh loops and wait for them to exit."""
        tasks, self._refresh_tasks = self._refresh_tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ----------------------
    # Form state
    # ----------------------

    def update(
        self,
        token_in: Optional[TokenRef],
        token_out: Optional[TokenRef],
        amount_text: str,
        trade: Optional[Trade] = None,
    ) -> None:
        """Apply new form input.

        Changing either token abandons a swap that has not broadcast yet.
        """
        if (token_in, token_out) != (self.token_in, self.token_out):
            if self.pipeline.is_running:
                self.pipeline.cancel()

        self.token_in = token_in
        self.token_out = token_out
        self.amount_text = amount_text
        self.trade = trade
        self.parsed_amount = try_parse_amount(amount_text, token_in)
        self._rebuild()

    def _sync_wallet(self, wallet: WalletContext) -> None:
        if wallet.account != self._owner:
            self._owner = wallet.account
            self._rebuild()

    def _rebuild(self) -> None:
        self.approvals.set_request(
            build_approval_request(self._owner, self.spender, self.parsed_amount)
        )
        self.balances.watch(self._owner, self.token_in)

    # ----------------------
    # Derived state
    # ----------------------

    def validation(self, wallet: WalletContext) -> ValidationError:
        self._sync_wallet(wallet)
        return evaluate(
            self.token_in,
            self.token_out,
            self.amount_text,
            self.parsed_amount,
            self.balances.balance,
            wallet.chain_id,
            self.expected_chain_id,
            self.trade,
        )

    @property
    def is_fetching(self) -> bool:
        return is_fetching(self.token_in, self.token_out, self.parsed_amount, self.trade)

    def status(self, wallet: WalletContext) -> SwapButtonState:
        error = self.validation(wallet)
        approval = self.approvals.current_state()
        fetching = self.is_fetching
        loading = self.pipeline.is_loading

        show_approve = (
            not fetching
            and error == ValidationError.NONE
            and self.trade is not None
            and approval in (ApprovalState.NOT_APPROVED, ApprovalState.PENDING)
        )
        approve_label = f"Approve {self.token_in.symbol}" if self.token_in is not None else ""

        if fetching:
            label = FETCHING_LABEL
        elif loading:
            label = CONFIRMING_LABEL
        elif not wallet.account:
            label = CONNECT_WALLET_LABEL
        else:
            label = error_label(error, self.token_in)

        # Connect and switch stay clickable so the pipeline guards can act
        needs_wallet = not wallet.is_connected or error == ValidationError.WRONG_NETWORK
        ready = (
            error == ValidationError.NONE
            and approval == ApprovalState.APPROVED
            and self.trade is not None
        )

        return SwapButtonState(
            label=label,
            enabled=not fetching and not loading and (needs_wallet or ready),
            error=error,
            approval_state=approval,
            show_approve=show_approve,
            approve_enabled=show_approve and approval == ApprovalState.NOT_APPROVED,
            approve_label=approve_label,
        )

    # ----------------------
    # Actions
    # ----------------------

    async def refresh(self, wallet: WalletContext) -> None:
        """Read balance and allowance once."""
        self._sync_wallet(wallet)
        await self.balances.refresh()
        await self.approvals.refresh()

    async def approve(self, wallet: WalletContext) -> ApprovalState:
        self._sync_wallet(wallet)
        if self.approvals.request is None:
            raise ApprovalError("Nothing to approve: connect a wallet and enter an amount")
        await self.approvals.approve(wallet)
        return self.approvals.current_state()

    async def swap(self, wallet: WalletContext) -> Optional[SwapTransaction]:
        """Run the swap, or the wallet guard when not connected / wrong chain.

        Raises:
            SwapNotReadyError: Validation, approval or quote gate not met
        """
        self._sync_wallet(wallet)

        if not wallet.is_connected or wallet.chain_id != self.expected_chain_id:
            await self.pipeline.prepare_wallet(wallet)
            return None

        error = self.validation(wallet)
        if error != ValidationError.NONE:
            raise SwapNotReadyError(error_label(error, self.token_in))
        if self.trade is None or self.is_fetching:
            raise SwapNotReadyError("No trade quote available")

        approval = self.approvals.current_state()
        if approval != ApprovalState.APPROVED:
            raise SwapNotReadyError(f"Token approval is {approval.value}")

        return await self.pipeline.execute(self.trade, wallet)
