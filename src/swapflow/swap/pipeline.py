"""Swap execution pipeline.

Drives a validated, approved trade through the router:

  IDLE -> CONNECTING_WALLET | SWITCHING_NETWORK      (guards, stop there)
  IDLE -> SIMULATING -> SIGNING -> BROADCASTING -> CONFIRMING -> SETTLED | FAILED

Each network round trip is a suspension point. Nothing is signed unless the
simulation passed, and exactly one SwapTransaction exists per broadcast.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from web3 import Web3

from swapflow.abi import ContractFunction, parse_signature
from swapflow.chains import explorer_tx_url
from swapflow.clients.base import (
    ChainReadClient,
    ClientError,
    ReceiptTimeoutError,
    WalletContext,
    WalletRejectedError,
)
from swapflow.config import get_settings
from swapflow.notifications.base import NotificationEvent, NotificationKind, NotificationSink
from swapflow.swap.errors import (
    BroadcastError,
    SimulationError,
    SwapInProgressError,
    SwapNotReadyError,
)
from swapflow.swap.models import PipelineStage, SwapStatus, SwapTransaction, Trade
from swapflow.utils.locks import SessionBusyError, is_session_busy, session_guard

logger = logging.getLogger(__name__)

# Non-terminal stages, split by whether a transaction exists yet
_PRE_BROADCAST_STAGES = {
    PipelineStage.CONNECTING_WALLET,
    PipelineStage.SWITCHING_NETWORK,
    PipelineStage.SIMULATING,
    PipelineStage.SIGNING,
}
_POST_BROADCAST_STAGES = {PipelineStage.BROADCASTING, PipelineStage.CONFIRMING}


class SwapExecutionPipeline:
    """Simulate, sign, broadcast and confirm router swaps for one session."""

    def __init__(
        self,
        client: ChainReadClient,
        notifier: NotificationSink,
        router_address: Optional[str] = None,
        router_function: Optional[ContractFunction] = None,
        expected_chain_id: Optional[int] = None,
        session_id: str = "default",
        explorer_url: Optional[str] = None,
        receipt_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.client = client
        self.notifier = notifier
        self.router_address = Web3.to_checksum_address(router_address or settings.router_address)
        self.router_function = router_function or parse_signature(
            settings.router_function_signature
        )
        self.expected_chain_id = expected_chain_id or settings.expected_chain_id
        self.session_id = session_id
        self.explorer_url = explorer_url if explorer_url is not None else settings.explorer_url
        self.receipt_timeout = (
            receipt_timeout if receipt_timeout is not None else settings.receipt_timeout
        )

        self._stage = PipelineStage.IDLE
        self._loading = False
        self._generation = 0
        self.last_transaction: Optional[SwapTransaction] = None

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    @property
    def is_loading(self) -> bool:
        """True while a run is between its first and last suspension point."""
        return self._loading

    @property
    def is_running(self) -> bool:
        return is_session_busy(self.session_id)

    def _set_stage(self, stage: PipelineStage) -> None:
        logger.debug(f"Swap pipeline [{self.session_id}]: {self._stage.value} -> {stage.value}")
        self._stage = stage

    def cancel(self) -> None:
        """Abandon the current run if it has not broadcast yet.

        A simulation that resolves afterwards is discarded without prompting
        the wallet. A transaction that was already broadcast keeps being
        tracked.
        """
        self._generation += 1
        logger.info(f"Swap pipeline [{self.session_id}] cancelled at {self._stage.value}")

    async def execute(self, trade: Trade, wallet: WalletContext) -> Optional[SwapTransaction]:
        """Run the pipeline once.

        Returns:
            The SwapTransaction once broadcast (CONFIRMED, FAILED, or still
            SUBMITTED when the receipt timed out), or None when the run
            stopped before broadcast: wallet connection or network switch
            requested, user rejected signing, or the run was cancelled.

        Raises:
            SwapNotReadyError: The quote is still loading
            SwapInProgressError: A swap is already in flight for the session
            SimulationError: Dry run failed; nothing was signed
            BroadcastError: Signing/submission failed; nothing was broadcast
        """
        if trade.is_loading:
            raise SwapNotReadyError("Trade quote is still loading")

        async with self._running("swap"):
            return await self._run(trade, wallet, self._generation)

    async def prepare_wallet(self, wallet: WalletContext) -> bool:
        """Request a connection or network switch when needed.

        Returns:
            True if the wallet is connected to the expected chain already
        """
        async with self._running("wallet preparation"):
            return await self._prepare_wallet(wallet)

    @asynccontextmanager
    async def _running(self, operation: str):
        """Session guard plus the loading flag, released on every exit.

        An interrupted run never leaves the stage mid-flight: before
        broadcast it returns to IDLE, after broadcast it ends in FAILED.
        """
        try:
            async with session_guard(self.session_id, operation):
                self._loading = True
                try:
                    yield
                finally:
                    self._loading = False
                    if self._stage in _PRE_BROADCAST_STAGES:
                        self._set_stage(PipelineStage.IDLE)
                    elif self._stage in _POST_BROADCAST_STAGES:
                        self._set_stage(PipelineStage.FAILED)
        except SessionBusyError as e:
            raise SwapInProgressError(str(e)) from e

    async def _prepare_wallet(self, wallet: WalletContext) -> bool:
        if not wallet.is_connected:
            self._set_stage(PipelineStage.CONNECTING_WALLET)
            try:
                await wallet.provider.connect()
            except WalletRejectedError as e:
                logger.info(f"Wallet connection rejected: {e}")
            self._set_stage(PipelineStage.IDLE)
            return False

        if wallet.chain_id != self.expected_chain_id:
            self._set_stage(PipelineStage.SWITCHING_NETWORK)
            try:
                await wallet.provider.switch_chain(self.expected_chain_id)
            except WalletRejectedError as e:
                logger.info(f"Network switch to {self.expected_chain_id} rejected: {e}")
            self._set_stage(PipelineStage.IDLE)
            return False

        return True

    async def _run(
        self,
        trade: Trade,
        wallet: WalletContext,
        generation: int,
    ) -> Optional[SwapTransaction]:
        if not await self._prepare_wallet(wallet):
            return None

        # Simulate
        self._set_stage(PipelineStage.SIMULATING)
        try:
            request = await self.client.simulate_contract(
                wallet.account,
                self.router_address,
                self.router_function,
                list(trade.write_args),
                trade.value,
            )
        except ClientError as e:
            self._set_stage(PipelineStage.FAILED)
            logger.warning(f"Swap simulation failed: {e}")
            raise SimulationError(f"Swap simulation failed: {e}", reason=str(e)) from e
        except Exception as e:
            # Unencodable router args and similar local failures
            self._set_stage(PipelineStage.FAILED)
            logger.error(f"Swap simulation error: {type(e).__name__}: {e}")
            raise SimulationError(f"Swap simulation failed: {e}", reason=str(e)) from e

        if generation != self._generation:
            logger.info("Discarding stale simulation result, swap was cancelled")
            self._set_stage(PipelineStage.IDLE)
            return None

        # Sign and broadcast
        self._set_stage(PipelineStage.SIGNING)
        try:
            tx_hash = await wallet.signer.write_contract(request)
        except WalletRejectedError as e:
            logger.info(f"Swap signature rejected: {e}")
            self._set_stage(PipelineStage.IDLE)
            return None
        except Exception as e:
            self._set_stage(PipelineStage.FAILED)
            logger.error(f"Swap broadcast failed: {type(e).__name__}: {e}")
            raise BroadcastError(f"Swap broadcast failed: {e}") from e

        self._set_stage(PipelineStage.BROADCASTING)
        tx = SwapTransaction(hash=tx_hash, trade=trade, chain_id=self.expected_chain_id)
        self.last_transaction = tx
        logger.info(f"Swap broadcast: {tx_hash} ({trade.description})")

        # Confirm
        self._set_stage(PipelineStage.CONFIRMING)
        await self._emit(NotificationKind.INFO, trade.description, tx_hash)

        try:
            receipt = await self.client.wait_for_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            # Broadcast already happened: the caller always gets the transaction
            if isinstance(e, (ReceiptTimeoutError, ClientError)):
                logger.warning(f"Swap {tx_hash} not confirmed: {e}")
            else:
                logger.error(f"Receipt wait for {tx_hash} failed: {type(e).__name__}: {e}")
            self._set_stage(PipelineStage.FAILED)
            await self._emit(
                NotificationKind.ERROR,
                f"{trade.description} is not confirmed yet",
                tx_hash,
            )
            return tx

        tx.settle(receipt)
        if tx.status == SwapStatus.CONFIRMED:
            logger.info(f"Swap confirmed: {tx_hash} in block {receipt.block_number}")
            self._set_stage(PipelineStage.SETTLED)
            await self._emit(NotificationKind.SUCCESS, trade.description, tx_hash)
        else:
            logger.warning(f"Swap reverted on-chain: {tx_hash}")
            self._set_stage(PipelineStage.FAILED)
            await self._emit(NotificationKind.ERROR, f"{trade.description} reverted", tx_hash)

        return tx

    async def _emit(self, kind: NotificationKind, text: str, tx_hash: str) -> None:
        event = NotificationEvent(
            kind=kind,
            text=text,
            hash=tx_hash,
            explorer_url=explorer_tx_url(tx_hash, self.expected_chain_id, self.explorer_url) or None,
        )
        try:
            await self.notifier.notify(event)
        except Exception as e:
            logger.error(f"Notification failed for {tx_hash}: {e}")
