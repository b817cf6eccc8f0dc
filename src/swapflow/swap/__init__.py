"""Swap execution: models, pipeline and session composition."""

from swapflow.swap.errors import (
    BroadcastError,
    SimulationError,
    SwapError,
    SwapInProgressError,
    SwapNotReadyError,
)
from swapflow.swap.models import PipelineStage, SwapStatus, SwapTransaction, Trade
from swapflow.swap.pipeline import SwapExecutionPipeline
from swapflow.swap.session import BalanceWatcher, SwapButtonState, SwapSession

__all__ = [
    "BroadcastError",
    "SimulationError",
    "SwapError",
    "SwapInProgressError",
    "SwapNotReadyError",
    "PipelineStage",
    "SwapStatus",
    "SwapTransaction",
    "Trade",
    "SwapExecutionPipeline",
    "BalanceWatcher",
    "SwapButtonState",
    "SwapSession",
]
