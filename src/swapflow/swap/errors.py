"""Swap pipeline exceptions."""

from typing import Optional


class SwapError(Exception):
    """Base exception for swap execution failures."""
    pass


class SwapNotReadyError(SwapError):
    """The trade is not eligible for execution right now."""
    pass


class SwapInProgressError(SwapError):
    """Another swap is already in flight for this session."""
    pass


class SimulationError(SwapError):
    """The router call failed its dry run. Nothing was signed."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class BroadcastError(SwapError):
    """Signing or submission failed after simulation. Nothing was broadcast."""
    pass
