"""swapflow - token approval, trade validation and router swap orchestration."""

__version__ = "0.1.0"
