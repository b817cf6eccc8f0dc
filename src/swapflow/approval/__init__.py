"""ERC-20 allowance reads and the approval state machine."""

from swapflow.approval.reader import AllowanceReader, BalanceReader
from swapflow.approval.state_machine import (
    ApprovalError,
    ApprovalRequest,
    ApprovalState,
    ApprovalStateMachine,
    build_approval_request,
)

__all__ = [
    "AllowanceReader",
    "BalanceReader",
    "ApprovalError",
    "ApprovalRequest",
    "ApprovalState",
    "ApprovalStateMachine",
    "build_approval_request",
]
