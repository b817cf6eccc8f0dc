"""Trade validity evaluation.

Collapses asset selection, amount, balance and network into one ranked
error. Pure functions only: nothing here touches the chain.
"""

from enum import Enum
from typing import Any, Optional

from swapflow.currency import TokenAmount, TokenRef

FETCHING_LABEL = "Fetching Best Trade"
CONFIRMING_LABEL = "Waiting for Confirmation"
CONNECT_WALLET_LABEL = "Connect Wallet"
READY_LABEL = "Swap"


class ValidationError(str, Enum):
    """Trade validation result, highest rank first."""
    WRONG_NETWORK = "wrong_network"
    NO_ASSET_SELECTED = "no_asset_selected"
    NO_VALID_AMOUNT = "no_valid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NONE = "none"

    @property
    def rank(self) -> int:
        """Higher rank wins when several conditions hold."""
        return _RANKS[self]


_RANKS = {
    ValidationError.WRONG_NETWORK: 4,
    ValidationError.NO_ASSET_SELECTED: 3,
    ValidationError.NO_VALID_AMOUNT: 2,
    ValidationError.INSUFFICIENT_BALANCE: 1,
    ValidationError.NONE: 0,
}


def evaluate(
    token_in: Optional[TokenRef],
    token_out: Optional[TokenRef],
    amount_in_text: Optional[str],
    parsed_amount: Optional[TokenAmount],
    balance: Optional[TokenAmount],
    current_chain_id: Optional[int],
    expected_chain_id: int,
    quote: Any = None,
) -> ValidationError:
    """Evaluate a proposed trade.

    Args:
        token_in: Selected input token
        token_out: Selected output token
        amount_in_text: Raw user input
        parsed_amount: `amount_in_text` parsed in `token_in` units
        balance: Observed `token_in` balance (None counts as zero)
        current_chain_id: Wallet chain (None counts as wrong network)
        expected_chain_id: Chain the router lives on
        quote: Current quote; its freshness is gated by `is_fetching`

    Returns:
        The highest-ranked active error, or NONE
    """
    if current_chain_id != expected_chain_id:
        return ValidationError.WRONG_NETWORK

    if token_in is None or token_out is None:
        return ValidationError.NO_ASSET_SELECTED

    if (
        not amount_in_text
        or parsed_amount is None
        or parsed_amount.token != token_in
        or not parsed_amount.greater_than(0)
    ):
        return ValidationError.NO_VALID_AMOUNT

    # Compared in human units, exactly as displayed
    available = balance.to_decimal() if balance is not None else 0
    if parsed_amount.to_decimal() > available:
        return ValidationError.INSUFFICIENT_BALANCE

    return ValidationError.NONE


def is_fetching(
    token_in: Optional[TokenRef],
    token_out: Optional[TokenRef],
    parsed_amount: Optional[TokenAmount],
    quote: Any,
) -> bool:
    """True while a quote for a structurally valid trade is loading.

    `quote` is anything with `is_fetching` / `is_pending` flags.
    """
    if token_in is None or token_out is None:
        return False
    if parsed_amount is None or not parsed_amount.greater_than(0):
        return False
    if quote is None:
        return False
    return bool(quote.is_fetching or quote.is_pending)


def error_label(error: ValidationError, token_in: Optional[TokenRef] = None) -> str:
    """Disabled-button label for a validation error."""
    if error == ValidationError.WRONG_NETWORK:
        return "Switch Network"
    if error == ValidationError.NO_ASSET_SELECTED:
        return "Select Asset to Trade"
    if error == ValidationError.NO_VALID_AMOUNT:
        return "Input Amount to Trade"
    if error == ValidationError.INSUFFICIENT_BALANCE:
        symbol = token_in.symbol if token_in is not None else ""
        return f"Insufficient {symbol} Balance".replace("  ", " ")
    return READY_LABEL
