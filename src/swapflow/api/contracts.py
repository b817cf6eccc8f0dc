"""Request and response contracts for the swap validation endpoint."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from swapflow.approval import ApprovalState
from swapflow.validation import ValidationError


class SwapValidateRequest(BaseModel):
    """Form state to validate."""

    chain_id: Optional[int] = Field(None, description="Chain the wallet is on (None = disconnected)")
    token_in: Optional[str] = Field(None, description="Input token symbol")
    token_out: Optional[str] = Field(None, description="Output token symbol")
    amount_in: str = Field(default="", description="Amount as typed by the user")
    balance: Optional[Decimal] = Field(None, ge=0, description="Input token balance (human units)")
    quote_fetching: bool = Field(default=False, description="Quote refresh in progress")


class SwapValidateResponse(BaseModel):
    """Validation outcome."""

    model_config = ConfigDict(use_enum_values=True)

    error: ValidationError = Field(..., description="Highest-ranked validation error")
    label: str = Field(..., description="Swap button label")
    ready: bool = Field(..., description="Trade can proceed to approval / execution")
    fetching: bool = Field(default=False, description="Waiting for a quote")
    parsed_amount_raw: Optional[str] = Field(None, description="Parsed amount in smallest units")


class ApprovalStatusResponse(BaseModel):
    """Allowance state for an owner / token pair against the router."""

    model_config = ConfigDict(use_enum_values=True)

    owner: str
    token: str
    spender: str
    allowance: Optional[str] = None
    state: ApprovalState
