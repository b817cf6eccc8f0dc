"""Swap readiness endpoints."""

import logging
from types import SimpleNamespace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from web3 import Web3

from swapflow.api.contracts import (
    ApprovalStatusResponse,
    SwapValidateRequest,
    SwapValidateResponse,
)
from swapflow.approval import AllowanceReader, ApprovalRequest, ApprovalStateMachine
from swapflow.chains import get_token
from swapflow.clients.base import ChainReadClient, ClientError
from swapflow.clients.rpc import JsonRpcClient
from swapflow.config import get_settings
from swapflow.currency import TokenAmount, try_parse_amount
from swapflow.validation import (
    CONNECT_WALLET_LABEL,
    FETCHING_LABEL,
    ValidationError,
    error_label,
    evaluate,
    is_fetching,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_chain_client() -> ChainReadClient:
    """Chain client dependency (overridden in tests)."""
    return JsonRpcClient()


@router.post("/swap/validate", response_model=SwapValidateResponse)
async def validate_swap(request: SwapValidateRequest) -> SwapValidateResponse:
    """Evaluate swap form state into a single error and button label."""
    settings = get_settings()
    chain_id = settings.expected_chain_id

    token_in = get_token(chain_id, request.token_in) if request.token_in else None
    token_out = get_token(chain_id, request.token_out) if request.token_out else None
    parsed = try_parse_amount(request.amount_in, token_in)

    balance = None
    if token_in is not None and request.balance is not None:
        # Balances beyond the token's precision are truncated, never rounded up
        balance_text = format(request.balance, "f")
        whole, _, fraction = balance_text.partition(".")
        balance_text = f"{whole}.{fraction[:token_in.decimals]}" if fraction else whole
        balance = try_parse_amount(balance_text, token_in, allow_zero=True)

    error = evaluate(
        token_in,
        token_out,
        request.amount_in,
        parsed,
        balance,
        request.chain_id,
        chain_id,
    )
    quote = SimpleNamespace(is_fetching=request.quote_fetching, is_pending=False)
    fetching = is_fetching(token_in, token_out, parsed, quote)

    if fetching:
        label = FETCHING_LABEL
    elif request.chain_id is None:
        label = CONNECT_WALLET_LABEL
    else:
        label = error_label(error, token_in)

    return SwapValidateResponse(
        error=error,
        label=label,
        ready=error == ValidationError.NONE and not fetching,
        fetching=fetching,
        parsed_amount_raw=str(parsed.raw_amount) if parsed is not None else None,
    )


@router.get("/approvals/{owner}", response_model=ApprovalStatusResponse)
async def approval_status(
    owner: str,
    token: str = Query(..., description="Input token symbol"),
    amount: Optional[str] = Query(None, description="Requested amount (human units)"),
    client: ChainReadClient = Depends(get_chain_client),
) -> ApprovalStatusResponse:
    """Read the router allowance for an owner and derive the approval state."""
    settings = get_settings()

    if not Web3.is_address(owner):
        raise HTTPException(status_code=400, detail=f"Invalid owner address: {owner}")

    token_ref = get_token(settings.expected_chain_id, token)
    if token_ref is None:
        raise HTTPException(status_code=404, detail=f"Unknown token: {token}")

    parsed = try_parse_amount(amount, token_ref, allow_zero=True) if amount else None
    if amount and parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid amount: {amount}")

    request = ApprovalRequest(
        owner=owner,
        token=token_ref,
        spender=settings.router_address,
        amount=parsed or TokenAmount(token_ref, 0),
    )
    machine = ApprovalStateMachine(AllowanceReader(client), client, request=request)

    try:
        state = await machine.refresh()
    except ClientError as e:
        logger.error(f"Allowance read failed for {owner}: {e}")
        raise HTTPException(status_code=502, detail="Allowance read failed")

    return ApprovalStatusResponse(
        owner=request.owner,
        token=token_ref.symbol,
        spender=request.spender,
        allowance=str(machine.allowance) if machine.allowance is not None else None,
        state=state,
    )
