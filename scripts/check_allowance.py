#!/usr/bin/env python3
"""Check (and optionally approve) the router allowance for a token.

Usage:
    python scripts/check_allowance.py --owner 0x... --token USDC --amount 5
    python scripts/check_allowance.py --token USDC --amount 5 --approve

With --approve the local wallet from WALLET_PRIVATE_KEY is used as owner.
"""

import argparse
import asyncio
import logging
import sys

from swapflow.approval import (
    AllowanceReader,
    ApprovalError,
    ApprovalState,
    ApprovalStateMachine,
    BalanceReader,
    build_approval_request,
)
from swapflow.chains import get_token
from swapflow.clients.local import LocalAccountWallet
from swapflow.clients.rpc import JsonRpcClient
from swapflow.config import get_settings
from swapflow.currency import try_parse_amount
from swapflow.main import configure_logging

logger = logging.getLogger("check_allowance")


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    rpc = JsonRpcClient()

    token = get_token(settings.expected_chain_id, args.token)
    if token is None:
        print(f"Unknown token: {args.token}")
        return 1

    amount = try_parse_amount(args.amount, token)
    if amount is None:
        print(f"Invalid amount: {args.amount}")
        return 1

    wallet = None
    owner = args.owner
    if args.approve:
        if not settings.wallet_private_key:
            print("WALLET_PRIVATE_KEY is not set")
            return 1
        wallet = LocalAccountWallet(settings.wallet_private_key, rpc, settings.expected_chain_id)
        owner = await wallet.connect()

    if not owner:
        print("--owner is required without --approve")
        return 1

    request = build_approval_request(owner, settings.router_address, amount)
    machine = ApprovalStateMachine(
        AllowanceReader(rpc), rpc, request=request, approve_max=settings.approve_max
    )

    balance = await BalanceReader(rpc).read(owner, token)
    state = await machine.refresh()
    print(f"Owner:     {request.owner}")
    print(f"Balance:   {balance}")
    print(f"Allowance: {machine.allowance} (raw) for spender {request.spender}")
    print(f"Requested: {amount}")
    print(f"State:     {state.value}")

    if wallet is not None and state == ApprovalState.NOT_APPROVED:
        try:
            await machine.approve(wallet.context())
        except ApprovalError as e:
            print(f"Approval failed: {e}")
            return 1
        print(f"State after approval: {machine.current_state().value}")

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--owner", help="Owner address (defaults to the local wallet)")
    parser.add_argument("--token", required=True, help="Token symbol, e.g. USDC")
    parser.add_argument("--amount", required=True, help="Requested amount in token units")
    parser.add_argument("--approve", action="store_true", help="Submit an approval if needed")
    args = parser.parse_args()

    configure_logging()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
