"""Tests for the allowance reader and approval state machine."""

import asyncio

import pytest
from web3 import Web3

from conftest import OWNER, FakeWallet
from swapflow.abi import MAX_UINT256
from swapflow.approval import (
    AllowanceReader,
    ApprovalError,
    ApprovalRequest,
    ApprovalState,
    ApprovalStateMachine,
    BalanceReader,
)
from swapflow.clients.base import ContractRevertError
from swapflow.config import get_settings
from swapflow.currency import TokenAmount

SPENDER = Web3.to_checksum_address(get_settings().router_address)


def _request(token, raw):
    return ApprovalRequest(owner=OWNER, token=token, spender=SPENDER, amount=TokenAmount(token, raw))


def _machine(chain, request=None, approve_max=False):
    return ApprovalStateMachine(AllowanceReader(chain), chain, request=request, approve_max=approve_max)


class TestReaders:
    """Tests for allowance and balance reads."""

    @pytest.mark.asyncio
    async def test_reads_erc20_allowance(self, chain, usdc):
        chain.set_allowance(usdc.address, OWNER, SPENDER, 42)

        allowance = await AllowanceReader(chain).read(OWNER, usdc, SPENDER)

        assert allowance == 42

    @pytest.mark.asyncio
    async def test_native_allowance_is_unlimited_without_read(self, chain, eth):
        allowance = await AllowanceReader(chain).read(OWNER, eth, SPENDER)

        assert allowance == MAX_UINT256
        assert chain.allowance_reads == 0

    @pytest.mark.asyncio
    async def test_reads_balances(self, chain, usdc, eth):
        chain.balances[(usdc.address, OWNER)] = 10_000_000
        chain.balances[(None, OWNER)] = 2 * 10**18

        reader = BalanceReader(chain)

        assert (await reader.read(OWNER, usdc)).to_decimal() == 10
        assert (await reader.read(OWNER, eth)).to_decimal() == 2


class TestApprovalRequest:
    """Tests for ApprovalRequest."""

    def test_amount_must_match_token(self, usdc, weth):
        with pytest.raises(ValueError):
            ApprovalRequest(owner=OWNER, token=usdc, spender=SPENDER, amount=TokenAmount(weth, 1))

    def test_key_ignores_amount(self, usdc):
        assert _request(usdc, 1).key == _request(usdc, 2).key


class TestCurrentState:
    """Tests for state derivation."""

    def test_no_request_is_unknown(self, chain):
        assert _machine(chain).current_state() == ApprovalState.UNKNOWN

    def test_unknown_until_read(self, chain, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        assert machine.current_state() == ApprovalState.UNKNOWN

    def test_native_token_is_approved(self, chain, eth):
        machine = _machine(chain, _request(eth, 10**18))
        assert machine.current_state() == ApprovalState.APPROVED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "allowance,amount,expected",
        [
            (0, 5_000_000, ApprovalState.NOT_APPROVED),
            (4_999_999, 5_000_000, ApprovalState.NOT_APPROVED),
            (5_000_000, 5_000_000, ApprovalState.APPROVED),
            (MAX_UINT256, 5_000_000, ApprovalState.APPROVED),
        ],
    )
    async def test_allowance_vs_amount(self, chain, usdc, allowance, amount, expected):
        chain.set_allowance(usdc.address, OWNER, SPENDER, allowance)
        machine = _machine(chain, _request(usdc, amount))

        assert await machine.refresh() == expected

    @pytest.mark.asyncio
    async def test_amount_increase_flips_to_not_approved_without_chain_action(self, chain, usdc):
        chain.set_allowance(usdc.address, OWNER, SPENDER, 5_000_000)
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        assert machine.current_state() == ApprovalState.APPROVED
        reads = chain.allowance_reads

        machine.set_request(_request(usdc, 6_000_000))

        assert machine.current_state() == ApprovalState.NOT_APPROVED
        assert chain.allowance_reads == reads

    @pytest.mark.asyncio
    async def test_token_change_resets_to_unknown(self, chain, usdc, weth):
        chain.set_allowance(usdc.address, OWNER, SPENDER, 5_000_000)
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()

        machine.set_request(_request(weth, 1))

        assert machine.current_state() == ApprovalState.UNKNOWN
        assert machine.allowance is None

    @pytest.mark.asyncio
    async def test_stale_read_discarded(self, chain, usdc, weth):
        chain.set_allowance(usdc.address, OWNER, SPENDER, MAX_UINT256)
        machine = _machine(chain, _request(usdc, 1))

        gate = asyncio.Event()
        original_read = chain.read_contract

        async def slow_read(*args, **kwargs):
            await gate.wait()
            return await original_read(*args, **kwargs)

        chain.read_contract = slow_read
        task = asyncio.create_task(machine.refresh())
        await asyncio.sleep(0)

        machine.set_request(_request(weth, 1))
        gate.set()
        await task

        assert machine.allowance is None
        assert machine.current_state() == ApprovalState.UNKNOWN


class TestApprove:
    """Tests for approve()."""

    @pytest.mark.asyncio
    async def test_approve_goes_pending_then_approved(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        assert machine.current_state() == ApprovalState.NOT_APPROVED

        chain.receipt_gate = asyncio.Event()
        task = asyncio.create_task(machine.approve(wallet.context()))
        await asyncio.sleep(0.01)

        assert machine.current_state() == ApprovalState.PENDING

        chain.receipt_gate.set()
        await task

        assert machine.allowance == 5_000_000
        assert machine.current_state() == ApprovalState.APPROVED
        assert len(wallet.signed) == 1

    @pytest.mark.asyncio
    async def test_pending_is_set_before_first_suspension(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        chain.simulate_gate = asyncio.Event()

        task = asyncio.create_task(machine.approve(wallet.context()))
        await asyncio.sleep(0)

        assert machine.current_state() == ApprovalState.PENDING

        chain.simulate_gate.set()
        await task

    @pytest.mark.asyncio
    async def test_approve_while_pending_is_noop(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        chain.receipt_gate = asyncio.Event()

        first = asyncio.create_task(machine.approve(wallet.context()))
        await asyncio.sleep(0.01)
        await machine.approve(wallet.context())

        chain.receipt_gate.set()
        await first

        assert len(wallet.signed) == 1
        assert len([s for s in chain.simulations if s[0] == "approve"]) == 1

    @pytest.mark.asyncio
    async def test_approves_exact_amount_by_default(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()

        await machine.approve(wallet.context())

        name, address, args, _ = chain.simulations[0]
        assert name == "approve"
        assert address == usdc.address
        assert args == [SPENDER, 5_000_000]

    @pytest.mark.asyncio
    async def test_approve_max(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000), approve_max=True)
        await machine.refresh()

        await machine.approve(wallet.context())

        assert chain.simulations[0][2] == [SPENDER, MAX_UINT256]
        assert machine.allowance == MAX_UINT256

    @pytest.mark.asyncio
    async def test_wallet_rejection_reverts_state(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        wallet.reject_signing = True

        with pytest.raises(ApprovalError, match="rejected"):
            await machine.approve(wallet.context())

        assert machine.current_state() == ApprovalState.NOT_APPROVED
        assert not machine.is_pending

    @pytest.mark.asyncio
    async def test_reverted_receipt_reverts_state(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        chain.receipt_status = 0

        with pytest.raises(ApprovalError, match="reverted"):
            await machine.approve(wallet.context())

        assert machine.current_state() == ApprovalState.NOT_APPROVED
        assert len(wallet.signed) == 1

    @pytest.mark.asyncio
    async def test_simulation_revert_never_signs(self, chain, wallet, usdc):
        machine = _machine(chain, _request(usdc, 5_000_000))
        await machine.refresh()
        chain.simulate_error = ContractRevertError("execution reverted")

        with pytest.raises(ApprovalError):
            await machine.approve(wallet.context())

        assert wallet.signed == []
        assert machine.current_state() == ApprovalState.NOT_APPROVED

    @pytest.mark.asyncio
    async def test_no_request_raises(self, chain, wallet):
        with pytest.raises(ApprovalError):
            await _machine(chain).approve(wallet.context())

    @pytest.mark.asyncio
    async def test_wallet_must_be_owner(self, chain, usdc):
        machine = _machine(chain, _request(usdc, 1))
        other = FakeWallet(chain, account="0x2222222222222222222222222222222222222222")

        with pytest.raises(ApprovalError, match="not the request owner"):
            await machine.approve(other.context())

    @pytest.mark.asyncio
    async def test_native_token_needs_no_approval(self, chain, wallet, eth):
        machine = _machine(chain, _request(eth, 1))

        await machine.approve(wallet.context())

        assert wallet.signed == []
        assert machine.current_state() == ApprovalState.APPROVED
