"""Tests for the JSON-RPC chain client and local signing wallet."""

import json

import httpx
import pytest
from eth_abi import encode
from eth_account import Account

from swapflow.abi import ERC20_ALLOWANCE, ERC20_APPROVE
from swapflow.clients import (
    CallRequest,
    ContractRevertError,
    JsonRpcClient,
    ReceiptTimeoutError,
    RpcError,
)
from swapflow.clients.local import LocalAccountWallet

OWNER = "0x1111111111111111111111111111111111111111"
SPENDER = "0x2222222222222222222222222222222222222222"
TOKEN = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
TX_HASH = "0x" + "cd" * 32

# Well-known throwaway key (hardhat account #0)
TEST_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


class FakeNode:
    """Answers JSON-RPC methods from a dict of canned results."""

    def __init__(self, results=None, errors=None):
        self.results = results or {}
        self.errors = errors or {}
        self.calls: list[tuple[str, list]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append((method, body["params"]))

        if method in self.errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]})

        result = self.results.get(method)
        if callable(result):
            result = result(body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def client(self, **kwargs) -> JsonRpcClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return JsonRpcClient(rpc_url="http://node.test", http_client=http, **kwargs)

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


def _uint(value: int) -> str:
    return "0x" + encode(["uint256"], [value]).hex()


class TestReads:
    """Tests for eth_call reads."""

    @pytest.mark.asyncio
    async def test_read_allowance(self):
        node = FakeNode({"eth_call": _uint(5_000_000)})
        client = node.client()

        allowance = await client.read_contract(TOKEN, ERC20_ALLOWANCE, [OWNER, SPENDER])

        assert allowance == 5_000_000
        method, params = node.calls[0]
        assert method == "eth_call"
        assert params[0]["to"] == TOKEN
        assert params[0]["data"].startswith(ERC20_ALLOWANCE.selector)
        assert params[1] == "latest"

    @pytest.mark.asyncio
    async def test_empty_return_data_is_error(self):
        node = FakeNode({"eth_call": "0x"})

        with pytest.raises(RpcError, match="returned no data"):
            await node.client().read_contract(TOKEN, ERC20_ALLOWANCE, [OWNER, SPENDER])

    @pytest.mark.asyncio
    async def test_native_balance(self):
        node = FakeNode({"eth_getBalance": hex(10**18)})

        assert await node.client().get_native_balance(OWNER) == 10**18

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = JsonRpcClient(rpc_url="http://node.test", http_client=http)

        with pytest.raises(RpcError, match="HTTP 503"):
            await client.chain_id()

    @pytest.mark.asyncio
    async def test_node_error(self):
        node = FakeNode(errors={"eth_chainId": {"code": -32601, "message": "method not found"}})

        with pytest.raises(RpcError) as exc_info:
            await node.client().chain_id()

        assert not isinstance(exc_info.value, ContractRevertError)
        assert exc_info.value.code == -32601

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        def handler(request):
            return httpx.Response(200, text="<html>Bad Gateway</html>")

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = JsonRpcClient(rpc_url="http://node.test", http_client=http)

        with pytest.raises(RpcError, match="invalid JSON"):
            await client.chain_id()

    @pytest.mark.asyncio
    async def test_non_object_response(self):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = JsonRpcClient(rpc_url="http://node.test", http_client=http)

        with pytest.raises(RpcError, match="unexpected payload"):
            await client.chain_id()


class TestSimulate:
    """Tests for call simulation."""

    @pytest.mark.asyncio
    async def test_simulation_builds_call_request(self):
        node = FakeNode({"eth_call": _uint(1), "eth_estimateGas": hex(46_000), "eth_chainId": hex(42161)})

        request = await node.client().simulate_contract(OWNER, TOKEN, ERC20_APPROVE, [SPENDER, 10])

        assert node.methods() == ["eth_call", "eth_estimateGas", "eth_chainId"]
        assert request.account == OWNER
        assert request.to == TOKEN
        assert request.data == ERC20_APPROVE.encode_call([SPENDER, 10])
        assert request.gas == 46_000
        assert request.chain_id == 42161

    @pytest.mark.asyncio
    async def test_revert_stops_before_gas_estimate(self):
        node = FakeNode(
            errors={"eth_call": {"code": 3, "message": "execution reverted", "data": "0x08c379a0"}}
        )

        with pytest.raises(ContractRevertError) as exc_info:
            await node.client().simulate_contract(OWNER, TOKEN, ERC20_APPROVE, [SPENDER, 10])

        assert exc_info.value.data == "0x08c379a0"
        assert node.methods() == ["eth_call"]

    @pytest.mark.asyncio
    async def test_revert_detected_by_message(self):
        node = FakeNode(errors={"eth_call": {"code": -32000, "message": "Execution Reverted: STF"}})

        with pytest.raises(ContractRevertError):
            await node.client().simulate_contract(OWNER, TOKEN, ERC20_APPROVE, [SPENDER, 10])


class TestReceipts:
    """Tests for receipt polling."""

    @pytest.mark.asyncio
    async def test_waits_until_receipt_appears(self):
        polls = []

        def receipt(params):
            polls.append(params[0])
            if len(polls) < 3:
                return None
            return {"transactionHash": TX_HASH, "status": "0x1", "blockNumber": "0x10", "gasUsed": "0x5208"}

        node = FakeNode({"eth_getTransactionReceipt": receipt})

        result = await node.client(poll_interval=0).wait_for_receipt(TX_HASH, timeout=5)

        assert result.succeeded
        assert result.block_number == 16
        assert result.gas_used == 21000
        assert len(polls) == 3

    @pytest.mark.asyncio
    async def test_garbled_poll_is_retried(self):
        polls = []

        def handler(request):
            body = json.loads(request.content)
            polls.append(body["method"])
            if len(polls) == 1:
                return httpx.Response(200, text="upstream connect error")
            receipt = {"transactionHash": TX_HASH, "status": "0x1", "blockNumber": "0x10"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": receipt})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = JsonRpcClient(rpc_url="http://node.test", http_client=http, poll_interval=0)

        result = await client.wait_for_receipt(TX_HASH, timeout=5)

        assert result.succeeded
        assert len(polls) == 2

    @pytest.mark.asyncio
    async def test_reverted_receipt(self):
        node = FakeNode({"eth_getTransactionReceipt": {"transactionHash": TX_HASH, "status": "0x0"}})

        result = await node.client().wait_for_receipt(TX_HASH, timeout=1)

        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_timeout(self):
        node = FakeNode({"eth_getTransactionReceipt": None})

        with pytest.raises(ReceiptTimeoutError):
            await node.client(poll_interval=0.01).wait_for_receipt(TX_HASH, timeout=0.05)


class TestLocalAccountWallet:
    """Tests for the eth-account signer."""

    def _wallet(self, node):
        return LocalAccountWallet(TEST_KEY, node.client(), chain_id=42161)

    @pytest.mark.asyncio
    async def test_context_before_and_after_connect(self):
        wallet = self._wallet(FakeNode())

        assert not wallet.context().is_connected

        address = await wallet.connect()

        ctx = wallet.context()
        assert ctx.is_connected
        assert ctx.account == address == Account.from_key(TEST_KEY).address

    @pytest.mark.asyncio
    async def test_switch_chain(self):
        wallet = self._wallet(FakeNode())

        await wallet.switch_chain(1)

        assert wallet.context().chain_id == 1

    @pytest.mark.asyncio
    async def test_signs_and_broadcasts(self):
        node = FakeNode(
            {
                "eth_getTransactionCount": "0x7",
                "eth_gasPrice": hex(10**8),
                "eth_sendRawTransaction": TX_HASH,
            }
        )
        wallet = self._wallet(node)
        request = CallRequest(
            account=wallet.address,
            to=TOKEN,
            data=ERC20_APPROVE.encode_call([SPENDER, 10]),
            chain_id=42161,
            gas=50_000,
        )

        tx_hash = await wallet.write_contract(request)

        assert tx_hash == TX_HASH
        method, params = node.calls[-1]
        assert method == "eth_sendRawTransaction"
        raw = params[0]
        assert raw.startswith("0x")

        decoded = Account.recover_transaction(raw)
        assert decoded == wallet.address

    @pytest.mark.asyncio
    async def test_refuses_call_simulated_for_other_account(self):
        wallet = self._wallet(FakeNode())
        request = CallRequest(account=OWNER, to=TOKEN, data="0x")

        with pytest.raises(RpcError):
            await wallet.write_contract(request)
