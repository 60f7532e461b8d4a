"""
Tests for TransactionSender against a scripted JSON-RPC node.
"""

import json

import httpx
import pytest
from eth_account import Account

from sapphire_onboard.core.execution import (
    NetworkTimeoutError,
    NonceConflictError,
    OutOfGasError,
    TransactionRevertedError,
    TransactionSender,
    UnknownTransactionError,
)
from sapphire_onboard.core.rpc import JsonRpcClient

TEST_KEY = "0x" + "11" * 32
TX_HASH = "0x" + "aa" * 32
CONTRACT = "0xf4B4d8b8a9b1F104b2100F6d68e1ab21C3a2DF76"


class RecordingAccount:
    """Signs with a real key and keeps every transaction dict it saw."""

    def __init__(self, key):
        self._account = Account.from_key(key)
        self.address = self._account.address
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(dict(tx))
        return self._account.sign_transaction(tx)


class FakeNode:
    def __init__(
        self,
        receipt_status="0x1",
        send_error=None,
        receipts_before_mined=0,
        gas_used="0x5208",
        receipt_failures=(),
    ):
        self.receipt_status = receipt_status
        self.gas_used = gas_used
        self.receipt_failures = list(receipt_failures)
        self.send_error = send_error
        self.receipts_before_mined = receipts_before_mined
        self.calls = []

    def result(self, method, params):
        if method == "eth_getTransactionCount":
            return "0x5"
        if method == "eth_estimateGas":
            return hex(100_000)
        if method == "eth_gasPrice":
            return hex(1_000_000_000)
        if method == "eth_sendRawTransaction":
            if self.send_error:
                return {"error": {"code": -32000, "message": self.send_error}}
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.receipt_failures:
                failure = self.receipt_failures.pop(0)
                if isinstance(failure, Exception):
                    raise failure
                return {"error": failure}
            if self.receipts_before_mined > 0:
                self.receipts_before_mined -= 1
                return None
            return {
                "transactionHash": TX_HASH,
                "blockNumber": "0x10",
                "status": self.receipt_status,
                "gasUsed": self.gas_used,
            }
        if method == "eth_call":
            return "0x" + "00" * 12 + "22" * 20
        raise AssertionError(f"unexpected method {method}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body["method"])
        result = self.result(body["method"], body["params"])
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def make_sender(node, account, **kwargs):
    client = JsonRpcClient("https://node.test", transport=httpx.MockTransport(node.handler))
    return TransactionSender(client, account, 23295, poll_interval=0.01, **kwargs)


@pytest.mark.asyncio
async def test_submit_scales_gas_and_price():
    node = FakeNode()
    account = RecordingAccount(TEST_KEY)
    sender = make_sender(node, account)

    pending = await sender.submit(CONTRACT, b"\x12\x34", gas_multiplier=1.5)

    assert pending.tx_hash == TX_HASH
    tx = account.signed[0]
    assert tx["gas"] == 150_000
    assert tx["gasPrice"] == 1_500_000_000
    assert tx["nonce"] == 5
    assert tx["chainId"] == 23295
    assert tx["data"] == "0x1234"
    assert node.calls[-1] == "eth_sendRawTransaction"


@pytest.mark.asyncio
async def test_wait_returns_receipt_after_polling():
    node = FakeNode(receipts_before_mined=2)
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    pending = await sender.submit(CONTRACT, b"")
    receipt = await pending.wait()

    assert receipt.tx_hash == TX_HASH
    assert receipt.block_number == 16
    assert receipt.gas_used == 21000
    assert node.calls.count("eth_getTransactionReceipt") == 3


@pytest.mark.asyncio
async def test_status_zero_receipt_raises_revert():
    node = FakeNode(receipt_status="0x0")
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    pending = await sender.submit(CONTRACT, b"")
    with pytest.raises(TransactionRevertedError) as exc_info:
        await pending.wait()

    assert exc_info.value.tx_hash == TX_HASH


@pytest.mark.asyncio
async def test_status_zero_with_all_gas_used_is_out_of_gas():
    node = FakeNode(receipt_status="0x0", gas_used=hex(100_000))
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    pending = await sender.submit(CONTRACT, b"")
    with pytest.raises(OutOfGasError) as exc_info:
        await pending.wait()

    assert pending.gas_limit == 100_000
    assert exc_info.value.retryable
    assert exc_info.value.tx_hash == TX_HASH


@pytest.mark.asyncio
async def test_transient_polling_errors_keep_polling():
    node = FakeNode(receipt_failures=[
        httpx.ConnectError("connection reset"),
        {"code": -32000, "message": "request timed out"},
    ])
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    pending = await sender.submit(CONTRACT, b"")
    receipt = await pending.wait()

    assert receipt.block_number == 16
    assert node.calls.count("eth_getTransactionReceipt") == 3


@pytest.mark.asyncio
async def test_permanent_node_error_while_polling_is_raised():
    node = FakeNode(receipt_failures=[{"code": -32601, "message": "method not found"}])
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    pending = await sender.submit(CONTRACT, b"")
    with pytest.raises(UnknownTransactionError):
        await pending.wait()


@pytest.mark.asyncio
async def test_confirmation_timeout_raises_network_timeout():
    node = FakeNode(receipts_before_mined=10_000)
    sender = make_sender(node, RecordingAccount(TEST_KEY), confirmation_timeout=0.05)

    pending = await sender.submit(CONTRACT, b"")
    with pytest.raises(NetworkTimeoutError):
        await pending.wait()


@pytest.mark.asyncio
async def test_provider_nonce_error_is_classified():
    node = FakeNode(send_error="nonce too low")
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    with pytest.raises(NonceConflictError) as exc_info:
        await sender.submit(CONTRACT, b"")

    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_call_returns_raw_bytes():
    node = FakeNode()
    sender = make_sender(node, RecordingAccount(TEST_KEY))

    raw = await sender.call(CONTRACT, b"\x01")

    assert len(raw) == 32
    assert raw[-20:] == b"\x22" * 20
