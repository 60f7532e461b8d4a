import json

import httpx
import pytest

from sapphire_onboard.core.rpc import JsonRpcClient, JsonRpcError


@pytest.mark.asyncio
async def test_call_sends_envelope_and_returns_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x2a"})

    async with JsonRpcClient("https://node.test", transport=httpx.MockTransport(handler)) as client:
        assert await client.call("eth_blockNumber") == "0x2a"
        await client.call("eth_chainId", [])

    assert seen[0]["jsonrpc"] == "2.0"
    assert seen[0]["method"] == "eth_blockNumber"
    assert seen[0]["params"] == []
    assert seen[1]["id"] == seen[0]["id"] + 1


@pytest.mark.asyncio
async def test_error_object_raises_json_rpc_error():
    def handler(request):
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted", "data": "0x08c379a0"}},
        )

    async with JsonRpcClient("https://node.test", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(JsonRpcError) as exc_info:
            await client.call("eth_call", [{}, "latest"])

    assert exc_info.value.code == 3
    assert exc_info.value.message == "execution reverted"
    assert "execution reverted" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_error_status_raises():
    def handler(request):
        return httpx.Response(502)

    async with JsonRpcClient("https://node.test", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.call("eth_blockNumber")
