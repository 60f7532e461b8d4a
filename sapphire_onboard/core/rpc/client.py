"""Async JSON-RPC client for EVM-compatible chains."""

from __future__ import annotations

import itertools
import logging
from typing import Any, List, Optional

import httpx

logger = logging.getLogger(__name__)


class JsonRpcError(Exception):
    """The node answered with a JSON-RPC ``error`` object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.data:
            return f"{self.message} (code={self.code}, data={self.data})"
        return f"{self.message} (code={self.code})"


class JsonRpcClient:
    """Thin wrapper around a single RPC endpoint.

    Usage:
        async with JsonRpcClient("https://testnet.sapphire.oasis.io") as client:
            block = await client.call("eth_blockNumber")
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        body = response.json()

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            if isinstance(error, dict):
                raise JsonRpcError(
                    str(error.get("message", "RPC error")),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise JsonRpcError(str(error))

        return body.get("result")

    async def aclose(self) -> None:
        await self._client.aclose()
