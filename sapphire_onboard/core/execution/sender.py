"""
Transaction submission over JSON-RPC.

Builds, signs and broadcasts transactions for a single chain connection.
This is the boundary where provider failures are converted to the typed
transaction errors in :mod:`.errors`.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes, to_checksum_address, to_hex

from ..rpc.client import JsonRpcClient, JsonRpcError
from .errors import (
    NetworkTimeoutError,
    OutOfGasError,
    TransactionError,
    TransactionRevertedError,
    classify_error,
)
from .models import TransactionReceipt

logger = logging.getLogger(__name__)


def _hex_to_int(value: str) -> int:
    return int(value, 16)


def _scale(value: int, multiplier: float) -> int:
    return int(value * multiplier)


class SubmittedTransaction:
    """A broadcast transaction awaiting its receipt."""

    def __init__(
        self,
        client: JsonRpcClient,
        tx_hash: str,
        *,
        gas_limit: Optional[int] = None,
        poll_interval: float = 2.0,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self.tx_hash = tx_hash
        self.gas_limit = gas_limit
        self.poll_interval = poll_interval
        self.timeout = timeout

    async def wait(self) -> TransactionReceipt:
        """Poll until the transaction is mined.

        A status-0 receipt raises OutOfGasError when the whole gas limit was
        consumed and TransactionRevertedError otherwise. Transport and
        timeout-like node errors while polling are retried; any other
        JSON-RPC error is raised as its classified error. NetworkTimeoutError
        if ``timeout`` elapses.
        """
        started = time.monotonic()

        while True:
            if self.timeout is not None and time.monotonic() - started > self.timeout:
                raise NetworkTimeoutError(
                    f"Confirmation timeout after {self.timeout}s", tx_hash=self.tx_hash
                )

            try:
                raw = await self._client.call("eth_getTransactionReceipt", [self.tx_hash])
            except httpx.HTTPError as e:
                logger.warning(f"Error checking transaction status for {self.tx_hash}: {e}")
                raw = None
            except JsonRpcError as e:
                classified = classify_error(e)
                if not isinstance(classified, NetworkTimeoutError):
                    raise classified from e
                logger.warning(f"Node busy while checking {self.tx_hash}: {e}")
                raw = None

            if raw:
                receipt = TransactionReceipt.from_rpc(raw)
                if not receipt.is_success:
                    if self._exhausted_gas(receipt):
                        raise OutOfGasError(
                            f"Transaction ran out of gas in block {receipt.block_number} "
                            f"(used {receipt.gas_used} of {self.gas_limit})",
                            tx_hash=self.tx_hash,
                        )
                    raise TransactionRevertedError(
                        f"Transaction reverted in block {receipt.block_number}",
                        tx_hash=self.tx_hash,
                    )
                return receipt

            await asyncio.sleep(self.poll_interval)

    def _exhausted_gas(self, receipt: TransactionReceipt) -> bool:
        if self.gas_limit is None or receipt.gas_used is None:
            return False
        return receipt.gas_used >= self.gas_limit


class TransactionSender:
    """
    Signs and broadcasts transactions from one account on one chain.

    Every submission re-reads the nonce, gas estimate and gas price, so a
    retry never reuses stale values.
    """

    def __init__(
        self,
        client: JsonRpcClient,
        account: LocalAccount,
        chain_id: int,
        *,
        poll_interval: float = 2.0,
        confirmation_timeout: Optional[float] = None,
    ):
        self.client = client
        self.account = account
        self.chain_id = chain_id
        self.poll_interval = poll_interval
        self.confirmation_timeout = confirmation_timeout

    @property
    def address(self) -> str:
        return self.account.address

    async def submit(
        self,
        to: str,
        data: bytes,
        gas_multiplier: float = 1.0,
        value: int = 0,
    ) -> SubmittedTransaction:
        try:
            return await self._submit(to, data, gas_multiplier, value)
        except TransactionError:
            raise
        except Exception as e:
            classified = classify_error(e)
            raise classified from e

    async def _submit(
        self,
        to: str,
        data: bytes,
        gas_multiplier: float,
        value: int,
    ) -> SubmittedTransaction:
        call_obj: Dict[str, Any] = {
            "from": self.account.address,
            "to": to_checksum_address(to),
            "data": to_hex(data),
        }
        if value:
            call_obj["value"] = hex(value)

        nonce = _hex_to_int(
            await self.client.call("eth_getTransactionCount", [self.account.address, "pending"])
        )
        gas_estimate = _hex_to_int(await self.client.call("eth_estimateGas", [call_obj]))
        gas_price = _hex_to_int(await self.client.call("eth_gasPrice", []))

        tx = {
            "chainId": self.chain_id,
            "nonce": nonce,
            "to": call_obj["to"],
            "value": value,
            "data": to_hex(data),
            "gas": _scale(gas_estimate, gas_multiplier),
            "gasPrice": _scale(gas_price, gas_multiplier),
        }

        signed = self.account.sign_transaction(tx)
        tx_hash = await self.client.call("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])
        logger.info(
            f"Transaction submitted: {tx_hash} (chain {self.chain_id}, nonce {nonce}, gas {tx['gas']})"
        )

        return SubmittedTransaction(
            self.client,
            tx_hash,
            gas_limit=tx["gas"],
            poll_interval=self.poll_interval,
            timeout=self.confirmation_timeout,
        )

    async def call(self, to: str, data: bytes) -> bytes:
        """``eth_call`` against the latest block."""
        try:
            result = await self.client.call(
                "eth_call",
                [{"from": self.account.address, "to": to_checksum_address(to), "data": to_hex(data)}, "latest"],
            )
        except TransactionError:
            raise
        except Exception as e:
            raise classify_error(e) from e
        return to_bytes(hexstr=result) if result else b""
