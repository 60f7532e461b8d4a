"""
Resilient Transaction Executor

Submits a transaction, waits for its receipt and, on failure, decides from
the error type whether to resubmit with more gas or give up.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import NetworkTimeoutError, classify_error
from .models import (
    AttemptOutcome,
    BuildAndSubmit,
    OperationDescriptor,
    TransactionAttempt,
    TransactionReceipt,
)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_SECONDS = 1.0
GAS_MULTIPLIER_STEP = 0.5

Sleep = Callable[[float], Awaitable[Any]]

logger = logging.getLogger(__name__)


def gas_multiplier(attempt: int) -> float:
    """Gas multiplier for a 0-based attempt index: 1.0, 1.5, 2.0, ..."""
    return 1.0 + GAS_MULTIPLIER_STEP * attempt


def _tag(error: BaseException, label: str, attempts: int) -> None:
    """Attach the operation label and attempt count to the failure as raised."""
    error.label = label
    error.attempts = attempts


class TransactionExecutor:
    """
    Runs transaction builders with gas escalation.

    Responsibilities:
    - Call the builder with the multiplier for each attempt
    - Wait for the receipt of each submission
    - Retry out-of-gas, timeout/network and nonce failures
    - Propagate reverts and unknown failures immediately

    The exception that ends the loop is the one the last attempt raised,
    with ``label`` and ``attempts`` set on it.
    """

    def __init__(
        self,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Optional[Sleep] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep or asyncio.sleep
        self.logger = logger or logging.getLogger(__name__)

    async def run(self, operation: OperationDescriptor) -> TransactionReceipt:
        """Execute ``operation``, recording each attempt on it."""
        if operation.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {operation.max_retries}")

        label = operation.label
        total = operation.max_retries + 1
        attempt = 0

        while True:
            multiplier = gas_multiplier(attempt)
            record = TransactionAttempt(index=attempt, gas_multiplier=multiplier)
            operation.attempts.append(record)

            try:
                pending = await operation.build_and_submit(multiplier)
                self.logger.info(f"{label}: submitted {pending.tx_hash} (gas x{multiplier})")
                receipt = await pending.wait()
            except Exception as e:
                classified = classify_error(e)
                record.error = classified.message
                _tag(e, label, attempt + 1)

                if not classified.retryable:
                    record.outcome = AttemptOutcome.FATAL_FAILURE
                    self.logger.error(
                        f"{label} failed with {classified.category.value} error: {classified.message}"
                    )
                    raise

                record.outcome = AttemptOutcome.RETRYABLE_FAILURE
                if attempt + 1 >= total:
                    self.logger.error(f"{label} failed after {total} attempts: {classified.message}")
                    raise

                self.logger.warning(
                    f"{label} attempt {attempt + 1}/{total} "
                    f"failed ({classified.category.value}): {classified.message}. "
                    f"Retrying in {self.backoff_seconds:.1f}s with gas x{gas_multiplier(attempt + 1)}"
                )
                await self._sleep(self.backoff_seconds)
                attempt += 1
                continue

            record.outcome = AttemptOutcome.SUCCESS
            self.logger.info(
                f"{label}: confirmed {receipt.tx_hash} in block {receipt.block_number}"
            )
            return receipt

    async def execute(
        self,
        build_and_submit: BuildAndSubmit,
        label: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> TransactionReceipt:
        return await self.run(
            OperationDescriptor(label=label, build_and_submit=build_and_submit, max_retries=max_retries)
        )

    async def execute_read(
        self,
        query: Callable[[], Awaitable[T]],
        label: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> T:
        """Retry an idempotent query on timeout/network failures only."""
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")

        attempt = 0
        while True:
            try:
                return await query()
            except Exception as e:
                classified = classify_error(e)
                _tag(e, label, attempt + 1)

                if not isinstance(classified, NetworkTimeoutError):
                    raise

                if attempt >= max_retries:
                    self.logger.error(f"{label} failed after {attempt + 1} attempts: {classified.message}")
                    raise

                self.logger.warning(
                    f"{label} read attempt {attempt + 1}/{max_retries + 1} failed: {classified.message}. "
                    f"Retrying in {self.backoff_seconds:.1f}s"
                )
                await self._sleep(self.backoff_seconds)
                attempt += 1


async def execute_with_retry(
    build_and_submit: BuildAndSubmit,
    label: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    *,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> TransactionReceipt:
    """
    Submit via ``build_and_submit`` and wait for the receipt, retrying
    retryable failures with gas multipliers 1.0, 1.5, 2.0, ...

    At most ``max_retries + 1`` attempts are made.
    """
    executor = TransactionExecutor(backoff_seconds=backoff_seconds)
    return await executor.execute(build_and_submit, label, max_retries)


async def execute_read_with_retry(
    query: Callable[[], Awaitable[T]],
    label: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    *,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> T:
    """Read-only counterpart of :func:`execute_with_retry`."""
    executor = TransactionExecutor(backoff_seconds=backoff_seconds)
    return await executor.execute_read(query, label, max_retries)
