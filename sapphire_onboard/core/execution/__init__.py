"""
Transaction Execution Layer

Provides the infrastructure for executing on-chain transactions:
- execute_with_retry: gas-escalating retry around a transaction builder
- execute_read_with_retry: retry for idempotent reads
- TransactionSender: signs and broadcasts transactions over JSON-RPC
- classify_error: maps provider failures onto typed errors

Usage:
    from sapphire_onboard.core.execution import execute_with_retry

    receipt = await execute_with_retry(
        lambda multiplier: sender.submit(contract, calldata, multiplier),
        label="storeSecret",
    )
"""

from .errors import (
    ErrorCategory,
    NetworkTimeoutError,
    NonceConflictError,
    OutOfGasError,
    TransactionError,
    TransactionRevertedError,
    UnknownTransactionError,
    classify_error,
)
from .executor import (
    TransactionExecutor,
    execute_read_with_retry,
    execute_with_retry,
    gas_multiplier,
)
from .models import (
    AttemptOutcome,
    OperationDescriptor,
    PendingTransaction,
    TransactionAttempt,
    TransactionReceipt,
)
from .sender import SubmittedTransaction, TransactionSender

__all__ = [
    # Errors
    "ErrorCategory",
    "TransactionError",
    "TransactionRevertedError",
    "OutOfGasError",
    "NetworkTimeoutError",
    "NonceConflictError",
    "UnknownTransactionError",
    "classify_error",
    # Executor
    "TransactionExecutor",
    "execute_with_retry",
    "execute_read_with_retry",
    "gas_multiplier",
    # Models
    "AttemptOutcome",
    "OperationDescriptor",
    "PendingTransaction",
    "TransactionAttempt",
    "TransactionReceipt",
    # Sender
    "SubmittedTransaction",
    "TransactionSender",
]
