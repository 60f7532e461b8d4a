"""
Error Classification

Defines the closed set of transaction failure types. Failures are converted
to one of these at the submission boundary so retry logic can branch on type
instead of message content.
"""

from enum import Enum
from typing import Any, Iterable, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of transaction failures."""

    REVERTED = "reverted"                # Executed and rejected by contract logic
    OUT_OF_GAS = "out_of_gas"            # Gas budget or price too low
    NETWORK_TIMEOUT = "network_timeout"  # Timeout / unreachable node
    NONCE_CONFLICT = "nonce_conflict"    # Stale ordering counter
    UNKNOWN = "unknown"                  # Unclassified


OUT_OF_GAS_PATTERNS = (
    "out of gas",
    "gas required exceeds",
    "intrinsic gas too low",
    "insufficient gas",
    "gas limit",
    "underpriced",
)

REVERT_PATTERNS = (
    "revert",
    "call_exception",
    "call exception",
)

NETWORK_PATTERNS = (
    "timeout",
    "timed out",
    "network",
    "econnreset",
    "econnrefused",
    "connection",
    "unreachable",
    "socket hang up",
)

NONCE_PATTERNS = (
    "nonce",
    "already known",
)


class TransactionError(Exception):
    """
    Base class for classified transaction failures.

    ``label`` and ``attempts`` are filled in by the executor when the error
    leaves the retry loop.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        tx_hash: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tx_hash = tx_hash
        self.reason = reason
        self.label: Optional[str] = None
        self.attempts: Optional[int] = None

    def __str__(self) -> str:
        if self.label is None:
            return self.message
        return f"{self.label} failed after {self.attempts} attempt(s): {self.message}"


class TransactionRevertedError(TransactionError):
    """Transaction reverted by contract logic."""

    category = ErrorCategory.REVERTED
    retryable = False


class OutOfGasError(TransactionError):
    """Gas limit or price insufficient."""

    category = ErrorCategory.OUT_OF_GAS
    retryable = True


class NetworkTimeoutError(TransactionError):
    """Node timed out or could not be reached."""

    category = ErrorCategory.NETWORK_TIMEOUT
    retryable = True


class NonceConflictError(TransactionError):
    """Nonce already used or otherwise stale."""

    category = ErrorCategory.NONCE_CONFLICT
    retryable = True


class UnknownTransactionError(TransactionError):
    """Failure that matched no known pattern."""

    category = ErrorCategory.UNKNOWN
    retryable = False


def _matches(message: str, patterns: Iterable[str]) -> bool:
    return any(p in message for p in patterns)


def error_text(error: BaseException) -> str:
    """Lower-cased text of an error including common provider attributes."""
    parts = [str(error), type(error).__name__]
    for attr in ("message", "reason", "code", "data"):
        value: Any = getattr(error, attr, None)
        if value is not None:
            parts.append(str(value))
    return " ".join(parts).lower()


def _revert_reason(error: BaseException) -> Optional[str]:
    reason = getattr(error, "reason", None)
    if reason:
        return str(reason)
    data = getattr(error, "data", None)
    if isinstance(data, str) and data:
        return data
    return None


def classify_error(error: BaseException) -> TransactionError:
    """
    Map an arbitrary exception onto the transaction error taxonomy.

    Already-classified errors are returned unchanged. An error that looks
    like both a revert and an out-of-gas failure is treated as out-of-gas.
    """
    if isinstance(error, TransactionError):
        return error

    message = str(error) or type(error).__name__
    text = error_text(error)
    tx_hash = getattr(error, "tx_hash", None)

    if _matches(text, OUT_OF_GAS_PATTERNS):
        return OutOfGasError(message, tx_hash=tx_hash)

    if _matches(text, REVERT_PATTERNS):
        return TransactionRevertedError(message, tx_hash=tx_hash, reason=_revert_reason(error))

    if isinstance(error, (httpx.TimeoutException, httpx.TransportError, TimeoutError, ConnectionError)):
        return NetworkTimeoutError(message, tx_hash=tx_hash)

    if _matches(text, NETWORK_PATTERNS):
        return NetworkTimeoutError(message, tx_hash=tx_hash)

    if _matches(text, NONCE_PATTERNS):
        return NonceConflictError(message, tx_hash=tx_hash)

    return UnknownTransactionError(message, tx_hash=tx_hash)
