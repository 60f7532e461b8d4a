"""
Transaction execution models and types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol


class AttemptOutcome(str, Enum):
    """Result of one submission attempt."""
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass
class TransactionReceipt:
    """Confirmation record of a mined transaction."""
    tx_hash: str
    block_number: int
    status: int = 1                             # 1 = success, 0 = revert
    gas_used: Optional[int] = None
    block_hash: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "TransactionReceipt":
        """Build from an ``eth_getTransactionReceipt`` result."""
        return cls(
            tx_hash=receipt["transactionHash"],
            block_number=int(receipt["blockNumber"], 16),
            status=int(receipt.get("status", "0x1"), 16),
            gas_used=int(receipt["gasUsed"], 16) if receipt.get("gasUsed") else None,
            block_hash=receipt.get("blockHash"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "blockNumber": self.block_number,
            "status": self.status,
            "gasUsed": self.gas_used,
            "blockHash": self.block_hash,
        }


class PendingTransaction(Protocol):
    """Handle for a submitted transaction."""

    tx_hash: str

    async def wait(self) -> TransactionReceipt:
        ...


BuildAndSubmit = Callable[[float], Awaitable[PendingTransaction]]


@dataclass
class TransactionAttempt:
    """One pass through the retry loop."""
    index: int
    gas_multiplier: float
    outcome: Optional[AttemptOutcome] = None
    error: Optional[str] = None


@dataclass
class OperationDescriptor:
    """What to run: a label, a builder and how many times to retry it."""
    label: str
    build_and_submit: BuildAndSubmit
    max_retries: int = 2
    attempts: List[TransactionAttempt] = field(default_factory=list)
