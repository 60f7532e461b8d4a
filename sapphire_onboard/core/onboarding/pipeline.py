"""
Ordered pipelines of resumable steps.

Each step may carry an ``is_complete`` check. Steps whose check passes are
skipped, so running a pipeline again after a failure picks up at the first
step that has not happened on chain yet.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from ..execution.models import TransactionReceipt
from .errors import PipelineError

StepAction = Callable[[], Awaitable[Optional[TransactionReceipt]]]
CompletionCheck = Callable[[], Awaitable[bool]]


@dataclass
class PipelineStep:
    name: str
    run: StepAction
    is_complete: Optional[CompletionCheck] = None


@dataclass
class StepResult:
    name: str
    skipped: bool = False
    receipt: Optional[TransactionReceipt] = None


@dataclass
class PipelineResult:
    name: str
    steps: List[StepResult] = field(default_factory=list)

    def receipt(self, step: str) -> Optional[TransactionReceipt]:
        for result in self.steps:
            if result.name == step:
                return result.receipt
        return None

    @property
    def skipped(self) -> List[str]:
        return [s.name for s in self.steps if s.skipped]


class Pipeline:
    """Runs steps in order and stops at the first failure."""

    def __init__(
        self,
        name: str,
        steps: List[PipelineStep],
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self.steps = steps
        self.logger = logger or logging.getLogger(__name__)

    async def _already_done(self, step: PipelineStep) -> bool:
        if step.is_complete is None:
            return False
        try:
            return await step.is_complete()
        except Exception as e:
            # An unreadable check must not block the step itself
            self.logger.warning(f"{self.name}: completion check for '{step.name}' failed: {e}")
            return False

    async def run(self) -> PipelineResult:
        result = PipelineResult(name=self.name)

        for step in self.steps:
            if await self._already_done(step):
                self.logger.info(f"{self.name}: '{step.name}' already complete, skipping")
                result.steps.append(StepResult(name=step.name, skipped=True))
                continue

            self.logger.info(f"{self.name}: running '{step.name}'")
            try:
                receipt = await step.run()
            except Exception as e:
                completed = [s.name for s in result.steps]
                raise PipelineError(self.name, step.name, e, completed) from e

            result.steps.append(StepResult(name=step.name, receipt=receipt))

        return result
